"""Google Analytics Admin and Data API client.

Performs single blocking HTTP calls with an already-fresh bearer token.
Token handling lives in analytics.auth; retry and scheduling live in
app.scheduler.
"""
import json
from typing import List, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from config import API, INTERVALS, LIMITS, get_logger
from config.exceptions import HttpStatusError, MalformedResponseError, TransportError
from analytics.models import RemoteAccount, RemoteProperty

logger = get_logger(__name__)


class AnalyticsClient:
    """Thin wrapper over the two Google Analytics REST endpoints we need.

    Every method takes the bearer token explicitly so the caller decides
    when a token is refreshed.
    """

    def __init__(self, timeout: float = INTERVALS.HTTP_TIMEOUT_SECONDS,
                 admin_base_url: str = API.ADMIN_BASE_URL,
                 data_base_url: str = API.DATA_BASE_URL):
        self.timeout = timeout
        self.admin_base_url = admin_base_url.rstrip("/")
        self.data_base_url = data_base_url.rstrip("/")

    # === Data API ===

    def realtime_report_url(self, property_id: str) -> str:
        return f"{self.data_base_url}/{property_id}:runRealtimeReport"

    def fetch_active_users(self, token: str, property_id: str) -> int:
        """Fetch the real-time active user count for a property.

        Args:
            token: OAuth bearer token.
            property_id: Resource name, e.g. "properties/123456".

        Returns:
            Active users in the last 30 minutes. A report without rows
            means nobody is on the site and yields 0.

        Raises:
            TransportError: No HTTP response was received.
            HttpStatusError: The API answered with a non-2xx status.
            MalformedResponseError: The payload could not be decoded.
        """
        body = {
            "dimensions": [],
            "metrics": [{"name": API.ACTIVE_USERS_METRIC}],
        }
        report = self._request_json("POST", self.realtime_report_url(property_id), token, body)
        return parse_active_users(report)

    # === Admin API ===

    def list_accounts(self, token: str) -> List[RemoteAccount]:
        """List accounts visible to the signed-in user."""
        data = self._request_json("GET", f"{self.admin_base_url}/accounts", token)
        try:
            return [RemoteAccount.from_dict(item) for item in data.get("accounts", [])]
        except (KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Could not decode accounts response: {e}")
            return []

    def list_properties(self, token: str, account: RemoteAccount) -> List[RemoteProperty]:
        """List the properties under one account."""
        query = urlencode({"filter": f"parent:{account.name}"})
        data = self._request_json("GET", f"{self.admin_base_url}/properties?{query}", token)
        try:
            return [
                RemoteProperty.from_dict(item, account)
                for item in data.get("properties", [])
            ]
        except (KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Could not decode properties response for {account.name}: {e}")
            return []

    def list_all_properties(self, token: str) -> List[RemoteProperty]:
        """List every live property across all accounts, sorted by name."""
        properties: List[RemoteProperty] = []
        for account in self.list_accounts(token):
            properties.extend(
                prop for prop in self.list_properties(token, account) if not prop.is_deleted
            )
        properties.sort(key=lambda p: ((p.account_display_name or "").lower(), p.display_name.lower()))
        logger.debug(f"Listed {len(properties)} remote properties")
        return properties

    # === Transport ===

    def _request_json(self, method: str, url: str, token: str,
                      body: Optional[dict] = None) -> dict:
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
            "User-Agent": API.USER_AGENT,
        }
        data = None
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = "application/json"

        request = Request(url, data=data, headers=headers, method=method)

        try:
            with urlopen(request, timeout=self.timeout) as response:
                raw = response.read()
        except HTTPError as e:
            error_body = _read_error_body(e)
            logger.debug(f"{method} {url} -> HTTP {e.code}")
            raise HttpStatusError(
                f"Analytics API returned HTTP {e.code}",
                status_code=e.code,
                body=error_body,
                details={"endpoint": url},
            ) from e
        except (URLError, OSError) as e:
            raise TransportError(
                f"Request to Analytics API failed: {e}", {"endpoint": url}
            ) from e

        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MalformedResponseError(
                "Analytics API returned invalid JSON", {"endpoint": url}
            ) from e

        if not isinstance(payload, dict):
            raise MalformedResponseError(
                "Analytics API returned an unexpected payload",
                {"endpoint": url, "type": type(payload).__name__},
            )
        return payload


def parse_active_users(report: dict) -> int:
    """Extract the first metric value of a realtime report."""
    rows = report.get("rows")
    if not rows:
        return 0
    try:
        return int(rows[0]["metricValues"][0]["value"])
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise MalformedResponseError(
            "Realtime report has no usable metric value", {"row": str(rows[0])[:200]}
        ) from e


def _read_error_body(error: HTTPError) -> Optional[str]:
    try:
        return error.read().decode("utf-8", errors="replace")[:LIMITS.MAX_RESPONSE_BODY_LOGGED]
    except (OSError, AttributeError):
        return None
