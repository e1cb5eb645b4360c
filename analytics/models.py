"""Data model for configured properties and their fetch state."""
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from config import ICONS, LIMITS


def default_icon_for(name: str) -> str:
    """Pick a default icon from keywords in a property name.

    Case-insensitive substring match against ICONS.KEYWORD_RULES; the
    first matching rule wins.
    """
    lowered = (name or "").lower()
    for keywords, icon in ICONS.KEYWORD_RULES:
        if any(keyword in lowered for keyword in keywords):
            return icon
    return ICONS.DEFAULT


def normalize_label(label: Optional[str]) -> Optional[str]:
    """Trim a display label to at most three upper-case characters."""
    if label is None:
        return None
    label = label.strip()[:LIMITS.MAX_LABEL_LENGTH].strip().upper()
    return label or None


def numeric_property_id(property_id: str) -> str:
    """The number part of a resource name ("properties/42" -> "42")."""
    return property_id.rsplit("/", 1)[-1]


@dataclass
class ConfiguredProperty:
    """A property the user chose to monitor in the menu bar.

    `id` is generated locally and never changes; `property_id` is the
    backend resource name (e.g. "properties/123456").
    """
    property_id: str
    property_name: str
    account_display_name: Optional[str] = None
    display_icon: str = ICONS.DEFAULT
    display_label: Optional[str] = None
    custom_display_name: Optional[str] = None
    order: int = 0
    id: str = field(default_factory=lambda: str(uuid.uuid4()).upper())

    @property
    def effective_display_name(self) -> str:
        if self.custom_display_name:
            return self.custom_display_name
        return self.property_name

    def copy(self) -> 'ConfiguredProperty':
        return replace(self)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "propertyId": self.property_id,
            "propertyName": self.property_name,
            "accountDisplayName": self.account_display_name,
            "displayIcon": self.display_icon,
            "displayLabel": self.display_label,
            "customDisplayName": self.custom_display_name,
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ConfiguredProperty':
        kwargs = {}
        if data.get("id"):
            kwargs["id"] = str(data["id"])
        return cls(
            property_id=data["propertyId"],
            property_name=data.get("propertyName", ""),
            account_display_name=data.get("accountDisplayName"),
            display_icon=data.get("displayIcon") or ICONS.DEFAULT,
            display_label=data.get("displayLabel"),
            custom_display_name=data.get("customDisplayName"),
            order=int(data.get("order", 0)),
            **kwargs,
        )


@dataclass(frozen=True)
class PropertyState:
    """Fetch status of one configured property.

    `value` is the last fetched active-user count as a string. It survives
    a new loading cycle and is only replaced by a definitive result.
    """
    value: Optional[str] = None
    is_loading: bool = True
    has_error: bool = False
    last_updated: Optional[datetime] = None

    @classmethod
    def initial(cls) -> 'PropertyState':
        return cls(value=None, is_loading=True, has_error=False, last_updated=None)

    @classmethod
    def failed(cls) -> 'PropertyState':
        return cls(value=None, is_loading=False, has_error=True, last_updated=None)

    @classmethod
    def succeeded(cls, count: int, at: datetime) -> 'PropertyState':
        return cls(value=str(count), is_loading=False, has_error=False, last_updated=at)

    def loading(self) -> 'PropertyState':
        """Same value and timestamp, now loading with the error cleared."""
        return replace(self, is_loading=True, has_error=False)


class AddRejection(Enum):
    """Why PropertyStore.add() refused a candidate."""
    AT_CAPACITY = "at_capacity"
    DUPLICATE = "duplicate"


@dataclass
class AddResult:
    """Outcome of PropertyStore.add()."""
    added: Optional[ConfiguredProperty] = None
    rejection: Optional[AddRejection] = None

    @property
    def ok(self) -> bool:
        return self.rejection is None


@dataclass
class RemoteAccount:
    """A Google Analytics account as listed by the Admin API."""
    name: str
    display_name: str

    @classmethod
    def from_dict(cls, data: dict) -> 'RemoteAccount':
        return cls(name=data["name"], display_name=data.get("displayName", data["name"]))


@dataclass
class RemoteProperty:
    """A GA4 property as listed by the Admin API."""
    name: str
    display_name: str
    parent: str = ""
    account: str = ""
    account_display_name: Optional[str] = None
    delete_time: Optional[str] = None

    @property
    def is_deleted(self) -> bool:
        return self.delete_time is not None

    @classmethod
    def from_dict(cls, data: dict, account: Optional[RemoteAccount] = None) -> 'RemoteProperty':
        return cls(
            name=data["name"],
            display_name=data.get("displayName", data["name"]),
            parent=data.get("parent", ""),
            account=data.get("account", account.name if account else ""),
            account_display_name=account.display_name if account else None,
            delete_time=data.get("deleteTime"),
        )

    def to_configured(self) -> ConfiguredProperty:
        return ConfiguredProperty(
            property_id=self.name,
            property_name=self.display_name,
            account_display_name=self.account_display_name,
            display_icon=default_icon_for(self.display_name),
        )
