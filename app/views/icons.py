"""Icon generation for DataBar.

Draws the small status dot shown next to the menu bar title. Generated
PNGs are cached on disk and in memory so each colour is drawn once.

Usage:
    from app.views.icons import IconGenerator

    icons = IconGenerator()
    path = icons.create_status_icon("green")
"""
import shutil
import tempfile
from pathlib import Path
from typing import Dict, Optional, Tuple

from PIL import Image, ImageDraw

from config import COLORS, STORAGE, UI, get_logger

logger = get_logger(__name__)


class IconGenerator:
    """Generates and caches status icons for the menu bar."""

    def __init__(self, temp_dir: Optional[Path] = None):
        self._temp_dir = Path(temp_dir or Path(tempfile.gettempdir()) / STORAGE.ICON_TEMP_DIR)
        self._temp_dir.mkdir(parents=True, exist_ok=True)
        self._cache: Dict[str, str] = {}
        logger.debug(f"IconGenerator initialized, temp dir: {self._temp_dir}")

    @property
    def temp_dir(self) -> Path:
        return self._temp_dir

    def _get_color_rgba(self, color: str) -> Tuple[int, int, int, int]:
        color_map = {
            'green': COLORS.GREEN_RGBA,
            'yellow': COLORS.YELLOW_RGBA,
            'red': COLORS.RED_RGBA,
            'gray': COLORS.GRAY_RGBA,
        }
        return color_map.get(color, COLORS.GRAY_RGBA)

    def create_status_icon(self, color: str, size: Optional[int] = None) -> str:
        """Create a coloured circle icon.

        Args:
            color: Color name ('green', 'yellow', 'red', 'gray'). Unknown
                names are drawn gray.
            size: Icon size in pixels (default from UI config).

        Returns:
            Path to the generated PNG file.
        """
        size = size or UI.STATUS_ICON_SIZE
        cache_key = f"status_{color}_{size}"

        cached = self._cache.get(cache_key)
        if cached and Path(cached).exists():
            return cached

        img = Image.new('RGBA', (size, size), (0, 0, 0, 0))
        draw = ImageDraw.Draw(img)

        padding = max(1, size // 6)
        draw.ellipse(
            [padding, padding, size - padding - 1, size - padding - 1],
            fill=self._get_color_rgba(color),
        )

        icon_path = self._temp_dir / f'{cache_key}.png'
        img.save(icon_path, 'PNG')

        self._cache[cache_key] = str(icon_path)
        return str(icon_path)

    def cleanup(self) -> None:
        """Remove generated icons and forget the cache."""
        try:
            if self._temp_dir.exists():
                shutil.rmtree(self._temp_dir)
            self._temp_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Could not clean up {self._temp_dir}: {e}")

        self._cache.clear()
        logger.debug("Icon cache cleared")


_default_generator: Optional[IconGenerator] = None


def get_icon_generator() -> IconGenerator:
    """Get or create the default icon generator."""
    global _default_generator
    if _default_generator is None:
        _default_generator = IconGenerator()
    return _default_generator


def create_status_icon(color: str, size: Optional[int] = None) -> str:
    return get_icon_generator().create_status_icon(color, size)
