"""View components for the DataBar menu bar UI.

Contains:
- icons: Status dot generation
- menu_builder: Menu construction helpers
"""
from app.views.icons import IconGenerator, create_status_icon

__all__ = [
    "IconGenerator",
    "create_status_icon",
]
