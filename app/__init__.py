"""Application module for DataBar.

Contains the main application components:
- EventBus: Internal event communication
- RefreshScheduler: Per-property refresh passes and state
- AppController: Business logic orchestration with DI
- RefreshTimer / MenuAwareTimer: Background and main-thread timers
- Views: UI components (icons, menus)
"""

from app.controller import AppController, ControllerView
from app.dependencies import AppDependencies, create_dependencies
from app.events import Event, EventBus, EventType
from app.scheduler import RefreshPhase, RefreshScheduler
from app.timer import MenuAwareTimer, RefreshTimer

__all__ = [
    "AppController",
    "AppDependencies",
    "ControllerView",
    "Event",
    "EventBus",
    "EventType",
    "MenuAwareTimer",
    "RefreshPhase",
    "RefreshScheduler",
    "RefreshTimer",
    "create_dependencies",
]
