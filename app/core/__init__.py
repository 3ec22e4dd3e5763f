"""Core configuration, errors and factory components."""

from app.core.config import Settings, get_settings
from app.core.errors import ScenarioGeneratorError, error_hint
from app.core.factory import ComponentFactory

__all__ = [
    "Settings",
    "get_settings",
    "ScenarioGeneratorError",
    "error_hint",
    "ComponentFactory",
]
