"""
Tool Registry

Explicit tool registration grouped by capability.
No auto-discovery - all tools must be registered explicitly.

DESIGN RULES:
- Tools are registered explicitly
- A capability exposes exactly the tools registered under it
- Registry is the single source of truth
"""

from typing import Dict, Iterable, List, Optional
from toolkit.base import Tool
from agents.intent_router import Capability


class ToolRegistry:
    """
    Central registry for all tools.

    Features:
    - Explicit registration (no auto-discovery)
    - Lookup by capability
    - Tool lookup by name
    """

    _instance: Optional["ToolRegistry"] = None

    def __init__(self):
        self._tools: Dict[str, Tool] = {}

    @classmethod
    def get_instance(cls) -> "ToolRegistry":
        """Get singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset singleton (for testing)."""
        cls._instance = None

    def register(self, tool: Tool) -> None:
        """
        Register a tool under its capability.

        Args:
            tool: Tool instance to register
        """
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[Tool]:
        """Get a tool by name."""
        return self._tools.get(name)

    def list_for_capabilities(self, capabilities: Iterable[Capability]) -> List[Tool]:
        """
        Get all tools belonging to any of the given capabilities.

        Args:
            capabilities: Capabilities selected by the intent router

        Returns:
            Tools in registration order
        """
        wanted = set(capabilities)
        return [tool for tool in self._tools.values() if tool.capability in wanted]

    def list_all(self) -> List[Tool]:
        """Get all registered tools."""
        return list(self._tools.values())


# --- Tool Registration Bootstrap ---

def bootstrap_tools(registry: Optional[ToolRegistry] = None, settings=None) -> ToolRegistry:
    """
    Register default tools.

    Called once at startup to populate the registry.
    """
    from app.core.config import settings as default_settings
    from toolkit.nutrition import BMITool, CalorieTool
    from toolkit.weather import WeatherClient, WeatherForecastTool, WeatherQueryTool

    settings = settings or default_settings
    registry = registry or ToolRegistry.get_instance()

    weather = WeatherClient(
        api_key=settings.weather_api_key,
        base_url=settings.weather_base_url,
        geo_url=settings.weather_geo_url,
        timeout=settings.http_timeout_seconds,
    )

    registry.register(WeatherQueryTool(weather))
    registry.register(WeatherForecastTool(weather))
    registry.register(CalorieTool())
    registry.register(BMITool())

    return registry
