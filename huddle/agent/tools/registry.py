"""Tool registry with toolset grouping and structured error results."""

import logging
from typing import Any

from huddle.agent.tools.base import Tool
from huddle.agent.tools.errors import ToolError, tool_error

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Registry for persona tools.

    Tools are grouped into toolsets; a persona sees the tools of the
    toolsets it is allowed. A tool may belong to extra toolsets through
    ``register(tool, toolsets=[...])``.
    """

    def __init__(self):
        self._tools: dict[str, Tool] = {}
        self._extra_toolsets: dict[str, set[str]] = {}  # name -> additional toolsets

    def register(self, tool: Tool, toolsets: list[str] | None = None) -> None:
        """Register a tool instance, optionally under additional toolsets."""
        self._tools[tool.name] = tool
        if toolsets:
            self._extra_toolsets.setdefault(tool.name, set()).update(toolsets)

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def get_toolsets(self, name: str) -> set[str]:
        """All toolsets a tool belongs to."""
        tool = self._tools.get(name)
        if tool is None:
            return set()
        return {tool.toolset} | self._extra_toolsets.get(name, set())

    def tools_for(self, toolsets: list[str] | tuple[str, ...]) -> dict[str, Tool]:
        """Tools visible to a persona with the given toolsets."""
        wanted = set(toolsets)
        return {
            name: tool
            for name, tool in self._tools.items()
            if self.get_toolsets(name) & wanted
        }

    def get_definitions(self, toolsets: list[str] | tuple[str, ...] | None = None) -> list[dict[str, Any]]:
        """Definitions in OpenAI function-calling format. Unconfigured tools are left out."""
        definitions = []
        for name, tool in self._tools.items():
            if not tool.is_available():
                continue
            if toolsets is not None and not (self.get_toolsets(name) & set(toolsets)):
                continue
            definitions.append(tool.to_schema())
        return definitions

    async def execute(self, name: str, params: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
        """
        Execute a tool by name.

        Args:
            name: Tool name.
            params: Arguments from the model.
            **kwargs: Turn context passed through to the tool.

        Returns:
            The tool's result dict, or a structured error dict. Never raises
            for tool failures.
        """
        tool = self._tools.get(name)
        if not tool:
            return tool_error("ToolNotFound", f"Tool '{name}' not found", "TOOL_NOT_FOUND")

        errors = tool.validate_params(params)
        if errors:
            return tool_error(
                "InvalidInput",
                f"Invalid parameters for tool '{name}': " + "; ".join(errors),
                "INVALID_INPUT",
            )
        try:
            result = await tool.execute(**params, **kwargs)
        except ToolError as e:
            logger.info(f"Tool '{name}' reported {e.error}: {e.message}")
            return e.to_dict()
        except Exception as e:
            logger.exception(f"Error executing tool '{name}'")
            return tool_error(
                "ToolExecutionError",
                str(e) or type(e).__name__,
                details={"tool": name, "type": type(e).__name__},
            )
        if not isinstance(result, dict):
            return {"result": result}
        return result

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools.keys())
