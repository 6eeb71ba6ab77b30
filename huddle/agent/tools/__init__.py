"""Persona tools.

Tools are plain classes that take a ``ToolDeps`` bundle; ``build_registry``
registers them all against one bundle.
"""

from huddle.agent.tools.base import Tool
from huddle.agent.tools.deps import ToolDeps, build_registry
from huddle.agent.tools.dispatch import ToolDispatcher, ToolInvocation, ToolResult
from huddle.agent.tools.errors import ToolError, tool_error
from huddle.agent.tools.registry import ToolRegistry

__all__ = [
    "Tool",
    "ToolDeps",
    "ToolDispatcher",
    "ToolError",
    "ToolInvocation",
    "ToolRegistry",
    "ToolResult",
    "build_registry",
    "tool_error",
]
