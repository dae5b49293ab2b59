"""Tool capability helpers and the built-in tool set (files, exec, web fetch and search)."""

from .base import FunctionTool, call_tool_safely, tool
from .exec_tool import ExecTool, create_exec_tool
from .file_tools import FileTools, create_file_tools
from .registry import ToolRegistry
from .web_tools import WebFetchTool, WebSearchTool, create_web_fetch_tool, create_web_search_tool


def create_builtin_tools(config) -> list[FunctionTool]:
    """File tools, exec, web_fetch and web_search configured from a ToolConfig."""
    return [
        *create_file_tools(config),
        create_exec_tool(config),
        create_web_fetch_tool(config),
        create_web_search_tool(config),
    ]


__all__ = [
    "ExecTool",
    "FileTools",
    "FunctionTool",
    "ToolRegistry",
    "WebFetchTool",
    "WebSearchTool",
    "call_tool_safely",
    "create_builtin_tools",
    "create_exec_tool",
    "create_file_tools",
    "create_web_fetch_tool",
    "create_web_search_tool",
    "tool",
]
