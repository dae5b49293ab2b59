"""
FunctionTool: adapts a plain (async or sync) callable plus a pydantic
argument model to the ITool capability.

  class EchoArgs(BaseModel):
      text: str

  @tool("echo", "Echo the text back", EchoArgs)
  async def echo(text: str) -> str:
      return text
"""

import inspect
import logging
from typing import Any, Callable, Optional

from pydantic import BaseModel, ValidationError

from agentgraph.shared.interfaces import ITool
from agentgraph.tools.tool_schemas import pydantic_to_parameters

logger = logging.getLogger(__name__)


class FunctionTool(ITool):
    """Validated wrapper around a callable. Returns error text instead of raising
    for invalid arguments; exceptions from the callable itself propagate."""

    def __init__(
        self,
        name: str,
        description: str,
        func: Callable[..., Any],
        args_model: Optional[type[BaseModel]] = None,
    ):
        self._name = name
        self._description = description
        self._func = func
        self._args_model = args_model

    @property
    def info(self) -> dict:
        parameters = (
            pydantic_to_parameters(self._args_model)
            if self._args_model
            else {"type": "object", "properties": {}}
        )
        return {
            "type": "function",
            "function": {
                "name": self._name,
                "description": self._description,
                "parameters": parameters,
            },
        }

    async def call(self, args: dict) -> str:
        kwargs = dict(args or {})
        if self._args_model is not None:
            try:
                kwargs = self._args_model.model_validate(kwargs).model_dump()
            except ValidationError as e:
                logger.warning(f"Invalid arguments for {self._name}: {e.error_count()} errors")
                return f"Invalid arguments for {self._name}: {e}"

        result = self._func(**kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result if isinstance(result, str) else str(result)


def tool(name: str, description: str, args_model: Optional[type[BaseModel]] = None):
    """Decorator form of FunctionTool."""
    def decorator(func: Callable[..., Any]) -> FunctionTool:
        return FunctionTool(name, description, func, args_model)
    return decorator


async def call_tool_safely(target: ITool, args: dict) -> str:
    """Invoke a tool and turn any exception into result text."""
    try:
        result = await target.call(args)
    except Exception as e:
        logger.warning(f"Tool {target.name} raised: {e}")
        return f"Tool call error: {e}"
    return result if isinstance(result, str) else str(result)
