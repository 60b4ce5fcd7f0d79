"""Unified tool registry: single source of truth for all command definitions."""

from __future__ import annotations

import functools
import inspect
import json
import traceback
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..exceptions import LayoutMcpError, ValidationError
from ..logging_config import create_logger, request_scope

if TYPE_CHECKING:
    from collections.abc import Callable

logger = create_logger(__name__)


@dataclass
class ToolSpec:
    """Declarative specification for a single MCP tool."""

    name: str
    description: str
    parameters: dict[str, Any]
    handler: Callable[..., Any]
    category: str = "general"
    direct: bool = False  # True = always visible to LLM; False = discoverable via router


TOOL_REGISTRY: dict[str, ToolSpec] = {}


def error_payload(exc: BaseException) -> dict[str, Any]:
    """``{"error", "error_type", "error_code", "trace", ...}`` for a failed command."""
    if isinstance(exc, LayoutMcpError):
        payload = exc.to_dict()
    else:
        payload = {
            "error": str(exc) or exc.__class__.__name__,
            "error_type": exc.__class__.__name__,
            "error_code": "INTERNAL_ERROR",
        }
    payload["trace"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return payload


def command(name: str, handler: Callable[..., dict[str, Any]]) -> Callable[..., dict[str, Any]]:
    """Wrap a handler so every call runs in its own request scope and never raises."""

    @functools.wraps(handler)
    def wrapper(*args: Any, **kwargs: Any) -> dict[str, Any]:
        with request_scope():
            logger.info(f"Command {name} started")
            try:
                result = handler(*args, **kwargs)
            except Exception as e:
                logger.exception(f"Command {name} failed: {e}")
                return error_payload(e)
            logger.info(f"Command {name} finished")
            return result

    return wrapper


def register_tool(
    name: str,
    description: str,
    parameters: dict[str, Any],
    handler: Callable[..., Any],
    *,
    category: str = "general",
    direct: bool = False,
) -> None:
    """Register a tool in the global registry."""
    TOOL_REGISTRY[name] = ToolSpec(
        name=name,
        description=description,
        parameters=parameters,
        handler=command(name, handler),
        category=category,
        direct=direct,
    )


def get_categories() -> dict[str, list[ToolSpec]]:
    """Return tools grouped by category."""
    categories: dict[str, list[ToolSpec]] = {}
    for tool in TOOL_REGISTRY.values():
        categories.setdefault(tool.category, []).append(tool)
    return categories


def json_arg(value: Any, name: str) -> Any:
    """Accept a decoded JSON value or a JSON string for argument ``name``."""
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Argument {name!r} is not valid JSON: {e}", field=name) from e


def accepts(handler: Callable[..., Any], arguments: dict[str, Any]) -> str | None:
    """Why ``arguments`` cannot be bound to ``handler``, or None when they can."""
    try:
        inspect.signature(handler).bind(**arguments)
    except TypeError as e:
        return str(e)
    return None
