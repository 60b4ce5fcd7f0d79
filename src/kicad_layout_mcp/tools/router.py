"""Tool router: meta-tools for dynamic tool discovery and execution.

The pipeline commands (project setup, board creation, layout, routing,
export) are exposed directly. The constraint and rule-editing commands are
reached through 4 router meta-tools:
  - list_tool_categories
  - get_category_tools
  - execute_tool
  - search_tools
"""

from __future__ import annotations

import inspect
import json
from typing import Any

from fastmcp import FastMCP

from ..constants import MAX_RESPONSE_CHARS
from .registry import TOOL_REGISTRY, accepts, get_categories


def _truncate_response(result: dict[str, Any]) -> dict[str, Any]:
    """Truncate oversized responses by trimming the largest list field."""
    try:
        raw = json.dumps(result, default=str)
    except (TypeError, ValueError):
        return result

    if len(raw) <= MAX_RESPONSE_CHARS:
        return result

    largest_key = None
    largest_len = 0
    for key, value in result.items():
        if isinstance(value, list) and len(value) > largest_len:
            largest_key = key
            largest_len = len(value)

    if largest_key is None or largest_len == 0:
        return result

    original_list = result[largest_key]
    result["_truncated"] = True
    result["_message"] = f"Response truncated: '{largest_key}' reduced from {largest_len} to {largest_len} items."

    # Binary-search for a list length that fits
    lo, hi = 0, largest_len
    while lo < hi:
        mid = (lo + hi + 1) // 2
        result[largest_key] = original_list[:mid]
        try:
            if len(json.dumps(result, default=str)) <= MAX_RESPONSE_CHARS:
                lo = mid
            else:
                hi = mid - 1
        except (TypeError, ValueError):
            hi = mid - 1

    result[largest_key] = original_list[:lo]
    result["_message"] = f"Response truncated: '{largest_key}' reduced from {largest_len} to {lo} items."
    return result


def list_tool_categories() -> dict[str, Any]:
    """List all available tool categories with tool counts.

    Use this to discover what specialized tools are available,
    then use get_category_tools to see tools in a specific category.
    """
    categories = get_categories()
    result: dict[str, Any] = {}
    for cat_name, tools in sorted(categories.items()):
        routed = [t for t in tools if not t.direct]
        if routed:
            result[cat_name] = {
                "tool_count": len(routed),
                "tools": [t.name for t in routed],
            }
    return {"categories": result}


def get_category_tools(category: str) -> dict[str, Any]:
    """Get detailed information about all tools in a category.

    Args:
        category: Category name from list_tool_categories.

    Returns tool names, descriptions, and parameter schemas.
    """
    categories = get_categories()
    if category not in categories:
        return {
            "error": (
                f"Unknown category: {category!r}."
                " Use list_tool_categories to see available categories."
            ),
        }
    tools = [t for t in categories[category] if not t.direct]
    if not tools:
        return {"error": f"No routed tools in category {category!r}."}
    return {
        "category": category,
        "tools": [
            {
                "name": t.name,
                "description": t.description,
                "parameters": t.parameters,
            }
            for t in tools
        ],
    }


async def execute_tool(tool_name: str, arguments: dict[str, Any] | None = None) -> dict[str, Any]:
    """Execute a tool by name with the given arguments.

    Use list_tool_categories and get_category_tools to discover available tools,
    then call them through this meta-tool.

    Args:
        tool_name: Name of the tool to execute.
        arguments: Tool arguments as a JSON object (optional).
    """
    if tool_name not in TOOL_REGISTRY:
        return {
            "error": (
                f"Unknown tool: {tool_name!r}."
                " Use search_tools or list_tool_categories to find tools."
            ),
        }

    spec = TOOL_REGISTRY[tool_name]
    args = arguments or {}
    problem = accepts(spec.handler, args)
    if problem is not None:
        return {"error": f"Invalid arguments for {tool_name}: {problem}"}

    result = spec.handler(**args)
    if inspect.isawaitable(result):
        result = await result
    if isinstance(result, dict):
        result = _truncate_response(result)
    return result  # type: ignore[no-any-return]


def search_tools(query: str) -> dict[str, Any]:
    """Search for tools by name or description.

    Args:
        query: Search term (e.g., 'constraint', 'outline', 'route', 'export').
    """
    query_lower = query.lower()
    results: list[dict[str, Any]] = []
    for tool in TOOL_REGISTRY.values():
        if query_lower in tool.name.lower() or query_lower in tool.description.lower():
            results.append(
                {
                    "name": tool.name,
                    "description": tool.description,
                    "category": tool.category,
                    "direct": tool.direct,
                }
            )
    return {"query": query, "result_count": len(results), "tools": results}


def register_router_tools(mcp: FastMCP) -> None:
    """Register the 4 router meta-tools with the FastMCP server."""
    for fn in (list_tool_categories, get_category_tools, execute_tool, search_tools):
        mcp.tool(fn)
