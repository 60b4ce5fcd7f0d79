"""KiCad layout MCP server: entry point."""

from __future__ import annotations

from fastmcp import FastMCP

from .logging_config import create_logger, setup_logging
from .tools import TOOL_REGISTRY, register_router_tools

logger = create_logger(__name__)


def create_server() -> FastMCP:
    """Create and configure the KiCad layout MCP server."""
    mcp = FastMCP("kicad-layout-mcp")

    # Register direct tools with FastMCP (always visible to the LLM)
    for spec in TOOL_REGISTRY.values():
        if spec.direct:
            mcp.tool(spec.handler, name=spec.name, description=spec.description)

    # Register the 4 router meta-tools
    register_router_tools(mcp)

    direct = sum(1 for spec in TOOL_REGISTRY.values() if spec.direct)
    logger.info(f"Registered {direct} direct tools and {len(TOOL_REGISTRY) - direct} routed tools")
    return mcp


def main() -> None:
    """CLI entry point."""
    setup_logging()
    server = create_server()
    server.run()


if __name__ == "__main__":
    main()
