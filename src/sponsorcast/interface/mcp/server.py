"""MCP server factory."""

from __future__ import annotations

import json

from mcp.server.fastmcp import FastMCP

from .tools import register_tools

SERVER_NAME = "sponsorcast"


def create_server() -> FastMCP:
    """Build and return a FastMCP server with the operator tools and resources registered."""
    server = FastMCP(SERVER_NAME)
    register_tools(server)
    _register_resources(server)
    return server


def _register_resources(server: FastMCP) -> None:
    """Register the read-only campaign catalog."""

    @server.resource("sponsorcast://catalog/campaigns", mime_type="application/json")
    def campaign_catalog() -> str:
        """Active campaigns with their remaining budget."""
        from sponsorcast.wiring import get_runtime

        campaigns = get_runtime().repository.list_campaigns(status="active")
        return json.dumps([
            {
                "campaign_id": c.campaign_id,
                "brand_name": c.brand_name,
                "product_name": c.product_name,
                "category": c.category,
                "payout_per_view": c.payout_per_view,
                "remaining_budget": c.remaining_budget,
            }
            for c in campaigns
        ])


if __name__ == "__main__":
    create_server().run(transport="stdio")
