"""Entry point for the SponsorCast MCP server."""

import logging

from .interface.mcp.server import create_server


def main():
    """Run the SponsorCast MCP server over stdio."""
    logging.basicConfig(level=logging.INFO)
    create_server().run(transport="stdio")


if __name__ == "__main__":
    main()
