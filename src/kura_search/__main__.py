"""Entry point for the kura-search MCP server."""

from kura_search.server import create_server


def main() -> None:
    """Run the kura-search MCP server."""
    server = create_server()
    server.run(transport="stdio")


if __name__ == "__main__":
    main()
