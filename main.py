"""Main entry point for coderabbitmcp."""

from coderabbitmcp.server import mcp


def main() -> None:
    """Run the coderabbitmcp MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
