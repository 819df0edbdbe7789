"""coderabbitmcp: structured CodeRabbit reviews for MCP clients."""
