"""
ai_context_mcp: FastMCP stdio server exposing an .ai-context folder as MCP tools.

This package discovers agents, guidelines and frameworks stored as markdown files under a
single root directory, confines all file access to that root, and serves each resource as
a dynamically generated load_* tool to MCP-aware clients.
"""

__version__: str = "0.1.0"


def version() -> str:
    return __version__


__all__: list[str] = ["__version__", "version"]
