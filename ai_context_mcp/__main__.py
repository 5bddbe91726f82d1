"""
Package entry point for launching the ai_context_mcp server module.

This allows running:
  - python -m ai_context_mcp            -> invokes ai_context_mcp.server CLI
  - python -m ai_context_mcp.server     -> also available directly via the server module

The entry point delegates to ai_context_mcp.server.main() which supports both
CLI inspection modes and starting the stdio MCP server.
"""

from ai_context_mcp.server import main

if __name__ == "__main__":
    main()
