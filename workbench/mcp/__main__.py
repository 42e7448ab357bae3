"""MCP package entry point -- allows ``python -m workbench.mcp``."""

from .server import run

if __name__ == "__main__":
    run()
