"""Workbench MCP server package.

Exposes workspace file, git and npm operations as MCP tools that any
MCP-compatible client can call over stdio.

Usage::

    # As a module:
    python -m workbench.mcp

    # Or import and run:
    from workbench.mcp import main
    asyncio.run(main())
"""

from .server import main, run  # noqa: F401

__all__ = ["main", "run"]
