"""
Outlook Calendar MCP server.

Exposes Microsoft Graph calendar tools over MCP (stdio or HTTP).
"""

__version__ = "0.1.0"
