"""
Transports: FastMCP server (stdio) and the HTTP app (FastAPI + streamable HTTP).
"""
