"""MCP server exposing Julia documentation, symbol listings and source code."""

__version__ = "0.1.0"
