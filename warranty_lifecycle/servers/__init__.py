"""Servers Package - MCP server exposing the warranty lifecycle tools."""
