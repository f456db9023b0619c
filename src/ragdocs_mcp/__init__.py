"""
RAG Docs MCP Server Package

This package provides a Model Context Protocol (MCP) server exposing
documentation retrieval tools backed by the Qdrant vector database.
"""

__version__ = "0.1.0"
