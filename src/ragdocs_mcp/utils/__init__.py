# src/ragdocs_mcp/utils/__init__.py
"""
Utilities package for the RAG Docs MCP Server
"""

from .chunking import TextChunker
from .logging import configure_logging, get_logger, log_operation

__all__ = [
    "TextChunker",
    "configure_logging",
    "get_logger",
    "log_operation"
]
