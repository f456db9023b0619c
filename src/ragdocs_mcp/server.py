#!/usr/bin/env python3
"""
RAG Docs MCP Server

Documentation search and storage tools over MCP, backed by Qdrant and an
embedding provider (Ollama or sentence-transformers).
"""
import argparse
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP

from . import __version__
from .config import Config, Settings, load_settings
from .core.library import DocumentLibrary
from .core.orchestrator import RetrievalOrchestrator
from .exceptions import ConfigurationError, RetrievalError
from .utils.chunking import TextChunker
from .utils.logging import configure_logging

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 1000
MAX_RESULTS = 100


def _invalid(error: str, details: str) -> Dict[str, Any]:
    return {"error": error, "error_code": "INVALID_INPUT", "details": details}


def build_server(settings: Settings,
                 orchestrator: Optional[RetrievalOrchestrator] = None) -> FastMCP:
    """Create the FastMCP server with all tools bound to one document library."""
    orchestrator = orchestrator or RetrievalOrchestrator.from_settings(settings)
    library = DocumentLibrary(
        orchestrator,
        TextChunker(chunk_size=settings.chunk_size, chunk_overlap=settings.chunk_overlap)
    )

    @asynccontextmanager
    async def lifespan(server: FastMCP):
        try:
            yield {"library": library}
        finally:
            await orchestrator.close()
            logger.info("Qdrant client closed")

    mcp = FastMCP(settings.server_name, lifespan=lifespan)

    @mcp.tool()
    async def search_documentation(query: str, limit: int = settings.search_limit) -> Dict[str, Any]:
        """
        Search stored documentation using natural language.

        Returns the most relevant chunks with their source URL, title and
        similarity score.

        Args:
            query: Natural language search query
            limit: Maximum number of results (1-100)
        """
        if not query or not isinstance(query, str):
            return _invalid("Invalid query", "Query must be a non-empty string")
        if len(query) > MAX_QUERY_LENGTH:
            return _invalid("Query too long", f"Query must be less than {MAX_QUERY_LENGTH} characters")
        if limit < 1 or limit > MAX_RESULTS:
            return _invalid("Invalid result count", f"limit must be between 1 and {MAX_RESULTS}")

        try:
            results = await library.search(query, limit=limit)
        except RetrievalError as e:
            return e.to_dict()
        return {"query": query, "results": results, "total": len(results)}

    @mcp.tool()
    async def add_documentation(url: str, content: str, title: Optional[str] = None) -> Dict[str, Any]:
        """
        Add a document to the documentation store.

        The content is split into chunks, embedded and stored under the
        given source URL. Adding the same URL again replaces its chunks.

        Args:
            url: Source URL or identifier of the document
            content: Full document text
            title: Optional human-readable title
        """
        if not url or not isinstance(url, str):
            return _invalid("Invalid url", "url must be a non-empty string")
        if not content or not content.strip():
            return _invalid("Invalid content", "content must be non-empty text")

        try:
            return await library.add(url, content, title=title)
        except RetrievalError as e:
            return e.to_dict()

    @mcp.tool()
    async def list_sources() -> Dict[str, Any]:
        """List all documentation sources currently stored."""
        try:
            sources = await library.list_sources()
        except RetrievalError as e:
            return e.to_dict()
        return {"sources": sources, "total": len(sources)}

    @mcp.tool()
    async def remove_documentation(urls: List[str]) -> Dict[str, Any]:
        """
        Remove documentation sources from the store.

        Args:
            urls: Source URLs whose chunks should be deleted
        """
        if not urls or not all(isinstance(u, str) and u for u in urls):
            return _invalid("Invalid urls", "urls must be a non-empty list of strings")

        try:
            return await library.remove(urls)
        except RetrievalError as e:
            return e.to_dict()

    @mcp.tool()
    async def health_check() -> Dict[str, Any]:
        """Check Qdrant connectivity, collection readiness and the embedding provider."""
        status = await library.health()
        status["version"] = __version__
        return status

    return mcp


def main():
    parser = argparse.ArgumentParser(description="RAG Docs MCP Server")
    parser.add_argument("--config", help="Path to JSON config file (overrides CONFIG_PATH)")
    parser.add_argument("--env-file", help="Path to .env file")
    args = parser.parse_args()

    env_path = Path(args.env_file) if args.env_file else Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config = Config(args.config or os.getenv("CONFIG_PATH"))
    try:
        settings = load_settings(config)
    except ConfigurationError as e:
        parser.error(e.message)

    configure_logging(settings.log_dir, settings.log_level)
    logger.info(
        f"Starting RAG Docs MCP server {__version__} "
        f"(qdrant: {settings.connection.url}, collection: {settings.collection.name}, "
        f"embeddings: {settings.embedding.provider.value}/{settings.embedding.model})"
    )

    mcp = build_server(settings)
    try:
        mcp.run()
    except KeyboardInterrupt:
        logger.info("Shutting down...")


if __name__ == "__main__":
    main()
