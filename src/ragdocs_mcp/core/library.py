"""
Document operations behind the MCP tools: search, add, list and remove.

Built on the orchestrator, so the collection is provisioned before any
read or write and all failures come out as RetrievalError.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from qdrant_client.http import models

from ..exceptions import RetrievalError
from ..utils.chunking import TextChunker
from ..utils.logging import log_operation
from .orchestrator import RetrievalOrchestrator, to_retrieval_error

logger = logging.getLogger(__name__)

POINT_NAMESPACE = uuid.UUID("6f1c9a52-1d0c-4c57-9a55-3e0f4c1b2d7e")


def point_id(url: str, chunk_index: int) -> str:
    """Stable id so re-adding a document overwrites its chunks."""
    return str(uuid.uuid5(POINT_NAMESPACE, f"{url}#{chunk_index}"))


class DocumentLibrary:
    """Documentation stored in one collection."""

    def __init__(self, orchestrator: RetrievalOrchestrator, chunker: Optional[TextChunker] = None):
        self.orchestrator = orchestrator
        self.chunker = chunker or TextChunker()

    @property
    def collection_name(self) -> str:
        return self.orchestrator.schema.name

    @log_operation("search_documentation")
    async def search(self, query: str, limit: int = 5,
                     score_threshold: Optional[float] = None) -> List[Dict[str, Any]]:
        await self.orchestrator.ensure_collection_ready(self.collection_name)
        vector = await self.orchestrator.embed(query)
        try:
            points = await self.orchestrator.store.query(
                self.collection_name, vector, limit=limit, score_threshold=score_threshold
            )
        except Exception as e:
            raise to_retrieval_error(e) from e

        results = []
        for point in points:
            payload = point.payload or {}
            results.append({
                "text": payload.get("text", ""),
                "url": payload.get("url", ""),
                "title": payload.get("title", ""),
                "chunk_index": payload.get("chunk_index", 0),
                "score": point.score,
            })
        return results

    @log_operation("add_documentation")
    async def add(self, url: str, content: str, title: Optional[str] = None) -> Dict[str, Any]:
        chunks = self.chunker.split(content)
        if not chunks:
            return {"url": url, "chunks": 0}

        await self.orchestrator.ensure_collection_ready(self.collection_name)

        timestamp = datetime.now(timezone.utc).isoformat()
        points = []
        for index, chunk in enumerate(chunks):
            vector = await self.orchestrator.embed(chunk)
            points.append(models.PointStruct(
                id=point_id(url, index),
                vector=vector,
                payload={
                    "text": chunk,
                    "url": url,
                    "title": title or url,
                    "chunk_index": index,
                    "timestamp": timestamp,
                },
            ))

        try:
            # Point ids are stable per (url, index), so the upsert overwrites in place
            await self.orchestrator.store.upsert(self.collection_name, points)
            await self.orchestrator.store.delete_stale_chunks(self.collection_name, url, len(points))
        except Exception as e:
            raise to_retrieval_error(e) from e

        logger.info(f"Stored {len(points)} chunks for {url}")
        return {"url": url, "title": title or url, "chunks": len(points)}

    @log_operation("list_sources")
    async def list_sources(self) -> List[Dict[str, Any]]:
        await self.orchestrator.ensure_collection_ready(self.collection_name)
        try:
            payloads = await self.orchestrator.store.scroll_payloads(self.collection_name)
        except Exception as e:
            raise to_retrieval_error(e) from e

        sources: Dict[str, Dict[str, Any]] = {}
        for payload in payloads:
            url = payload.get("url")
            if not url:
                continue
            entry = sources.setdefault(url, {"url": url, "title": payload.get("title", url), "chunks": 0})
            entry["chunks"] += 1
        return sorted(sources.values(), key=lambda s: s["url"])

    @log_operation("remove_documentation")
    async def remove(self, urls: Sequence[str]) -> Dict[str, Any]:
        await self.orchestrator.ensure_collection_ready(self.collection_name)
        try:
            await self.orchestrator.store.delete_by_source(self.collection_name, urls)
        except Exception as e:
            raise to_retrieval_error(e) from e
        return {"removed": list(urls)}

    async def health(self) -> Dict[str, Any]:
        """Status of the store and the embedding provider; never raises."""
        status: Dict[str, Any] = {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "services": {},
        }

        try:
            await self.orchestrator.ensure_collection_ready(self.collection_name)
            status["services"]["qdrant"] = {
                "status": "healthy",
                "url": self.orchestrator.store.connection.url,
                "collection": self.collection_name,
            }
        except RetrievalError as e:
            status["services"]["qdrant"] = {"status": "unhealthy", **e.to_dict()}
            status["status"] = "unhealthy"

        try:
            vector = await self.orchestrator.embed("health check")
            status["services"]["embeddings"] = {
                "status": "healthy",
                "dimension": len(vector),
                **self.orchestrator.embeddings.get_info(),
            }
        except RetrievalError as e:
            status["services"]["embeddings"] = {"status": "unhealthy", **e.to_dict()}
            status["status"] = "unhealthy"

        return status
