"""
Typed facade over the Qdrant async client.

Every method converts raw client failures into a classified
VectorStoreError so callers never handle transport exceptions.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Set

from qdrant_client import AsyncQdrantClient
from qdrant_client.http import models

from ..config import CollectionSchema, ConnectionConfig
from .classification import to_store_error

logger = logging.getLogger(__name__)


class VectorStoreGateway:
    """Collection list/create/query/upsert against one Qdrant endpoint."""

    def __init__(self, connection: ConnectionConfig,
                 client: Optional[AsyncQdrantClient] = None):
        self.connection = connection
        self.client = client or AsyncQdrantClient(
            url=connection.url,
            api_key=connection.api_key,
            timeout=connection.timeout,
        )

    async def list_collections(self) -> Set[str]:
        try:
            response = await self.client.get_collections()
        except Exception as e:
            raise to_store_error(e, "initialize Qdrant collection") from e
        return {c.name for c in response.collections}

    async def create_collection(self, schema: CollectionSchema) -> None:
        try:
            await self.client.create_collection(
                collection_name=schema.name,
                vectors_config=models.VectorParams(
                    size=schema.vector_size,
                    distance=models.Distance(schema.distance.value),
                ),
                optimizers_config=models.OptimizersConfigDiff(
                    default_segment_number=schema.segment_count,
                    memmap_threshold=schema.memmap_threshold,
                ),
                replication_factor=schema.replication_factor,
            )
        except Exception as e:
            raise to_store_error(e, "initialize Qdrant collection") from e
        logger.info(
            f"Created collection {schema.name} "
            f"(size: {schema.vector_size}, distance: {schema.distance.value})"
        )

    async def collection_vector_size(self, name: str) -> Optional[int]:
        """Vector size of an existing collection, None if it uses named vectors."""
        try:
            info = await self.client.get_collection(name)
        except Exception as e:
            raise to_store_error(e, f"read collection {name}") from e

        vectors = info.config.params.vectors
        if isinstance(vectors, models.VectorParams):
            return vectors.size
        if isinstance(vectors, dict) and len(vectors) == 1:
            return next(iter(vectors.values())).size
        return None

    async def query(self, name: str, vector: List[float], limit: int = 5,
                    score_threshold: Optional[float] = None) -> List[models.ScoredPoint]:
        try:
            response = await self.client.query_points(
                collection_name=name,
                query=vector,
                limit=limit,
                score_threshold=score_threshold,
                with_payload=True,
            )
        except Exception as e:
            raise to_store_error(e, "search documentation") from e
        return list(response.points)

    async def upsert(self, name: str, points: Sequence[models.PointStruct]) -> None:
        try:
            await self.client.upsert(collection_name=name, points=list(points), wait=True)
        except Exception as e:
            raise to_store_error(e, "store documents") from e

    async def scroll_payloads(self, name: str, batch_size: int = 100) -> List[Dict[str, Any]]:
        """All point payloads of a collection."""
        payloads: List[Dict[str, Any]] = []
        offset = None
        try:
            while True:
                points, offset = await self.client.scroll(
                    collection_name=name,
                    limit=batch_size,
                    offset=offset,
                    with_payload=True,
                    with_vectors=False,
                )
                payloads.extend(point.payload or {} for point in points)
                if offset is None:
                    break
        except Exception as e:
            raise to_store_error(e, "list sources") from e
        return payloads

    async def delete_by_source(self, name: str, urls: Sequence[str]) -> None:
        selector = models.FilterSelector(
            filter=models.Filter(
                must=[models.FieldCondition(key="url", match=models.MatchAny(any=list(urls)))]
            )
        )
        try:
            await self.client.delete(collection_name=name, points_selector=selector, wait=True)
        except Exception as e:
            raise to_store_error(e, "remove documentation") from e

    async def delete_stale_chunks(self, name: str, url: str, keep: int) -> None:
        """Delete chunks of ``url`` whose chunk_index is ``keep`` or higher."""
        selector = models.FilterSelector(
            filter=models.Filter(
                must=[
                    models.FieldCondition(key="url", match=models.MatchValue(value=url)),
                    models.FieldCondition(key="chunk_index", range=models.Range(gte=keep)),
                ]
            )
        )
        try:
            await self.client.delete(collection_name=name, points_selector=selector, wait=True)
        except Exception as e:
            raise to_store_error(e, "store documents") from e

    async def close(self) -> None:
        await self.client.close()
