"""
Pytest configuration for RAG Docs MCP tests
"""

import asyncio
import sys
from pathlib import Path
from typing import Dict, List, Optional

# Add src to Python path for all tests
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

import httpx
import pytest
from qdrant_client.http import models
from qdrant_client.http.exceptions import UnexpectedResponse

from ragdocs_mcp.config import (
    CollectionSchema,
    ConnectionConfig,
    Distance,
    EmbeddingProvider,
    EmbeddingProviderConfig,
    Settings,
)
from ragdocs_mcp.core.embedding_gateway import EmbeddingGateway
from ragdocs_mcp.core.orchestrator import RetrievalOrchestrator
from ragdocs_mcp.core.vector_store import VectorStoreGateway

DIMENSION = 768


def _matches(payload: dict, condition: models.FieldCondition) -> bool:
    value = payload.get(condition.key)
    if condition.range is not None:
        return value is not None and value >= condition.range.gte
    if isinstance(condition.match, models.MatchAny):
        return value in condition.match.any
    return value == condition.match.value


class FakeQdrantClient:
    """In-memory stand-in for AsyncQdrantClient.

    Yields to the event loop inside every call so concurrent callers
    interleave the way they do against a remote server.
    """

    def __init__(self, existing: Optional[List[str]] = None):
        self.collections: Dict[str, dict] = {name: {"size": DIMENSION} for name in existing or []}
        self.points: Dict[str, Dict[str, models.PointStruct]] = {name: {} for name in existing or []}
        self.create_calls: List[dict] = []
        self.list_error: Optional[Exception] = None
        self.create_error: Optional[Exception] = None
        self.upsert_error: Optional[Exception] = None
        self.closed = False

    async def get_collections(self):
        await asyncio.sleep(0)
        if self.list_error:
            raise self.list_error
        return models.CollectionsResponse(
            collections=[models.CollectionDescription(name=name) for name in self.collections]
        )

    async def create_collection(self, collection_name, vectors_config, optimizers_config=None,
                                replication_factor=None):
        await asyncio.sleep(0)
        self.create_calls.append({
            "collection_name": collection_name,
            "vectors_config": vectors_config,
            "optimizers_config": optimizers_config,
            "replication_factor": replication_factor,
        })
        if self.create_error:
            raise self.create_error
        if collection_name in self.collections:
            raise UnexpectedResponse(
                status_code=409,
                reason_phrase="Conflict",
                content=f'{{"status":{{"error":"Collection `{collection_name}` already exists!"}}}}'.encode(),
                headers=httpx.Headers(),
            )
        self.collections[collection_name] = {"size": vectors_config.size}
        self.points[collection_name] = {}
        return True

    async def get_collection(self, collection_name):
        await asyncio.sleep(0)
        size = self.collections[collection_name]["size"]
        info = type("Info", (), {})()
        info.config = type("Cfg", (), {})()
        info.config.params = type("Params", (), {})()
        info.config.params.vectors = models.VectorParams(size=size, distance=models.Distance.COSINE)
        return info

    async def upsert(self, collection_name, points, wait=True):
        await asyncio.sleep(0)
        if self.upsert_error:
            raise self.upsert_error
        for point in points:
            self.points[collection_name][str(point.id)] = point

    async def query_points(self, collection_name, query, limit=10, score_threshold=None,
                           with_payload=True):
        await asyncio.sleep(0)
        stored = list(self.points[collection_name].values())
        scored = [
            models.ScoredPoint(
                id=point.id,
                version=0,
                score=sum(a * b for a, b in zip(point.vector, query)),
                payload=point.payload,
            )
            for point in stored
        ]
        scored.sort(key=lambda p: p.score, reverse=True)
        if score_threshold is not None:
            scored = [p for p in scored if p.score >= score_threshold]
        return models.QueryResponse(points=scored[:limit])

    async def scroll(self, collection_name, limit=10, offset=None, with_payload=True,
                     with_vectors=False):
        await asyncio.sleep(0)
        stored = list(self.points[collection_name].values())
        start = offset or 0
        batch = stored[start:start + limit]
        next_offset = start + limit if start + limit < len(stored) else None
        records = [models.Record(id=p.id, payload=p.payload) for p in batch]
        return records, next_offset

    async def delete(self, collection_name, points_selector, wait=True):
        await asyncio.sleep(0)
        conditions = points_selector.filter.must
        self.points[collection_name] = {
            pid: p for pid, p in self.points[collection_name].items()
            if not all(_matches(p.payload, condition) for condition in conditions)
        }

    async def close(self):
        self.closed = True


class FakeEmbeddingProvider:
    """Deterministic provider: a one-hot-ish vector keyed on the text."""

    def __init__(self, dimension: int = DIMENSION, error: Optional[Exception] = None):
        self.dimension = dimension
        self.error = error
        self.calls: List[tuple] = []

    async def generate(self, text: str, model: str) -> List[float]:
        await asyncio.sleep(0)
        self.calls.append((text, model))
        if self.error:
            raise self.error
        vector = [0.0] * self.dimension
        for i, ch in enumerate(text):
            vector[(ord(ch) + i) % self.dimension] += 1.0
        return vector

    def get_info(self):
        return {"provider": "fake"}


@pytest.fixture
def embedding_config():
    return EmbeddingProviderConfig(
        provider=EmbeddingProvider.OLLAMA,
        model="nomic-embed-text",
        dimension=DIMENSION,
    )


@pytest.fixture
def schema():
    return CollectionSchema(name="docs", vector_size=DIMENSION, distance=Distance.COSINE)


@pytest.fixture
def settings(embedding_config, schema, tmp_path):
    return Settings(
        connection=ConnectionConfig(url="http://127.0.0.1:6333"),
        embedding=embedding_config,
        collection=schema,
        log_dir=tmp_path / "logs",
        chunk_size=200,
        chunk_overlap=20,
    )


@pytest.fixture
def fake_client():
    return FakeQdrantClient()


@pytest.fixture
def fake_provider():
    return FakeEmbeddingProvider()


@pytest.fixture
def store(fake_client):
    return VectorStoreGateway(ConnectionConfig(), client=fake_client)


@pytest.fixture
def embeddings(embedding_config, fake_provider):
    return EmbeddingGateway(embedding_config, provider=fake_provider)


@pytest.fixture
def orchestrator(embeddings, store, schema):
    return RetrievalOrchestrator(embeddings, store, schema)
