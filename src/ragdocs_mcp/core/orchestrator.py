"""
Retrieval orchestrator: the outward contract of the retrieval core.

Exposes ``ensure_collection_ready`` and ``embed``. Whatever goes wrong
underneath leaves this module as a RetrievalError with an ErrorKind.
"""

import logging
from typing import Any, Dict, List, Optional

from ..config import CollectionSchema, Settings
from ..exceptions import (
    ConfigurationError,
    EmbeddingFailure,
    ErrorKind,
    RetrievalError,
    StoreErrorKind,
    VectorStoreError,
)
from ..utils.logging import log_operation
from .embedding_gateway import EmbeddingGateway
from .provisioner import CollectionProvisioner
from .vector_store import VectorStoreGateway

logger = logging.getLogger(__name__)

_STORE_KINDS = {
    StoreErrorKind.UNAUTHORIZED: ErrorKind.UNAUTHORIZED,
    StoreErrorKind.UNREACHABLE: ErrorKind.UNREACHABLE,
    StoreErrorKind.ALREADY_EXISTS: ErrorKind.UNKNOWN,
    StoreErrorKind.UNKNOWN: ErrorKind.UNKNOWN,
}


def to_retrieval_error(exc: BaseException) -> RetrievalError:
    """Wrap any failure into the outward error envelope."""
    if isinstance(exc, RetrievalError):
        return exc
    if isinstance(exc, EmbeddingFailure):
        return RetrievalError(ErrorKind.EMBEDDING_FAILURE, exc.message, original_error=exc)
    if isinstance(exc, VectorStoreError):
        return RetrievalError(_STORE_KINDS[exc.kind], exc.message, original_error=exc)
    if isinstance(exc, ConfigurationError):
        return RetrievalError(ErrorKind.INTERNAL_ERROR, exc.message, original_error=exc)
    return RetrievalError(ErrorKind.INTERNAL_ERROR, f"Internal error: {exc}", original_error=exc)


class RetrievalOrchestrator:
    """Owns one embedding gateway and one vector store gateway."""

    def __init__(self,
                 embeddings: EmbeddingGateway,
                 store: VectorStoreGateway,
                 schema: CollectionSchema,
                 verify_existing_schema: bool = False):
        if schema.vector_size != embeddings.dimension:
            raise ConfigurationError(
                f"Collection vector size {schema.vector_size} does not match "
                f"embedding model '{embeddings.model_name}' dimension {embeddings.dimension}",
                details={"vector_size": schema.vector_size, "dimension": embeddings.dimension}
            )

        self.embeddings = embeddings
        self.store = store
        self.schema = schema
        self.provisioner = CollectionProvisioner(store, verify_existing_schema=verify_existing_schema)

    @classmethod
    def from_settings(cls, settings: Settings,
                      embeddings: Optional[EmbeddingGateway] = None,
                      store: Optional[VectorStoreGateway] = None) -> "RetrievalOrchestrator":
        return cls(
            embeddings or EmbeddingGateway(settings.embedding),
            store or VectorStoreGateway(settings.connection),
            settings.collection,
            verify_existing_schema=settings.verify_existing_schema,
        )

    @log_operation("ensure_collection_ready")
    async def ensure_collection_ready(self, name: Optional[str] = None) -> None:
        """Make sure the named collection exists with the configured schema.

        Raises:
            RetrievalError: Unauthorized, Unreachable, Unknown or InternalError
        """
        try:
            schema = self.schema if name is None else self.schema.for_collection(name)
            created = await self.provisioner.ensure_collection(schema)
        except Exception as e:
            raise to_retrieval_error(e) from e

        if created:
            logger.info(f"Collection {schema.name} is ready (created)")

    @log_operation("embed")
    async def embed(self, text: str) -> List[float]:
        """Embedding of ``text`` with exactly the configured dimensionality.

        Raises:
            RetrievalError: EmbeddingFailure, or InternalError for anything unexpected
        """
        try:
            return await self.embeddings.embed(text)
        except Exception as e:
            raise to_retrieval_error(e) from e

    def get_info(self) -> Dict[str, Any]:
        return {
            "collection": self.schema.name,
            "vector_size": self.schema.vector_size,
            "distance": self.schema.distance.value,
            "embeddings": self.embeddings.get_info(),
        }

    async def close(self) -> None:
        await self.store.close()
