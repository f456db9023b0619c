"""
Idempotent collection provisioning.
"""

import logging

from ..config import CollectionSchema
from ..exceptions import ConfigurationError, StoreErrorKind, VectorStoreError
from .vector_store import VectorStoreGateway

logger = logging.getLogger(__name__)


class CollectionProvisioner:
    """Creates a collection with a fixed schema unless it already exists.

    An existing collection is trusted as-is unless ``verify_existing_schema``
    is set, in which case its vector size must match the schema.
    """

    def __init__(self, store: VectorStoreGateway, verify_existing_schema: bool = False):
        self.store = store
        self.verify_existing_schema = verify_existing_schema

    async def ensure_collection(self, schema: CollectionSchema) -> bool:
        """Make sure ``schema.name`` exists.

        Returns:
            True if this call created the collection, False if it was already there.

        Raises:
            VectorStoreError: listing or creating failed (classified)
            ConfigurationError: existing collection has a different vector size
                (only with ``verify_existing_schema``)
        """
        existing = await self.store.list_collections()
        if schema.name in existing:
            if self.verify_existing_schema:
                await self._verify(schema)
            return False

        try:
            await self.store.create_collection(schema)
        except VectorStoreError as e:
            # list-then-create is not atomic; a concurrent caller may have won
            if e.kind is StoreErrorKind.ALREADY_EXISTS:
                logger.info(f"Collection {schema.name} was created concurrently")
                return False
            raise
        return True

    async def _verify(self, schema: CollectionSchema) -> None:
        size = await self.store.collection_vector_size(schema.name)
        if size is not None and size != schema.vector_size:
            raise ConfigurationError(
                f"Collection '{schema.name}' has vector size {size}, "
                f"but the embedding model produces {schema.vector_size}",
                details={"collection": schema.name, "expected": schema.vector_size, "actual": size}
            )
