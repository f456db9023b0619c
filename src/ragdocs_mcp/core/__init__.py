"""
Retrieval core: embedding gateway, vector store gateway, collection
provisioning and the orchestrator that ties them together.
"""

from .embedding_gateway import EmbeddingGateway
from .library import DocumentLibrary
from .orchestrator import RetrievalOrchestrator, to_retrieval_error
from .provisioner import CollectionProvisioner
from .vector_store import VectorStoreGateway

__all__ = [
    'CollectionProvisioner',
    'DocumentLibrary',
    'EmbeddingGateway',
    'RetrievalOrchestrator',
    'VectorStoreGateway',
    'to_retrieval_error',
]
