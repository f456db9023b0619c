"""
Embedding gateway: one configured provider, one guarantee about vector length.
"""

import logging
from typing import Any, Dict, List, Optional

from ..config import EmbeddingProviderConfig
from ..exceptions import EmbeddingDimensionError, EmbeddingFailure
from ..utils.embeddings import EmbeddingBackend, create_embedding_provider

logger = logging.getLogger(__name__)


class EmbeddingGateway:
    """Wraps an embedding provider and enforces the configured dimensionality."""

    def __init__(self, config: EmbeddingProviderConfig,
                 provider: Optional[EmbeddingBackend] = None):
        self.config = config
        self.provider = provider or create_embedding_provider(config)

    @property
    def dimension(self) -> int:
        return self.config.dimension

    @property
    def model_name(self) -> str:
        return self.config.model

    async def embed(self, text: str) -> List[float]:
        """Embed ``text``.

        Returns:
            A list of exactly ``config.dimension`` floats.

        Raises:
            EmbeddingDimensionError: provider returned a vector of another length
            EmbeddingFailure: any other provider failure, original error chained
        """
        try:
            vector = await self.provider.generate(text, self.config.model)
        except EmbeddingFailure:
            raise
        except Exception as e:
            logger.warning(f"Embedding provider failed for model {self.config.model}: {e}")
            raise EmbeddingFailure(
                f"Failed to generate embeddings: {e}",
                details={"model": self.config.model, "provider": self.config.provider.value},
                original_error=e
            ) from e

        try:
            vector = [float(v) for v in vector]
        except (TypeError, ValueError) as e:
            raise EmbeddingFailure(
                f"Failed to generate embeddings: malformed provider response ({e})",
                original_error=e
            ) from e

        if len(vector) != self.config.dimension:
            raise EmbeddingDimensionError(self.config.dimension, len(vector), self.config.model)

        return vector

    def get_info(self) -> Dict[str, Any]:
        info = {
            "model": self.config.model,
            "dimension": self.config.dimension,
        }
        info.update(self.provider.get_info())
        return info
