# src/ragdocs_mcp/utils/embeddings.py
"""
Embedding providers for the RAG Docs MCP Server

Each provider implements ``generate(text, model) -> List[float]`` as a
coroutine. Two backends are available: an Ollama HTTP server and a local
sentence-transformers model.
"""

import asyncio
import os
import logging
from pathlib import Path
from typing import List, Dict, Any, Optional, Protocol

import httpx
import numpy as np
import torch
from sentence_transformers import SentenceTransformer

from ..config import EmbeddingProvider, EmbeddingProviderConfig

logger = logging.getLogger(__name__)


class EmbeddingBackend(Protocol):
    """What the embedding gateway needs from a provider."""

    async def generate(self, text: str, model: str) -> List[float]:
        ...

    def get_info(self) -> Dict[str, Any]:
        ...


def l2_normalize(vector: List[float]) -> List[float]:
    arr = np.asarray(vector, dtype=np.float32)
    norm = float(np.linalg.norm(arr))
    if norm == 0.0:
        return arr.tolist()
    return (arr / norm).tolist()


class OllamaEmbeddingProvider:
    """Generates embeddings through an Ollama server's REST API."""

    def __init__(self, base_url: str = "http://localhost:11434",
                 timeout: float = 60.0,
                 normalize: bool = False,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.normalize = normalize
        self._transport = transport

        logger.debug(f"Initialized OllamaEmbeddingProvider: base_url={self.base_url}")

    async def generate(self, text: str, model: str) -> List[float]:
        """Embed ``text`` with ``model``.

        Uses ``/api/embed`` and falls back to the older ``/api/embeddings``
        endpoint when the server does not know the new one. A 404 that names
        the model means the model is missing and is raised as is.

        Raises:
            httpx.HTTPError: on transport or HTTP status failures
            ValueError: when the response carries no embedding
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(
                f"{self.base_url}/api/embed",
                json={"model": model, "input": [text]},
            )
            if response.status_code == 404 and "model" in response.text.lower():
                raise httpx.HTTPStatusError(
                    f"Ollama model {model} is not available: {response.text}",
                    request=response.request,
                    response=response,
                )
            if response.status_code == 404:
                legacy = await client.post(
                    f"{self.base_url}/api/embeddings",
                    json={"model": model, "prompt": text},
                )
                legacy.raise_for_status()
                vector = legacy.json().get("embedding")
            else:
                response.raise_for_status()
                embeddings = response.json().get("embeddings") or []
                vector = embeddings[0] if embeddings else None

        if not isinstance(vector, list):
            raise ValueError(f"Ollama returned no embedding for model {model}")

        vector = [float(v) for v in vector]
        return l2_normalize(vector) if self.normalize else vector

    def get_info(self) -> Dict[str, Any]:
        return {
            "provider": EmbeddingProvider.OLLAMA.value,
            "base_url": self.base_url,
            "normalize": self.normalize,
        }


class SentenceTransformerProvider:
    """Generates embeddings with a local sentence-transformers model.

    The model is loaded lazily on first use. Encoding is CPU/GPU bound so it
    runs in the default executor to keep the event loop free.
    """

    def __init__(self,
                 cache_dir: Optional[str] = None,
                 device: Optional[str] = None,
                 normalize: bool = True):
        self.cache_dir = cache_dir or os.path.expanduser("~/.cache/ragdocs-mcp/models")
        self.normalize = normalize
        self.device = device if device and device != "auto" else self._auto_detect_device()
        self._models: Dict[str, SentenceTransformer] = {}

        logger.info(f"Initialized SentenceTransformerProvider on device: {self.device}")

    def _auto_detect_device(self) -> str:
        """Auto-detect the best available device"""
        if torch.cuda.is_available():
            return "cuda"
        if hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
            return "mps"
        return "cpu"

    def _load_model(self, model_name: str) -> SentenceTransformer:
        model = self._models.get(model_name)
        if model is None:
            logger.info(f"Loading embedding model: {model_name}")
            Path(self.cache_dir).mkdir(parents=True, exist_ok=True)
            model = SentenceTransformer(model_name, device=self.device, cache_folder=self.cache_dir)
            model.eval()
            self._models[model_name] = model
            logger.info(
                f"Model loaded successfully. Dimension: {model.get_sentence_embedding_dimension()}"
            )
        return model

    def _encode(self, text: str, model_name: str) -> List[float]:
        model = self._load_model(model_name)
        embedding = model.encode(
            [text],
            show_progress_bar=False,
            normalize_embeddings=self.normalize
        )
        return np.asarray(embedding[0], dtype=np.float32).tolist()

    async def generate(self, text: str, model: str) -> List[float]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._encode, text, model)

    def get_info(self) -> Dict[str, Any]:
        return {
            "provider": EmbeddingProvider.SENTENCE_TRANSFORMERS.value,
            "device": self.device,
            "cache_dir": self.cache_dir,
            "normalize": self.normalize,
            "loaded_models": sorted(self._models),
            "available_devices": {
                "cpu": True,
                "cuda": torch.cuda.is_available(),
                "mps": hasattr(torch.backends, 'mps') and torch.backends.mps.is_available()
            }
        }


def create_embedding_provider(config: EmbeddingProviderConfig) -> EmbeddingBackend:
    """Build the provider named in the configuration."""
    if config.provider is EmbeddingProvider.OLLAMA:
        return OllamaEmbeddingProvider(
            base_url=config.base_url,
            timeout=config.timeout,
            normalize=config.normalize,
        )
    return SentenceTransformerProvider(
        cache_dir=config.cache_dir,
        device=config.device,
        normalize=config.normalize,
    )
