# src/ragdocs_mcp/config.py
"""
Configuration handler for the RAG Docs MCP Server

Loads configuration from a JSON file and environment variables, then
freezes it into typed settings objects that are passed explicitly to the
components that need them.
"""

import json
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_QDRANT_URL = "http://127.0.0.1:6333"
DEFAULT_LOG_DIR = Path.home() / ".mcp-servers" / "ragdocs" / "logs"

# Values under these keys stay strings even when they look numeric
STRING_KEYS = frozenset({"api_key", "model", "name"})


class Distance(str, Enum):
    """Distance metrics understood by Qdrant."""
    COSINE = "Cosine"
    EUCLID = "Euclid"
    DOT = "Dot"

    @classmethod
    def parse(cls, value: str) -> "Distance":
        aliases = {
            "cosine": cls.COSINE,
            "euclid": cls.EUCLID,
            "euclidean": cls.EUCLID,
            "dot": cls.DOT,
        }
        try:
            return aliases[str(value).strip().lower()]
        except KeyError:
            raise ConfigurationError(f"Unsupported distance metric: {value}")


class EmbeddingProvider(str, Enum):
    """Embedding backends."""
    OLLAMA = "ollama"
    SENTENCE_TRANSFORMERS = "sentence-transformers"

    @classmethod
    def parse(cls, value: str) -> "EmbeddingProvider":
        normalized = str(value).strip().lower().replace("_", "-")
        for member in cls:
            if member.value == normalized:
                return member
        raise ConfigurationError(f"Unsupported embedding provider: {value}")


@dataclass(frozen=True)
class ConnectionConfig:
    """Qdrant endpoint and credential."""
    url: str = DEFAULT_QDRANT_URL
    api_key: Optional[str] = field(default=None, repr=False)
    timeout: int = 30

    @property
    def is_local(self) -> bool:
        return any(host in self.url for host in ("localhost", "127.0.0.1", "0.0.0.0"))


@dataclass(frozen=True)
class EmbeddingProviderConfig:
    """Embedding backend, model and the dimensionality it must produce."""
    provider: EmbeddingProvider = EmbeddingProvider.OLLAMA
    model: str = "nomic-embed-text"
    dimension: int = 768
    base_url: str = "http://localhost:11434"
    timeout: float = 60.0
    device: str = "auto"
    cache_dir: Optional[str] = None
    normalize: bool = True

    def __post_init__(self):
        if self.dimension <= 0:
            raise ConfigurationError(f"Embedding dimension must be positive, got {self.dimension}")


@dataclass(frozen=True)
class CollectionSchema:
    """Schema a collection is created with."""
    name: str
    vector_size: int
    distance: Distance = Distance.COSINE
    segment_count: int = 2
    memmap_threshold: int = 20000
    replication_factor: int = 2

    def __post_init__(self):
        if not self.name:
            raise ConfigurationError("Collection name must not be empty")
        if self.vector_size <= 0:
            raise ConfigurationError(f"Vector size must be positive, got {self.vector_size}")
        if self.replication_factor <= 0:
            raise ConfigurationError(
                f"Replication factor must be positive, got {self.replication_factor}"
            )

    def for_collection(self, name: str) -> "CollectionSchema":
        """Same schema under another collection name."""
        return CollectionSchema(
            name=name,
            vector_size=self.vector_size,
            distance=self.distance,
            segment_count=self.segment_count,
            memmap_threshold=self.memmap_threshold,
            replication_factor=self.replication_factor,
        )


@dataclass(frozen=True)
class Settings:
    """Everything the server needs, fixed for the process lifetime."""
    connection: ConnectionConfig
    embedding: EmbeddingProviderConfig
    collection: CollectionSchema
    server_name: str = "mcp-ragdocs"
    log_dir: Path = DEFAULT_LOG_DIR
    log_level: str = "INFO"
    verify_existing_schema: bool = False
    search_limit: int = 5
    chunk_size: int = 1000
    chunk_overlap: int = 200


class Config:
    """Configuration management for the MCP server"""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or os.getenv("CONFIG_PATH", "config/server_config.json")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file and environment variables"""
        default_config = {
            "server": {
                "name": "mcp-ragdocs",
                "log_level": "INFO",
                "log_dir": str(DEFAULT_LOG_DIR)
            },
            "qdrant": {
                "url": DEFAULT_QDRANT_URL,
                "api_key": None,
                "timeout": 30
            },
            "embeddings": {
                "provider": "ollama",
                "model": "nomic-embed-text",
                "dimension": 768,
                "ollama_url": "http://localhost:11434",
                "timeout": 60,
                "device": "auto",
                "cache_dir": None,
                "normalize_embeddings": True
            },
            "collection": {
                "name": "documentation",
                "distance": "Cosine",
                "default_segment_number": 2,
                "memmap_threshold": 20000,
                "replication_factor": 2,
                "verify_existing_schema": False
            },
            "indexing": {
                "chunk_size": 1000,
                "chunk_overlap": 200
            },
            "search": {
                "max_results": 5
            }
        }

        if os.path.exists(self.config_path):
            try:
                with open(self.config_path, 'r') as f:
                    file_config = json.load(f)
                default_config = self._deep_merge(default_config, file_config)
                logger.info(f"Loaded configuration from {self.config_path}")
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Failed to load config file: {e}. Using defaults.")

        config = self._resolve_env_vars(default_config)
        config = self._apply_env_vars(config)
        config = self._post_process_config(config)

        return config

    def _deep_merge(self, dict1: Dict, dict2: Dict) -> Dict:
        """Deep merge two dictionaries"""
        result = dict1.copy()
        for key, value in dict2.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def _resolve_env_vars(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Resolve environment variable substitutions like ${VAR:-default}"""
        pattern = re.compile(r'\$\{([^}]+)\}')

        def replace_env_var(match):
            env_expr = match.group(1)
            if ':-' in env_expr:
                var_name, default_val = env_expr.split(':-', 1)
                return os.getenv(var_name, default_val)
            return os.getenv(env_expr, '')

        def resolve_value(value):
            if isinstance(value, str):
                return pattern.sub(replace_env_var, value)
            elif isinstance(value, dict):
                return {k: resolve_value(v) for k, v in value.items()}
            elif isinstance(value, list):
                return [resolve_value(item) for item in value]
            return value

        return resolve_value(config)

    def _apply_env_vars(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variables to configuration"""
        env_mappings = {
            "server.log_level": "LOG_LEVEL",
            "server.log_dir": "RAGDOCS_LOG_DIR",
            "qdrant.url": "QDRANT_URL",
            "qdrant.api_key": "QDRANT_API_KEY",
            "embeddings.provider": "EMBEDDING_PROVIDER",
            "embeddings.model": "EMBEDDING_MODEL",
            "embeddings.dimension": "EMBEDDING_DIMENSION",
            "embeddings.ollama_url": "OLLAMA_URL",
            "embeddings.cache_dir": "SENTENCE_TRANSFORMERS_HOME",
            "collection.name": "COLLECTION_NAME"
        }

        for config_path, env_var in env_mappings.items():
            env_value = os.getenv(env_var)
            if not env_value:
                continue

            keys = config_path.split('.')
            current = config
            for key in keys[:-1]:
                current = current.setdefault(key, {})

            last_key = keys[-1]
            if isinstance(current.get(last_key), bool):
                env_value = env_value.lower() in ('true', '1', 'yes')
            elif isinstance(current.get(last_key), int):
                try:
                    env_value = int(env_value)
                except ValueError:
                    logger.warning(f"Failed to convert {env_var}={env_value} to int")
                    continue

            current[last_key] = env_value
            logger.info(f"Applied environment variable {env_var}")

        return config

    def _post_process_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Convert string booleans and numbers produced by substitution"""
        def convert_value(value, key=None):
            if isinstance(value, str):
                if value.lower() in ('', 'none', 'null'):
                    return None
                if key in STRING_KEYS:
                    return value
                if value.lower() in ('true', 'false'):
                    return value.lower() == 'true'
                try:
                    if '.' not in value:
                        return int(value)
                    return float(value)
                except ValueError:
                    return value
            elif isinstance(value, dict):
                return {k: convert_value(v, k) for k, v in value.items()}
            elif isinstance(value, list):
                return [convert_value(item, key) for item in value]
            return value

        return convert_value(config)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation"""
        value = self.config
        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def __getitem__(self, key: str) -> Any:
        if '.' not in key:
            return self.config.get(key)
        return self.get(key)

    def __contains__(self, key: str) -> bool:
        value = self.config
        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return False
        return True

    def __repr__(self) -> str:
        return f"Config({self.config_path})"


def load_settings(config: Optional[Config] = None) -> Settings:
    """Freeze a Config into Settings.

    Raises:
        ConfigurationError: if a value cannot be mapped onto the typed settings.
    """
    config = config or Config()

    try:
        api_key = config.get("qdrant.api_key")
        connection = ConnectionConfig(
            url=str(config.get("qdrant.url") or DEFAULT_QDRANT_URL),
            api_key=str(api_key) if api_key else None,
            timeout=int(config.get("qdrant.timeout", 30)),
        )

        embedding = EmbeddingProviderConfig(
            provider=EmbeddingProvider.parse(config.get("embeddings.provider", "ollama")),
            model=str(config.get("embeddings.model", "nomic-embed-text")),
            dimension=int(config.get("embeddings.dimension", 768)),
            base_url=str(config.get("embeddings.ollama_url", "http://localhost:11434")),
            timeout=float(config.get("embeddings.timeout", 60)),
            device=str(config.get("embeddings.device", "auto")),
            cache_dir=config.get("embeddings.cache_dir"),
            normalize=bool(config.get("embeddings.normalize_embeddings", True)),
        )

        collection = CollectionSchema(
            name=str(config.get("collection.name", "documentation")),
            vector_size=embedding.dimension,
            distance=Distance.parse(config.get("collection.distance", "Cosine")),
            segment_count=int(config.get("collection.default_segment_number", 2)),
            memmap_threshold=int(config.get("collection.memmap_threshold", 20000)),
            replication_factor=int(config.get("collection.replication_factor", 2)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration value: {e}", original_error=e) from e

    if not connection.api_key and not connection.is_local:
        logger.warning(f"QDRANT_API_KEY is not set for remote Qdrant at {connection.url}")

    return Settings(
        connection=connection,
        embedding=embedding,
        collection=collection,
        server_name=str(config.get("server.name", "mcp-ragdocs")),
        log_dir=Path(str(config.get("server.log_dir") or DEFAULT_LOG_DIR)).expanduser(),
        log_level=str(config.get("server.log_level", "INFO")).upper(),
        verify_existing_schema=bool(config.get("collection.verify_existing_schema", False)),
        search_limit=int(config.get("search.max_results", 5)),
        chunk_size=int(config.get("indexing.chunk_size", 1000)),
        chunk_overlap=int(config.get("indexing.chunk_overlap", 200)),
    )
