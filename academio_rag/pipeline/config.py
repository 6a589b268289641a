"""Pipeline configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import os
import re

import yaml


def _expand_env_var(value: str) -> str:
    """Expand environment variables in the form ${VAR:-default}.

    Args:
        value: String possibly containing ${VAR:-default}

    Returns:
        Expanded string with environment variable or default value
    """
    if not isinstance(value, str):
        return value

    # Match ${VAR:-default} or ${VAR-default} or ${VAR}
    pattern = r"\$\{([^:}-]+)(?::?-([^}]*))?\}"

    def replace_env(match):
        var_name = match.group(1)
        default_value = match.group(2) or ""
        return os.environ.get(var_name, default_value)

    return re.sub(pattern, replace_env, value)


def _expand_env(value):
    """Recursively expand env vars in strings inside dicts/lists."""
    if isinstance(value, str):
        return _expand_env_var(value)
    if isinstance(value, dict):
        return {k: _expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env(v) for v in value]
    return value


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


@dataclass(frozen=True)
class CorpusConfig:
    root: str = "data/curriculum/nem-2023"
    collection_name: str = "curriculum_standards"


@dataclass(frozen=True)
class ChunkingConfig:
    """Chunking and batching configuration."""

    chunk_size: int = 1000
    chunk_overlap: int = 200
    batch_size: int = 50
    embed_workers: int = 1
    allow_unembedded_fallback: bool = True


@dataclass(frozen=True)
class EmbeddingConfig:
    provider: str = "ollama"
    base_url: str = "http://localhost:11434"
    model: str = "qwen3-embedding"
    timeout: float = 60.0


@dataclass(frozen=True)
class VectorStoreConfig:
    database_url: str = ""
    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: str = "postgres"
    database: str = "academio"
    timeout: float = 30.0
    pool_max_size: int = 4

    def get_database_url(self) -> str:
        """Get database connection URL.

        An explicit ``database_url`` wins; otherwise the URL is built from the
        individual host/port/user parameters.
        """
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.user}:{self.password}"
            f"@{self.host}:{self.port}/{self.database}"
        )


@dataclass(frozen=True)
class RetrievalConfig:
    top_k: int = 5
    confident_threshold: float = 0.5
    partial_threshold: float = 0.3


@dataclass(frozen=True)
class MemoryConfig:
    limit: int = 3
    min_similarity: float = 0.3
    answer_excerpt_chars: int = 500


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class Config:
    """Main configuration class."""

    corpus: CorpusConfig = field(default_factory=CorpusConfig)
    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    vector_store: VectorStoreConfig = field(default_factory=VectorStoreConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    memory: MemoryConfig = field(default_factory=MemoryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """Load configuration from YAML file."""
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Create config from dictionary.

        Missing sections and keys fall back to the defaults; string values
        may reference environment variables as ${VAR:-default}.
        """
        data = _expand_env(data)

        corpus_data = data.get("corpus", {}) or {}
        chunking_data = data.get("chunking", {}) or {}
        embedding_data = data.get("embedding", {}) or {}
        store_data = data.get("vector_store", {}) or {}
        retrieval_data = data.get("retrieval", {}) or {}
        memory_data = data.get("memory", {}) or {}
        logging_data = data.get("logging", {}) or {}

        corpus_defaults = CorpusConfig()
        chunking_defaults = ChunkingConfig()
        embedding_defaults = EmbeddingConfig()
        store_defaults = VectorStoreConfig()
        retrieval_defaults = RetrievalConfig()
        memory_defaults = MemoryConfig()

        return cls(
            corpus=CorpusConfig(
                root=str(corpus_data.get("root", corpus_defaults.root)),
                collection_name=str(
                    corpus_data.get("collection_name", corpus_defaults.collection_name)
                ),
            ),
            chunking=ChunkingConfig(
                chunk_size=int(chunking_data.get("chunk_size", chunking_defaults.chunk_size)),
                chunk_overlap=int(
                    chunking_data.get("chunk_overlap", chunking_defaults.chunk_overlap)
                ),
                batch_size=int(chunking_data.get("batch_size", chunking_defaults.batch_size)),
                embed_workers=int(
                    chunking_data.get("embed_workers", chunking_defaults.embed_workers)
                ),
                allow_unembedded_fallback=_as_bool(
                    chunking_data.get(
                        "allow_unembedded_fallback",
                        chunking_defaults.allow_unembedded_fallback,
                    )
                ),
            ),
            embedding=EmbeddingConfig(
                provider=str(embedding_data.get("provider", embedding_defaults.provider)),
                base_url=str(embedding_data.get("base_url", embedding_defaults.base_url)),
                model=str(embedding_data.get("model", embedding_defaults.model)),
                timeout=float(embedding_data.get("timeout", embedding_defaults.timeout)),
            ),
            vector_store=VectorStoreConfig(
                database_url=str(store_data.get("database_url") or ""),
                host=str(store_data.get("host", store_defaults.host)),
                port=int(store_data.get("port", store_defaults.port)),
                user=str(store_data.get("user", store_defaults.user)),
                password=str(store_data.get("password", store_defaults.password)),
                database=str(store_data.get("database", store_defaults.database)),
                timeout=float(store_data.get("timeout", store_defaults.timeout)),
                pool_max_size=int(
                    store_data.get("pool_max_size", store_defaults.pool_max_size)
                ),
            ),
            retrieval=RetrievalConfig(
                top_k=int(retrieval_data.get("top_k", retrieval_defaults.top_k)),
                confident_threshold=float(
                    retrieval_data.get(
                        "confident_threshold", retrieval_defaults.confident_threshold
                    )
                ),
                partial_threshold=float(
                    retrieval_data.get("partial_threshold", retrieval_defaults.partial_threshold)
                ),
            ),
            memory=MemoryConfig(
                limit=int(memory_data.get("limit", memory_defaults.limit)),
                min_similarity=float(
                    memory_data.get("min_similarity", memory_defaults.min_similarity)
                ),
                answer_excerpt_chars=int(
                    memory_data.get(
                        "answer_excerpt_chars", memory_defaults.answer_excerpt_chars
                    )
                ),
            ),
            logging=LoggingConfig(
                level=str(logging_data.get("level", LoggingConfig().level)),
            ),
        )

    @classmethod
    def from_env(cls) -> "Config":
        """Load config from environment variables."""
        return cls.from_dict(
            {
                "corpus": {
                    "root": os.environ.get("CURRICULUM_DIR", CorpusConfig.root),
                    "collection_name": os.environ.get(
                        "CURRICULUM_COLLECTION", CorpusConfig.collection_name
                    ),
                },
                "embedding": {
                    "base_url": os.environ.get("OLLAMA_BASE_URL", EmbeddingConfig.base_url),
                    "model": os.environ.get("EMBEDDING_MODEL", EmbeddingConfig.model),
                    "timeout": os.environ.get("EMBEDDING_TIMEOUT", EmbeddingConfig.timeout),
                },
                "vector_store": {
                    "database_url": os.environ.get("DATABASE_URL", ""),
                    "host": os.environ.get("POSTGRES_HOST", VectorStoreConfig.host),
                    "port": os.environ.get("POSTGRES_PORT", VectorStoreConfig.port),
                    "user": os.environ.get("POSTGRES_USER", VectorStoreConfig.user),
                    "password": os.environ.get("POSTGRES_PASSWORD", VectorStoreConfig.password),
                    "database": os.environ.get("POSTGRES_DB", VectorStoreConfig.database),
                    "timeout": os.environ.get("VECTOR_STORE_TIMEOUT", VectorStoreConfig.timeout),
                },
                "logging": {"level": os.environ.get("LOG_LEVEL", LoggingConfig.level)},
            }
        )


def load_config(path: str | Path | None = None) -> Config:
    """Load config from a YAML file, falling back to environment variables.

    Args:
        path: Path to YAML config file. When None or missing, the environment
            is used instead.

    Returns:
        Config object
    """
    if path is not None:
        path = Path(path)
        if path.exists():
            return Config.from_yaml(path)
        raise FileNotFoundError(f"Config not found: {path}")
    return Config.from_env()
