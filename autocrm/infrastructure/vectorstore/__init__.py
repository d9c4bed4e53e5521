"""
Vector Store Infrastructure
============================

Vector index implementations for knowledge article embeddings.

This module provides a clean interface for vector operations following
the Repository pattern. Entries are keyed by article id, so an upsert with
an existing id replaces the stored vector and metadata.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from pymilvus import MilvusClient

from autocrm.config import Settings
from autocrm.core import VectorStoreException
from autocrm.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

# Page size when walking every primary key
_ID_PAGE_SIZE = 1000


@dataclass
class VectorEntry:
    """Vector plus metadata to store under an id."""
    id: str
    vector: List[float]
    metadata: dict = field(default_factory=dict)


@dataclass
class VectorMatch:
    """Result from a similarity query."""
    id: str
    metadata: dict
    score: float


class IVectorIndex(ABC):
    """
    Interface for vector index operations.

    Following Interface Segregation and Dependency Inversion principles.
    """

    async def initialize(self) -> None:
        """Prepare the backing index; safe to call repeatedly."""

    @abstractmethod
    async def upsert(self, entries: List[VectorEntry]) -> None:
        """Insert entries, replacing any that share an id."""

    @abstractmethod
    async def query(self, vector: List[float], top_k: int) -> List[VectorMatch]:
        """Return at most ``top_k`` matches ordered by descending score."""

    @abstractmethod
    async def delete(self, ids: List[str]) -> None:
        """Remove the given ids (missing ids are ignored)."""

    @abstractmethod
    async def delete_all(self) -> None:
        """Remove every entry."""

    @abstractmethod
    async def list_ids(self) -> List[str]:
        """List every stored id."""

    @abstractmethod
    async def count(self) -> int:
        """Number of stored entries."""

    async def close(self) -> None:
        """Release the connection to the backing index."""


def cosine_similarity(a: List[float], b: List[float]) -> float:
    """Cosine similarity of two equal-length vectors (0.0 for zero vectors)."""
    if len(a) != len(b):
        raise ValueError(f"Dimension mismatch: {len(a)} != {len(b)}")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


class InMemoryVectorIndex(IVectorIndex):
    """
    Process-local index using brute-force cosine similarity.

    Intended for local development and tests; contents are lost on restart.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Tuple[List[float], dict]] = {}

    async def upsert(self, entries: List[VectorEntry]) -> None:
        for entry in entries:
            self._entries[entry.id] = (list(entry.vector), dict(entry.metadata))

    async def query(self, vector: List[float], top_k: int) -> List[VectorMatch]:
        if top_k <= 0:
            return []
        scored = [
            VectorMatch(id=entry_id, metadata=dict(metadata), score=cosine_similarity(vector, stored))
            for entry_id, (stored, metadata) in self._entries.items()
        ]
        scored.sort(key=lambda m: m.score, reverse=True)
        return scored[:top_k]

    async def delete(self, ids: List[str]) -> None:
        for entry_id in ids:
            self._entries.pop(entry_id, None)

    async def delete_all(self) -> None:
        self._entries.clear()

    async def list_ids(self) -> List[str]:
        return list(self._entries.keys())

    async def count(self) -> int:
        return len(self._entries)


class MilvusVectorIndex(IVectorIndex):
    """
    Milvus / Zilliz Cloud implementation of the vector index.

    The collection uses a string primary key (the article id), a COSINE
    metric, and keeps the article metadata in a dynamic ``metadata`` field.
    Scores returned by search are cosine similarities, higher is closer.
    """

    def __init__(
        self,
        uri: str,
        token: str,
        collection_name: str,
        dimension: int,
        client: Optional[MilvusClient] = None
    ):
        self._uri = uri
        self._token = token
        self._collection_name = collection_name
        self._dimension = dimension
        self._client = client
        self._initialized = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "MilvusVectorIndex":
        return cls(
            uri=settings.milvus_uri,
            token=settings.milvus_token,
            collection_name=settings.milvus_collection_name,
            dimension=settings.embedding_dimension,
        )

    async def initialize(self) -> None:
        """Connect and create the collection if it does not exist."""
        if self._initialized:
            return

        try:
            if self._client is None:
                if not self._uri:
                    raise VectorStoreException("MILVUS_URI not configured")
                self._client = MilvusClient(uri=self._uri, token=self._token)
            self._ensure_collection()
            self._initialized = True
        except VectorStoreException:
            raise
        except Exception as e:
            raise VectorStoreException(f"Failed to initialize Milvus: {str(e)}")

    def _ensure_collection(self) -> None:
        if self._client.has_collection(self._collection_name):
            return
        self._client.create_collection(
            collection_name=self._collection_name,
            dimension=self._dimension,
            primary_field_name="id",
            id_type="string",
            max_length=128,
            vector_field_name="vector",
            metric_type="COSINE",
            auto_id=False,
        )
        logger.info(
            "Created Milvus collection",
            extra={"collection": self._collection_name, "dimension": self._dimension}
        )

    async def _ready(self) -> MilvusClient:
        if not self._initialized:
            await self.initialize()
        return self._client

    async def upsert(self, entries: List[VectorEntry]) -> None:
        if not entries:
            return
        client = await self._ready()
        data = [
            {"id": entry.id, "vector": entry.vector, "metadata": entry.metadata}
            for entry in entries
        ]
        try:
            client.upsert(collection_name=self._collection_name, data=data)
        except Exception as e:
            raise VectorStoreException(f"Failed to upsert vectors: {str(e)}")

    async def query(self, vector: List[float], top_k: int) -> List[VectorMatch]:
        client = await self._ready()
        try:
            results = client.search(
                collection_name=self._collection_name,
                data=[vector],
                limit=top_k,
                output_fields=["metadata"],
                search_params={"metric_type": "COSINE"},
            )
        except Exception as e:
            raise VectorStoreException(f"Search failed: {str(e)}")

        matches = []
        if results and len(results) > 0:
            for hit in results[0]:
                entity = hit.get("entity") or {}
                matches.append(VectorMatch(
                    id=str(hit.get("id")),
                    metadata=entity.get("metadata") or {},
                    score=float(hit.get("distance", 0.0))
                ))
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches[:top_k]

    async def delete(self, ids: List[str]) -> None:
        if not ids:
            return
        client = await self._ready()
        try:
            client.delete(collection_name=self._collection_name, ids=list(ids))
        except Exception as e:
            raise VectorStoreException(f"Failed to delete vectors: {str(e)}")

    async def delete_all(self) -> None:
        """Drop and recreate the collection."""
        client = await self._ready()
        try:
            client.drop_collection(collection_name=self._collection_name)
            self._ensure_collection()
        except Exception as e:
            raise VectorStoreException(f"Failed to clear collection: {str(e)}")

    async def list_ids(self) -> List[str]:
        """Every primary key, paged so large collections are read in full."""
        client = await self._ready()
        ids: List[str] = []
        try:
            iterator = client.query_iterator(
                collection_name=self._collection_name,
                batch_size=_ID_PAGE_SIZE,
                filter='id != ""',
                output_fields=["id"],
            )
            try:
                while True:
                    page = iterator.next()
                    if not page:
                        break
                    ids.extend(str(row["id"]) for row in page)
            finally:
                iterator.close()
        except Exception as e:
            raise VectorStoreException(f"Failed to list ids: {str(e)}")
        return ids

    async def count(self) -> int:
        client = await self._ready()
        try:
            stats = client.get_collection_stats(collection_name=self._collection_name)
        except Exception as e:
            raise VectorStoreException(f"Failed to read collection stats: {str(e)}")
        return int(stats.get("row_count", 0))

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
        self._initialized = False


def build_vector_index(settings: Settings) -> IVectorIndex:
    """Select the vector index backend from configuration."""
    if settings.vector_backend == "memory":
        return InMemoryVectorIndex()
    return MilvusVectorIndex.from_settings(settings)


__all__ = [
    "VectorEntry",
    "VectorMatch",
    "IVectorIndex",
    "InMemoryVectorIndex",
    "MilvusVectorIndex",
    "cosine_similarity",
    "build_vector_index",
]
