"""Student interaction memory."""

from academio_rag.memory.service import (
    MemoryStats,
    RetrievedMemory,
    StudentMemory,
    SyncReport,
)

__all__ = [
    "MemoryStats",
    "RetrievedMemory",
    "StudentMemory",
    "SyncReport",
]
