"""
Corpus loading for skill retrieval.

This module provides:
- load / CorpusLoader: Build an immutable Corpus from document trees
- CorpusStore: The active snapshot, reloaded with an atomic swap
- DomainRegistry: Declared overlapping domains (registry.yaml)
- The corpus data model and load-time error taxonomy

Example:
    from concierge.corpus import CorpusStore

    store = CorpusStore()
    store.reload([Path("skills/"), Path("agents/")])
    corpus = store.snapshot()
"""

from .loader import (
    CorpusLoader,
    CorpusLoadError,
    CyclicReferenceError,
    DanglingReferenceError,
    DuplicateDocumentError,
    MalformedMetadataError,
    load,
)
from .models import AgentPersona, Corpus, ReferenceDocument, SkillDocument
from .registry import DomainRegistry, RegistryFormatError
from .store import CorpusNotLoadedError, CorpusStore

__all__ = [
    "AgentPersona",
    "Corpus",
    "CorpusLoadError",
    "CorpusLoader",
    "CorpusNotLoadedError",
    "CorpusStore",
    "CyclicReferenceError",
    "DanglingReferenceError",
    "DomainRegistry",
    "DuplicateDocumentError",
    "MalformedMetadataError",
    "ReferenceDocument",
    "RegistryFormatError",
    "SkillDocument",
    "load",
]
