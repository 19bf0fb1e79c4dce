"""Data models for the skill corpus.

All records are frozen: a Corpus is an immutable snapshot that is rebuilt
wholesale on reload and shared by reference between concurrent readers.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterator, Mapping, Optional, Tuple, Union

from .registry import DomainRegistry


@dataclass(frozen=True)
class SkillDocument:
    """A top-level skill document.

    Attributes:
        id: Stable path-derived identifier (unique within a Corpus)
        title: Human-readable title
        trigger_text: Free-form description used for matching
        body: Markdown body (frontmatter stripped)
        references: Reference ids in expansion priority order
        size_bytes: UTF-8 byte length of ``body``
        path: Source file
        trigger_phrases: Quoted phrases and declared triggers
        domains: Domain tags declared in frontmatter
    """
    id: str
    title: str
    trigger_text: str
    body: str
    references: Tuple[str, ...] = ()
    size_bytes: int = -1
    path: Optional[Path] = None
    trigger_phrases: Tuple[str, ...] = ()
    domains: FrozenSet[str] = frozenset()

    def __post_init__(self):
        actual = len(self.body.encode("utf-8"))
        if self.size_bytes < 0:
            object.__setattr__(self, "size_bytes", actual)
        elif self.size_bytes != actual:
            raise ValueError(
                f"size_bytes for '{self.id}' is {self.size_bytes}, body is {actual} bytes"
            )

    @property
    def is_persona(self) -> bool:
        return False


@dataclass(frozen=True)
class AgentPersona(SkillDocument):
    """An agent persona: a skill document with a richer trigger signal.

    Attributes:
        examples: Embedded example scenarios, used as extra trigger signal
        associated_skill_ids: Skills the persona declares it works with
    """
    examples: Tuple[str, ...] = ()
    associated_skill_ids: FrozenSet[str] = frozenset()

    @property
    def is_persona(self) -> bool:
        return True


@dataclass(frozen=True)
class ReferenceDocument:
    """A deeper document linked from a skill, loaded only on demand.

    Attributes:
        id: Root-relative path of the reference file
        parent_skill_id: The skill (or persona) that owns this reference
        body: Markdown body
        size_bytes: UTF-8 byte length of ``body``
        path: Source file
        title: First heading, or the file stem
        trigger_text: Pseudo-trigger (first heading + first paragraph)
        trigger_phrases: Quoted phrases in the pseudo-trigger
    """
    id: str
    parent_skill_id: str
    body: str
    size_bytes: int = -1
    path: Optional[Path] = None
    title: str = ""
    trigger_text: str = ""
    trigger_phrases: Tuple[str, ...] = ()

    def __post_init__(self):
        actual = len(self.body.encode("utf-8"))
        if self.size_bytes < 0:
            object.__setattr__(self, "size_bytes", actual)
        elif self.size_bytes != actual:
            raise ValueError(
                f"size_bytes for '{self.id}' is {self.size_bytes}, body is {actual} bytes"
            )


Document = Union[SkillDocument, AgentPersona]


def _freeze(mapping: Optional[Mapping]) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class Corpus:
    """Immutable snapshot of the loaded corpus."""

    skills: Mapping[str, SkillDocument] = field(default_factory=dict)
    references: Mapping[str, ReferenceDocument] = field(default_factory=dict)
    personas: Mapping[str, AgentPersona] = field(default_factory=dict)
    registry: DomainRegistry = field(default_factory=DomainRegistry.empty)
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        object.__setattr__(self, "skills", _freeze(self.skills))
        object.__setattr__(self, "references", _freeze(self.references))
        object.__setattr__(self, "personas", _freeze(self.personas))

    def get_document(self, doc_id: str) -> Optional[Document]:
        """Get a skill or persona by id."""
        doc = self.skills.get(doc_id)
        if doc is None:
            doc = self.personas.get(doc_id)
        return doc

    def iter_documents(self) -> Iterator[Document]:
        """Iterate over skills and personas in id order."""
        docs: Dict[str, Document] = {**self.skills, **self.personas}
        for doc_id in sorted(docs):
            yield docs[doc_id]

    def references_for(self, doc_id: str) -> Tuple[ReferenceDocument, ...]:
        """Get the reference documents of a skill in declaration order."""
        doc = self.get_document(doc_id)
        if doc is None:
            return ()
        return tuple(self.references[ref_id] for ref_id in doc.references)

    def overlapping(self, first: Document, second: Document) -> bool:
        """Check whether two documents belong to a shared declared domain."""
        return bool(
            self.registry.domains_for(first.id, first.domains)
            & self.registry.domains_for(second.id, second.domains)
        )

    def __len__(self) -> int:
        return len(self.skills) + len(self.personas)
