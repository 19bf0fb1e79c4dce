"""Per-request data models for retrieval.

Query, Budget, Selection and ContextPayload live only for the duration of a
single retrieval call.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple

from .constants import CHARS_PER_TOKEN
from .tokens import normalize_text, tokenize


class BudgetTooSmallError(ValueError):
    """The budget cannot hold even the smallest truncation unit."""
    pass


class BudgetUnit(Enum):
    """Unit in which a budget limit is expressed."""
    BYTES = "bytes"      # UTF-8 byte length
    TOKENS = "tokens"    # ceil(chars / CHARS_PER_TOKEN)

    @classmethod
    def parse(cls, value: Any) -> "BudgetUnit":
        """Parse a unit name (or pass a BudgetUnit through)."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = [u.value for u in cls]
            raise ValueError(f"Invalid budget unit '{value}'. Must be one of: {valid}")


@dataclass(frozen=True)
class Budget:
    """A finite size budget for the assembled payload."""

    limit: int
    unit: BudgetUnit = BudgetUnit.BYTES

    def __post_init__(self):
        if self.limit <= 0:
            raise BudgetTooSmallError(
                f"Budget limit must be at least one {self.unit.value[:-1]}, got {self.limit}"
            )

    def measure(self, text: str) -> int:
        """Size of ``text`` in this budget's unit."""
        if self.unit == BudgetUnit.TOKENS:
            return math.ceil(len(text) / CHARS_PER_TOKEN)
        return len(text.encode("utf-8"))

    def truncate(self, text: str, limit: Optional[int] = None) -> str:
        """Cut ``text`` to at most ``limit`` units (default: the whole budget).

        Byte truncation never splits a UTF-8 sequence.
        """
        if limit is None:
            limit = self.limit
        if self.unit == BudgetUnit.TOKENS:
            return text[: limit * CHARS_PER_TOKEN]
        return text.encode("utf-8")[:limit].decode("utf-8", errors="ignore")


@dataclass(frozen=True)
class Query:
    """A retrieval request.

    Attributes:
        text: Task description
        explicit_hints: Document ids to force-include, in caller order
    """
    text: str
    explicit_hints: Tuple[str, ...] = ()
    tokens: FrozenSet[str] = field(init=False, repr=False, compare=False)
    normalized_text: str = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        hints: list = []
        for hint in self.explicit_hints or ():
            hint = hint.strip()
            if hint and hint not in hints:
                hints.append(hint)
        object.__setattr__(self, "text", self.text or "")
        object.__setattr__(self, "explicit_hints", tuple(hints))
        object.__setattr__(self, "tokens", tokenize(self.text))
        object.__setattr__(self, "normalized_text", normalize_text(self.text))

    @property
    def is_empty(self) -> bool:
        """True when the query carries no text signal."""
        return not self.text.strip()


@dataclass(frozen=True)
class MatchScore:
    """Relevance of one document to one query.

    Attributes:
        value: Combined non-negative score (``inf`` for forced hints)
        phrase_hits: Trigger phrases found in the query
        token_overlap: Weighted Jaccard overlap with the trigger text
        example_overlap: Weighted, capped overlap with persona examples
        matched_tokens: Distinct query tokens covered by the trigger signal
    """
    value: float
    phrase_hits: Tuple[str, ...] = ()
    token_overlap: float = 0.0
    example_overlap: float = 0.0
    matched_tokens: FrozenSet[str] = frozenset()

    @classmethod
    def zero(cls) -> "MatchScore":
        return cls(value=0.0)

    @classmethod
    def forced(cls) -> "MatchScore":
        """Score for an explicit hint: never evicted."""
        return cls(value=math.inf)

    @property
    def is_forced(self) -> bool:
        return math.isinf(self.value)

    def __float__(self) -> float:
        return self.value


@dataclass(frozen=True)
class Selection:
    """Final decision record for one chosen document.

    Attributes:
        skill_id: Selected skill or persona id
        score: Relevance score (``inf`` for explicit hints)
        included_reference_ids: Expanded references in inclusion order
        truncated: True if the body was cut at the budget boundary
        size: Budget units used by the body and its included references
    """
    skill_id: str
    score: float
    included_reference_ids: Tuple[str, ...] = ()
    truncated: bool = False
    size: int = 0


@dataclass(frozen=True)
class Provenance:
    """Where a payload record came from."""
    skill_id: str
    reference_id: Optional[str]
    score: float
    truncated: bool
    path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "skill_id": self.skill_id,
            "reference_id": self.reference_id,
            "score": _score_for_json(self.score),
            "truncated": self.truncated,
            "path": self.path,
        }

    def header(self) -> str:
        """Provenance header as an HTML comment."""
        parts = [f"skill={self.skill_id}"]
        if self.reference_id:
            parts.append(f"reference={self.reference_id}")
        parts.append(f"score={_score_for_json(self.score)}")
        if self.truncated:
            parts.append("truncated=true")
        return f"<!-- concierge: {' '.join(parts)} -->"


@dataclass(frozen=True)
class PayloadRecord:
    """One document's contribution to the payload."""
    provenance: Provenance
    text: str
    truncated: bool = False
    size: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provenance": self.provenance.to_dict(),
            "text": self.text,
            "truncated": self.truncated,
            "size": self.size,
        }


@dataclass(frozen=True)
class ContextPayload:
    """Assembled, bounded context for model consumption.

    ``records`` are in final rank order: each selected body followed by its
    included references.
    """
    records: Tuple[PayloadRecord, ...]
    total_size: int
    budget: Budget
    selections: Tuple[Selection, ...] = ()

    @classmethod
    def empty(cls, budget: Budget) -> "ContextPayload":
        return cls(records=(), total_size=0, budget=budget, selections=())

    @property
    def is_empty(self) -> bool:
        """True when nothing matched (a valid, non-error outcome)."""
        return not self.selections

    @property
    def text(self) -> str:
        """Record texts concatenated in order."""
        return "".join(record.text for record in self.records)

    def render(self) -> str:
        """Concatenate records with provenance headers for inspection."""
        blocks = []
        for record in self.records:
            blocks.append(f"{record.provenance.header()}\n{record.text}")
        return "\n".join(blocks)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "budget": {"limit": self.budget.limit, "unit": self.budget.unit.value},
            "total_size": self.total_size,
            "selections": [
                {
                    "skill_id": s.skill_id,
                    "score": _score_for_json(s.score),
                    "included_reference_ids": list(s.included_reference_ids),
                    "truncated": s.truncated,
                    "size": s.size,
                }
                for s in self.selections
            ],
            "records": [record.to_dict() for record in self.records],
        }


def _score_for_json(score: float) -> Any:
    if math.isinf(score):
        return "inf"
    return round(score, 6)

