"""
TRIGGER_MATCHER
===============

Lexical and phrase-level scoring of documents against a query.

A document's score combines three signals:

1. **Trigger-phrase hits**: every quoted phrase in the trigger text (plus
   any declared ``triggers``) adds ``W_PHRASE`` when it appears
   case-insensitively in the query, or when all of its non-stopword tokens
   do ("test a controller" hits "write a unit test for my controller").
2. **Token overlap**: ``W_TOKEN`` times the Jaccard similarity between the
   query tokens and the trigger-text tokens.
3. **Example-scenario overlap** (personas only): ``W_EXAMPLE`` times the
   Jaccard similarity against each embedded example, summed and capped at
   ``EXAMPLE_CAP * W_EXAMPLE`` so a verbose persona cannot win on length.

An empty query scores zero against everything.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Set

from ..core.config import RetrievalSettings
from ..corpus.models import AgentPersona, ReferenceDocument, SkillDocument
from .constants import EXAMPLE_CAP, W_EXAMPLE, W_PHRASE, W_TOKEN
from .models import MatchScore, Query
from .tokens import jaccard, normalize_text, tokenize


@dataclass(frozen=True)
class MatcherWeights:
    """Weights for the three scoring signals."""
    phrase: float = W_PHRASE
    token: float = W_TOKEN
    example: float = W_EXAMPLE

    @classmethod
    def from_settings(cls, settings: RetrievalSettings) -> "MatcherWeights":
        return cls(
            phrase=settings.w_phrase,
            token=settings.w_token,
            example=settings.w_example,
        )

    @property
    def example_cap(self) -> float:
        return self.example * EXAMPLE_CAP


class TriggerMatcher:
    """Scores skills, personas and references against a query.

    The matcher is stateless apart from its weights and safe to share
    between threads.
    """

    def __init__(self, weights: Optional[MatcherWeights] = None):
        self.weights = weights or MatcherWeights()

    def score(self, query: Query, doc: SkillDocument) -> MatchScore:
        """Score a skill or persona against ``query``."""
        examples = doc.examples if isinstance(doc, AgentPersona) else ()
        return self.score_trigger(query, doc.trigger_text, doc.trigger_phrases, examples)

    def score_reference(self, query: Query, ref: ReferenceDocument) -> MatchScore:
        """Secondary score of a reference, using its pseudo-trigger."""
        return self.score_trigger(query, ref.trigger_text, ref.trigger_phrases)

    def phrase_hit(self, query: Query, phrase: str) -> bool:
        """True if ``phrase`` occurs in the query, verbatim or token by token."""
        if not phrase.strip():
            return False
        if normalize_text(phrase) in query.normalized_text:
            return True
        phrase_tokens = tokenize(phrase)
        return bool(phrase_tokens) and phrase_tokens <= query.tokens

    def score_trigger(
        self,
        query: Query,
        trigger_text: str,
        phrases: Sequence[str] = (),
        examples: Sequence[str] = (),
    ) -> MatchScore:
        """Score raw trigger material against ``query``.

        Args:
            query: The prepared query
            trigger_text: Free-form trigger description
            phrases: Trigger phrases
            examples: Persona example scenarios

        Returns:
            MatchScore with the per-signal breakdown
        """
        if query.is_empty:
            return MatchScore.zero()

        hits = tuple(phrase for phrase in phrases if self.phrase_hit(query, phrase))

        trigger_tokens = tokenize(trigger_text)
        token_overlap = self.weights.token * jaccard(query.tokens, trigger_tokens)

        matched: Set[str] = set(query.tokens & trigger_tokens)
        for phrase in hits:
            matched.update(query.tokens & tokenize(phrase))

        example_overlap = 0.0
        for example in examples:
            example_tokens = tokenize(example)
            example_overlap += self.weights.example * jaccard(query.tokens, example_tokens)
            matched.update(query.tokens & example_tokens)
        example_overlap = min(example_overlap, self.weights.example_cap)

        value = self.weights.phrase * len(hits) + token_overlap + example_overlap
        return MatchScore(
            value=value,
            phrase_hits=hits,
            token_overlap=token_overlap,
            example_overlap=example_overlap,
            matched_tokens=frozenset(matched),
        )


def score(
    query: Query,
    doc: SkillDocument,
    weights: Optional[MatcherWeights] = None,
) -> MatchScore:
    """Score one document against a query with the given (or default) weights."""
    return TriggerMatcher(weights).score(query, doc)
