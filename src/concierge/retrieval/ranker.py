"""Relevance ranking of every skill and persona for a query.

Ranking is a two-step affair:

1. ``score_all`` computes a MatchScore for every document. This is
   embarrassingly parallel and fans out over a thread pool for large
   corpora; each worker returns its own scored chunk and the caller merges
   them.
2. ``order`` drops documents below the relevance floor, sorts by score then
   id, applies the domain tie-break, and pins explicit hints at the head.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, NamedTuple, Optional, Sequence

from ..core.config import RetrievalSettings
from ..corpus.models import Corpus, SkillDocument
from .constants import DEFAULT_MAX_WORKERS, EPSILON, MIN_SCORE, PARALLEL_THRESHOLD
from .matcher import MatcherWeights, TriggerMatcher
from .models import MatchScore, Query

logger = logging.getLogger(__name__)


class RankedCandidate(NamedTuple):
    """A ranked ``(doc_id, score)`` pair."""
    doc_id: str
    score: MatchScore


class RelevanceRanker:
    """Orders corpus documents by relevance to a query.

    Example:
        ranker = RelevanceRanker()
        ranked = ranker.rank(Query("write a unit test for my controller"), corpus)
        for doc_id, score in ranked:
            ...
    """

    def __init__(
        self,
        matcher: Optional[TriggerMatcher] = None,
        min_score: float = MIN_SCORE,
        epsilon: float = EPSILON,
        max_selections: Optional[int] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        parallel_threshold: int = PARALLEL_THRESHOLD,
    ):
        self.matcher = matcher or TriggerMatcher()
        self.min_score = min_score
        self.epsilon = epsilon
        self.max_selections = max_selections
        self.max_workers = max(1, max_workers)
        self.parallel_threshold = parallel_threshold

    @classmethod
    def from_settings(cls, settings: RetrievalSettings) -> "RelevanceRanker":
        return cls(
            matcher=TriggerMatcher(MatcherWeights.from_settings(settings)),
            min_score=settings.min_score,
            epsilon=settings.epsilon,
            max_selections=settings.max_selections,
            max_workers=settings.max_workers,
            parallel_threshold=settings.parallel_threshold,
        )

    def rank(self, query: Query, corpus: Corpus) -> List[RankedCandidate]:
        """Score and order every document in the corpus."""
        return self.order(self.score_all(query, corpus), query, corpus)

    # ==================== Scoring ====================

    def _score_chunk(self, query: Query, docs: Sequence[SkillDocument]) -> List[RankedCandidate]:
        return [RankedCandidate(doc.id, self.matcher.score(query, doc)) for doc in docs]

    def score_all(self, query: Query, corpus: Corpus) -> List[RankedCandidate]:
        """Score every skill and persona (unfiltered, in id order)."""
        docs = list(corpus.iter_documents())
        if query.is_empty:
            return [RankedCandidate(doc.id, MatchScore.zero()) for doc in docs]

        if self.max_workers <= 1 or len(docs) < self.parallel_threshold:
            return self._score_chunk(query, docs)

        chunk_size = -(-len(docs) // self.max_workers)
        chunks = [docs[i:i + chunk_size] for i in range(0, len(docs), chunk_size)]
        logger.debug(f"Scoring {len(docs)} documents in {len(chunks)} chunks")

        scored: List[RankedCandidate] = []
        with ThreadPoolExecutor(max_workers=len(chunks)) as executor:
            for chunk_result in executor.map(lambda c: self._score_chunk(query, c), chunks):
                scored.extend(chunk_result)
        return scored

    # ==================== Ordering ====================

    def order(
        self,
        scored: Sequence[RankedCandidate],
        query: Query,
        corpus: Corpus,
    ) -> List[RankedCandidate]:
        """Filter, sort, tie-break and pin hints.

        Args:
            scored: Output of ``score_all``
            query: The query (for explicit hints)
            corpus: Corpus snapshot (for declared domains)

        Returns:
            Ranked candidates, hints first
        """
        hints: List[RankedCandidate] = []
        for hint in query.explicit_hints:
            if corpus.get_document(hint) is None:
                logger.warning(f"Ignoring unknown hint '{hint}'")
                continue
            hints.append(RankedCandidate(hint, MatchScore.forced()))
        hinted = {c.doc_id for c in hints}

        # An empty query selects hints only, whatever the floor is set to
        if query.is_empty:
            return hints

        natural = [
            c for c in scored
            if c.doc_id not in hinted and c.score.value >= self.min_score
        ]
        natural.sort(key=lambda c: (-c.score.value, c.doc_id))
        natural = self._apply_domain_tiebreak(natural, corpus)

        ranked = hints + natural
        if self.max_selections is not None:
            ranked = ranked[:max(self.max_selections, len(hints))]
        return ranked

    def _prefers(self, first: RankedCandidate, second: RankedCandidate, corpus: Corpus) -> bool:
        """True if ``second`` should move ahead of ``first``."""
        if abs(first.score.value - second.score.value) > self.epsilon:
            return False
        if len(second.score.matched_tokens) <= len(first.score.matched_tokens):
            return False
        first_doc = corpus.get_document(first.doc_id)
        second_doc = corpus.get_document(second.doc_id)
        return corpus.overlapping(first_doc, second_doc)

    def _apply_domain_tiebreak(
        self,
        ranked: List[RankedCandidate],
        corpus: Corpus,
    ) -> List[RankedCandidate]:
        """Promote the more specific of near-tied overlapping documents.

        Adjacent swaps repeat until stable. Every swap moves a candidate that
        matches strictly more query tokens ahead, so the pass terminates.
        """
        ranked = list(ranked)
        swapped = True
        while swapped:
            swapped = False
            for i in range(len(ranked) - 1):
                if self._prefers(ranked[i], ranked[i + 1], corpus):
                    logger.debug(
                        f"Domain tie-break: '{ranked[i + 1].doc_id}' ahead of '{ranked[i].doc_id}'"
                    )
                    ranked[i], ranked[i + 1] = ranked[i + 1], ranked[i]
                    swapped = True
        return ranked


def rank(query: Query, corpus: Corpus, settings: Optional[RetrievalSettings] = None) -> List[RankedCandidate]:
    """Rank the corpus for ``query`` with the given (or default) settings."""
    ranker = RelevanceRanker.from_settings(settings) if settings else RelevanceRanker()
    return ranker.rank(query, corpus)
