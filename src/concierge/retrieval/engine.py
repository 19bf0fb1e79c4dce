"""Retrieval engine: the request lifecycle from query to payload.

A request moves through fixed stages::

    IDLE -> MATCHING -> RANKING -> ALLOCATING -> EXPANDING -> ASSEMBLED

Any stage error moves it to FAILED and propagates; no partial payload is
returned. A truncated first selection is a normal, assembled outcome.

The engine itself holds no per-request state. A request is a pure function
of the query, the corpus snapshot it started with, and the budget.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from ..core.config import RetrievalSettings
from ..core.paths import resolve_corpus_roots
from ..corpus.models import Corpus
from ..corpus.store import CorpusStore
from .assembler import CompositionAssembler
from .budget import BudgetManager
from .expander import ReferenceExpander
from .matcher import MatcherWeights, TriggerMatcher
from .models import Budget, BudgetUnit, ContextPayload, Query
from .ranker import RankedCandidate, RelevanceRanker

logger = logging.getLogger(__name__)


class RequestState(Enum):
    """Lifecycle stage of a retrieval request."""
    IDLE = "idle"
    MATCHING = "matching"
    RANKING = "ranking"
    ALLOCATING = "allocating"
    EXPANDING = "expanding"
    ASSEMBLED = "assembled"    # Terminal, success
    FAILED = "failed"          # Terminal, error


TERMINAL_STATES = frozenset({RequestState.ASSEMBLED, RequestState.FAILED})


@dataclass
class RetrievalRequest:
    """One retrieval request and its lifecycle record.

    Attributes:
        query: The prepared query
        budget: The request budget
        state: Current lifecycle stage
        history: Every stage entered, in order
        ranked: Ranking output (set after RANKING)
        payload: Assembled payload (set on ASSEMBLED)
        error: The error that moved the request to FAILED
    """
    query: Query
    budget: Budget
    state: RequestState = RequestState.IDLE
    history: List[RequestState] = field(default_factory=lambda: [RequestState.IDLE])
    ranked: List[RankedCandidate] = field(default_factory=list)
    payload: Optional[ContextPayload] = None
    error: Optional[BaseException] = None

    def advance(self, state: RequestState) -> None:
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"Request already {self.state.value}")
        self.state = state
        self.history.append(state)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


class RetrievalEngine:
    """Selects, expands and assembles skill documents for a query.

    Example:
        engine = RetrievalEngine()
        engine.reload_corpus(["~/skills"])
        payload = engine.retrieve("write a unit test for my controller", budget_bytes=8000)
        print(payload.text)
    """

    def __init__(
        self,
        store: Optional[CorpusStore] = None,
        settings: Optional[RetrievalSettings] = None,
    ):
        self.store = store or CorpusStore()
        self.settings = settings or RetrievalSettings()

        matcher = TriggerMatcher(MatcherWeights.from_settings(self.settings))
        self.matcher = matcher
        self.ranker = RelevanceRanker(
            matcher=matcher,
            min_score=self.settings.min_score,
            epsilon=self.settings.epsilon,
            max_selections=self.settings.max_selections,
            max_workers=self.settings.max_workers,
            parallel_threshold=self.settings.parallel_threshold,
        )
        self.budget_manager = BudgetManager(
            ReferenceExpander(matcher, self.settings.expansion_threshold)
        )
        self.assembler = CompositionAssembler()

    def reload_corpus(self, root_paths: Optional[Iterable[Union[str, Path]]] = None) -> Corpus:
        """Rebuild the corpus snapshot from ``root_paths``.

        Falls back to the configured roots, then to the data directory corpus.
        A failed reload leaves the previous snapshot serving.

        Raises:
            CorpusLoadError: If the new corpus is malformed
        """
        roots = list(root_paths) if root_paths else list(self.settings.corpus_roots)
        return self.store.reload(resolve_corpus_roots(roots))

    def make_budget(
        self,
        budget_bytes: Optional[int] = None,
        unit: Optional[Union[str, BudgetUnit]] = None,
    ) -> Budget:
        """Build a Budget, filling gaps from settings.

        Raises:
            BudgetTooSmallError: If the limit is zero or negative
        """
        limit = self.settings.default_budget if budget_bytes is None else budget_bytes
        return Budget(
            limit=int(limit),
            unit=BudgetUnit.parse(unit or self.settings.budget_unit),
        )

    def retrieve(
        self,
        query_text: str,
        explicit_hints: Optional[Sequence[str]] = None,
        budget_bytes: Optional[int] = None,
        unit: Optional[Union[str, BudgetUnit]] = None,
    ) -> ContextPayload:
        """Retrieve a bounded payload for ``query_text``.

        Args:
            query_text: Natural-language task description
            explicit_hints: Document ids to force-include, in order
            budget_bytes: Budget limit (defaults to settings.default_budget)
            unit: Budget unit, "bytes" or "tokens" (defaults to settings)

        Returns:
            ContextPayload; empty (not an error) when nothing matched

        Raises:
            BudgetTooSmallError: If the budget limit is not positive
            CorpusNotLoadedError: If no corpus has been loaded
        """
        return self.run(query_text, explicit_hints, budget_bytes, unit).payload

    def run(
        self,
        query_text: str,
        explicit_hints: Optional[Sequence[str]] = None,
        budget_bytes: Optional[int] = None,
        unit: Optional[Union[str, BudgetUnit]] = None,
    ) -> RetrievalRequest:
        """Run a request through every stage and return its record."""
        budget = self.make_budget(budget_bytes, unit)
        corpus = self.store.snapshot()
        request = RetrievalRequest(
            query=Query(query_text or "", tuple(explicit_hints or ())),
            budget=budget,
        )

        try:
            request.advance(RequestState.MATCHING)
            scored = self.ranker.score_all(request.query, corpus)

            request.advance(RequestState.RANKING)
            request.ranked = self.ranker.order(scored, request.query, corpus)

            request.advance(RequestState.ALLOCATING)
            allocation = self.budget_manager.allocate(request.ranked, corpus, budget)

            request.advance(RequestState.EXPANDING)
            allocation = self.budget_manager.expand(allocation, request.query, corpus)

            payload = self.assembler.assemble(allocation.selections, corpus, budget)
            request.payload = payload
            request.advance(RequestState.ASSEMBLED)
        except Exception as e:
            request.error = e
            request.advance(RequestState.FAILED)
            logger.error(f"Retrieval failed in {request.history[-2].value}: {e}")
            raise

        if payload.is_empty:
            logger.info(f"No document matched query {query_text!r}")
        else:
            logger.info(
                f"Retrieved {len(payload.selections)} selections "
                f"({payload.total_size}/{budget.limit} {budget.unit.value})"
            )
        return request


_default_engine: Optional[RetrievalEngine] = None


def get_default_engine() -> RetrievalEngine:
    """Get the process-wide engine, configured from file and environment."""
    global _default_engine
    if _default_engine is None:
        settings = RetrievalSettings.from_env(RetrievalSettings.load())
        _default_engine = RetrievalEngine(settings=settings)
    return _default_engine


def reload_corpus(root_paths: Optional[Iterable[Union[str, Path]]] = None) -> Corpus:
    """Reload the default engine's corpus."""
    return get_default_engine().reload_corpus(root_paths)


def retrieve(
    query_text: str,
    explicit_hints: Optional[Sequence[str]] = None,
    budget_bytes: Optional[int] = None,
    unit: Optional[Union[str, BudgetUnit]] = None,
) -> ContextPayload:
    """Retrieve with the default engine."""
    return get_default_engine().retrieve(query_text, explicit_hints, budget_bytes, unit)
