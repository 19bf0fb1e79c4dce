"""
Skill retrieval and progressive-disclosure composition.

This module provides:
- TriggerMatcher: Scores documents against a query
- RelevanceRanker: Filters, orders and tie-breaks candidates
- BudgetManager / ReferenceExpander: Two-phase budget allocation
- CompositionAssembler: Builds the bounded ContextPayload
- RetrievalEngine: The request lifecycle tying it together

Example:
    from concierge.retrieval import RetrievalEngine

    engine = RetrievalEngine()
    engine.reload_corpus(["skills/"])
    payload = engine.retrieve("write a unit test for my controller", budget_bytes=8000)
"""

from .assembler import CompositionAssembler, assemble
from .budget import Allocation, BudgetManager, allocate
from .engine import (
    RequestState,
    RetrievalEngine,
    RetrievalRequest,
    get_default_engine,
    reload_corpus,
    retrieve,
)
from .expander import ExpansionOutcome, ReferenceExpander
from .matcher import MatcherWeights, TriggerMatcher, score
from .models import (
    Budget,
    BudgetTooSmallError,
    BudgetUnit,
    ContextPayload,
    MatchScore,
    PayloadRecord,
    Provenance,
    Query,
    Selection,
)
from .ranker import RankedCandidate, RelevanceRanker, rank

__all__ = [
    "Allocation",
    "Budget",
    "BudgetManager",
    "BudgetTooSmallError",
    "BudgetUnit",
    "CompositionAssembler",
    "ContextPayload",
    "ExpansionOutcome",
    "MatchScore",
    "MatcherWeights",
    "PayloadRecord",
    "Provenance",
    "Query",
    "RankedCandidate",
    "ReferenceExpander",
    "RelevanceRanker",
    "RequestState",
    "RetrievalEngine",
    "RetrievalRequest",
    "Selection",
    "TriggerMatcher",
    "allocate",
    "assemble",
    "get_default_engine",
    "rank",
    "reload_corpus",
    "retrieve",
    "score",
]
