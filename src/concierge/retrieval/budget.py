"""Greedy, rank-preserving budget allocation.

Allocation walks one priority sequence that does not depend on the budget:
top-level bodies in rank order, then each selected skill's references. The
first item that does not fit ends the walk. Explicit hints are the exception:
they are always placed, truncated into what is left when they do not fit.
Because the natural part of the result is always a prefix of that sequence,
raising the budget can only add skills or references, never remove them.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..corpus.models import Corpus
from .expander import ReferenceExpander
from .models import Budget, Query, Selection
from .ranker import RankedCandidate

logger = logging.getLogger(__name__)


@dataclass
class Allocation:
    """Running state of a budget allocation.

    Attributes:
        budget: The request budget
        selections: Placed selections in rank order
        used: Units consumed so far
        exhausted: True once an item did not fit (nothing more is placed)
    """
    budget: Budget
    selections: List[Selection] = field(default_factory=list)
    used: int = 0
    exhausted: bool = False

    @property
    def residual(self) -> int:
        """Units still available."""
        return self.budget.limit - self.used


class BudgetManager:
    """Places ranked candidates into a finite budget.

    Example:
        manager = BudgetManager()
        allocation = manager.allocate(ranked, corpus, Budget(8000))
        allocation = manager.expand(allocation, query, corpus)
    """

    def __init__(self, expander: Optional[ReferenceExpander] = None):
        self.expander = expander or ReferenceExpander()

    def allocate(
        self,
        ranked: Sequence[RankedCandidate],
        corpus: Corpus,
        budget: Budget,
    ) -> Allocation:
        """Reserve top-level bodies in rank order.

        Stops at the first natural candidate that does not fit rather than
        skipping ahead to a smaller, less relevant one. Explicit hints are
        never evicted: a hint that does not fit is truncated into whatever
        is left, possibly down to nothing. A first candidate that alone
        exceeds the budget is likewise truncated at the budget boundary.
        """
        allocation = Allocation(budget=budget)

        for doc_id, match in ranked:
            doc = corpus.get_document(doc_id)
            if doc is None:
                logger.warning(f"Ranked candidate '{doc_id}' is not in the corpus")
                continue

            size = budget.measure(doc.body)
            fits = allocation.used + size <= budget.limit
            if fits and (match.is_forced or not allocation.exhausted):
                allocation.selections.append(
                    Selection(skill_id=doc_id, score=match.value, size=size)
                )
                allocation.used += size
                continue

            if match.is_forced or not allocation.selections:
                residual = allocation.residual
                truncated_size = budget.measure(budget.truncate(doc.body, residual))
                logger.info(
                    f"Truncating '{doc_id}' from {size} to {truncated_size} {budget.unit.value}"
                )
                allocation.selections.append(
                    Selection(
                        skill_id=doc_id,
                        score=match.value,
                        truncated=True,
                        size=truncated_size,
                    )
                )
                allocation.used += truncated_size
                allocation.exhausted = True
                continue

            logger.debug(
                f"Stopping at '{doc_id}': {size} {budget.unit.value} exceeds "
                f"remaining {allocation.residual}"
            )
            allocation.exhausted = True
            break

        return allocation

    def expand(self, allocation: Allocation, query: Query, corpus: Corpus) -> Allocation:
        """Hand residual budget to the Reference Expander, selection by selection.

        Runs only when every ranked candidate was placed; stops for good at the
        first selection whose eligible references could not all be placed.
        """
        if allocation.exhausted:
            return allocation

        expanded = Allocation(
            budget=allocation.budget,
            selections=list(allocation.selections),
            used=allocation.used,
        )
        for index, selection in enumerate(expanded.selections):
            outcome = self.expander.expand(
                selection, query, corpus, expanded.residual, expanded.budget
            )
            expanded.selections[index] = outcome.selection
            expanded.used += outcome.used
            if outcome.exhausted:
                expanded.exhausted = True
                break
        return expanded


def allocate(
    ranked: Sequence[RankedCandidate],
    corpus: Corpus,
    budget: Budget,
    query: Optional[Query] = None,
) -> List[Selection]:
    """Allocate ``budget`` over ``ranked``; expand references when a query is given."""
    manager = BudgetManager()
    allocation = manager.allocate(ranked, corpus, budget)
    if query is not None:
        allocation = manager.expand(allocation, query, corpus)
    return allocation.selections


__all__ = ["Allocation", "BudgetManager", "allocate"]
