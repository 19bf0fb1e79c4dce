"""Conditional expansion of a selected skill's reference documents.

Only skills that already won a place in the payload are considered, so the
deep scoring work is bounded by the selected skills' own references rather
than every reference in the corpus.
"""

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from ..corpus.models import Corpus
from .constants import REFERENCE_EXPANSION_THRESHOLD
from .matcher import TriggerMatcher
from .models import Budget, Query, Selection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExpansionOutcome:
    """Result of expanding one selection.

    Attributes:
        selection: Copy of the selection with references added
        used: Budget units consumed by the newly included references
        exhausted: True if an eligible reference did not fit
        scores: Secondary score of every declared reference, in declaration order
    """
    selection: Selection
    used: int = 0
    exhausted: bool = False
    scores: Tuple[Tuple[str, float], ...] = ()


class ReferenceExpander:
    """Decides which references of a selected skill to pull in.

    A reference is eligible when its secondary score (the Trigger Matcher
    applied to its heading and first paragraph) exceeds the threshold.
    Eligible references that all fit are included in declaration order.
    When they do not all fit, the highest secondary scores go first
    (declaration order breaks ties) and the first one that does not fit ends
    expansion.
    """

    def __init__(
        self,
        matcher: Optional[TriggerMatcher] = None,
        threshold: float = REFERENCE_EXPANSION_THRESHOLD,
    ):
        self.matcher = matcher or TriggerMatcher()
        self.threshold = threshold

    def expand(
        self,
        selection: Selection,
        query: Query,
        corpus: Corpus,
        residual_budget: int,
        budget: Budget,
    ) -> ExpansionOutcome:
        """Expand ``selection`` within ``residual_budget`` units.

        Args:
            selection: A selection already placed by the Budget Manager
            query: The request query
            corpus: Corpus snapshot
            residual_budget: Units still available
            budget: The request budget (for measuring sizes)

        Returns:
            ExpansionOutcome holding the new selection (the input is untouched)
        """
        if selection.truncated:
            return ExpansionOutcome(selection=selection, exhausted=True)

        included = list(selection.included_reference_ids)
        scores: List[Tuple[str, float]] = []
        eligible: List[Tuple[int, str, float, int]] = []

        for position, ref in enumerate(corpus.references_for(selection.skill_id)):
            secondary = self.matcher.score_reference(query, ref).value
            scores.append((ref.id, secondary))
            if ref.id in included or secondary <= self.threshold:
                continue
            eligible.append((position, ref.id, secondary, budget.measure(ref.body)))

        if not eligible:
            return ExpansionOutcome(selection=selection, scores=tuple(scores))

        needed = sum(size for _, _, _, size in eligible)
        if needed <= residual_budget:
            order = eligible
        else:
            order = sorted(eligible, key=lambda item: (-item[2], item[0]))

        used = 0
        exhausted = False
        for _, ref_id, secondary, size in order:
            if used + size > residual_budget:
                logger.debug(
                    f"Reference '{ref_id}' ({size} units) does not fit in "
                    f"{residual_budget - used} remaining"
                )
                exhausted = True
                break
            included.append(ref_id)
            used += size
            logger.debug(f"Expanded '{ref_id}' for '{selection.skill_id}' (score {secondary:.3f})")

        expanded = replace(
            selection,
            included_reference_ids=tuple(included),
            size=selection.size + used,
        )
        return ExpansionOutcome(
            selection=expanded,
            used=used,
            exhausted=exhausted,
            scores=tuple(scores),
        )
