"""Composition of the final, bounded context payload."""

import logging
from typing import List, Sequence

from ..corpus.models import Corpus
from .models import Budget, ContextPayload, PayloadRecord, Provenance, Selection

logger = logging.getLogger(__name__)


class CompositionAssembler:
    """Turns selections into an ordered list of provenance-tagged records.

    Each selected body is followed by its included references. Sizes are
    measured in the budget's unit; provenance headers are presentation only
    and do not count against the budget.
    """

    def assemble(
        self,
        selections: Sequence[Selection],
        corpus: Corpus,
        budget: Budget,
    ) -> ContextPayload:
        """Assemble ``selections`` into a ContextPayload.

        Raises:
            KeyError: If a selection names a document missing from the corpus
            RuntimeError: If the assembled size exceeds the budget
        """
        records: List[PayloadRecord] = []
        total = 0

        for selection in selections:
            doc = corpus.get_document(selection.skill_id)
            if doc is None:
                raise KeyError(f"Selected document '{selection.skill_id}' not in corpus")

            body = budget.truncate(doc.body, selection.size) if selection.truncated else doc.body
            size = budget.measure(body)
            records.append(PayloadRecord(
                provenance=Provenance(
                    skill_id=doc.id,
                    reference_id=None,
                    score=selection.score,
                    truncated=selection.truncated,
                    path=str(doc.path) if doc.path else None,
                ),
                text=body,
                truncated=selection.truncated,
                size=size,
            ))
            total += size

            for ref_id in selection.included_reference_ids:
                ref = corpus.references[ref_id]
                if ref.parent_skill_id != selection.skill_id:
                    raise KeyError(
                        f"Reference '{ref_id}' belongs to '{ref.parent_skill_id}', "
                        f"not '{selection.skill_id}'"
                    )
                ref_size = budget.measure(ref.body)
                records.append(PayloadRecord(
                    provenance=Provenance(
                        skill_id=selection.skill_id,
                        reference_id=ref.id,
                        score=selection.score,
                        truncated=False,
                        path=str(ref.path) if ref.path else None,
                    ),
                    text=ref.body,
                    size=ref_size,
                ))
                total += ref_size

        if total > budget.limit:
            raise RuntimeError(
                f"Assembled payload is {total} {budget.unit.value}, over the limit of {budget.limit}"
            )

        logger.debug(f"Assembled {len(records)} records, {total}/{budget.limit} {budget.unit.value}")
        return ContextPayload(
            records=tuple(records),
            total_size=total,
            budget=budget,
            selections=tuple(selections),
        )


def assemble(selections: Sequence[Selection], corpus: Corpus, budget: Budget) -> ContextPayload:
    """Assemble ``selections`` with a default assembler."""
    return CompositionAssembler().assemble(selections, corpus, budget)
