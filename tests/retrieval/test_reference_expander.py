# tests/retrieval/test_reference_expander.py
"""Tests for ReferenceExpander."""

import pytest

from concierge.corpus.models import Corpus, ReferenceDocument, SkillDocument
from concierge.retrieval import Budget, Query, ReferenceExpander, Selection


def reference(ref_id: str, phrases, size: int = 10, parent: str = "skill") -> ReferenceDocument:
    return ReferenceDocument(
        id=ref_id,
        parent_skill_id=parent,
        body="r" * size,
        trigger_text=" ".join(phrases) or ref_id,
        trigger_phrases=tuple(phrases),
    )


@pytest.fixture
def corpus() -> Corpus:
    """One skill with three references.

    For the query "alpha beta gamma": ``first`` hits one phrase, ``second``
    hits two and ``unrelated`` none.
    """
    refs = {
        "skill/first.md": reference("skill/first.md", ["alpha"]),
        "skill/second.md": reference("skill/second.md", ["beta", "gamma"]),
        "skill/unrelated.md": reference("skill/unrelated.md", ["omega"]),
    }
    doc = SkillDocument(
        id="skill",
        title="Skill",
        trigger_text="skill",
        body="b" * 10,
        references=("skill/first.md", "skill/second.md", "skill/unrelated.md"),
    )
    return Corpus(skills={"skill": doc}, references=refs)


@pytest.fixture
def selection() -> Selection:
    return Selection(skill_id="skill", score=4.0, size=10)


QUERY = Query("alpha beta gamma")


class TestReferenceExpander:
    """Tests for eligibility, ordering and budget handling."""

    def test_all_eligible_fit_in_declaration_order(self, corpus, selection):
        outcome = ReferenceExpander().expand(selection, QUERY, corpus, 100, Budget(200))

        assert outcome.selection.included_reference_ids == ("skill/first.md", "skill/second.md")
        assert outcome.used == 20
        assert outcome.selection.size == 30
        assert not outcome.exhausted

    def test_insufficient_budget_prefers_higher_score(self, corpus, selection):
        outcome = ReferenceExpander().expand(selection, QUERY, corpus, 15, Budget(200))

        assert outcome.selection.included_reference_ids == ("skill/second.md",)
        assert outcome.used == 10
        assert outcome.exhausted

    def test_nothing_fits(self, corpus, selection):
        outcome = ReferenceExpander().expand(selection, QUERY, corpus, 5, Budget(200))

        assert outcome.selection.included_reference_ids == ()
        assert outcome.used == 0
        assert outcome.exhausted

    def test_below_threshold_never_expanded(self, corpus, selection):
        outcome = ReferenceExpander(threshold=5.0).expand(selection, QUERY, corpus, 100, Budget(200))

        assert outcome.selection.included_reference_ids == ("skill/second.md",)

    def test_score_must_exceed_threshold(self, corpus, selection):
        """A score equal to the threshold is not enough."""
        expander = ReferenceExpander()
        first_score = dict(expander.expand(selection, QUERY, corpus, 0, Budget(200)).scores)["skill/first.md"]

        outcome = ReferenceExpander(threshold=first_score).expand(selection, QUERY, corpus, 100, Budget(200))

        assert "skill/first.md" not in outcome.selection.included_reference_ids

    def test_scores_reported_for_every_reference(self, corpus, selection):
        outcome = ReferenceExpander().expand(selection, QUERY, corpus, 100, Budget(200))

        scores = dict(outcome.scores)
        assert list(scores) == ["skill/first.md", "skill/second.md", "skill/unrelated.md"]
        assert scores["skill/second.md"] > scores["skill/first.md"] > scores["skill/unrelated.md"]

    def test_empty_query_expands_nothing(self, corpus, selection):
        outcome = ReferenceExpander().expand(selection, Query(""), corpus, 100, Budget(200))

        assert outcome.selection is selection
        assert not outcome.exhausted

    def test_input_selection_not_mutated(self, corpus, selection):
        ReferenceExpander().expand(selection, QUERY, corpus, 100, Budget(200))

        assert selection.included_reference_ids == ()
        assert selection.size == 10

    def test_truncated_selection_not_expanded(self, corpus):
        truncated = Selection(skill_id="skill", score=4.0, truncated=True, size=10)

        outcome = ReferenceExpander().expand(truncated, QUERY, corpus, 100, Budget(200))

        assert outcome.selection is truncated
        assert outcome.exhausted

    def test_already_included_reference_skipped(self, corpus):
        partial = Selection(
            skill_id="skill", score=4.0, included_reference_ids=("skill/first.md",), size=20
        )

        outcome = ReferenceExpander().expand(partial, QUERY, corpus, 100, Budget(200))

        assert outcome.selection.included_reference_ids == ("skill/first.md", "skill/second.md")
        assert outcome.used == 10

    def test_equal_scores_fall_back_to_declaration_order(self):
        refs = {
            "s/one.md": reference("s/one.md", ["alpha"], parent="s"),
            "s/two.md": reference("s/two.md", ["alpha"], parent="s"),
        }
        doc = SkillDocument(
            id="s", title="S", trigger_text="s", body="", references=("s/two.md", "s/one.md")
        )
        corpus = Corpus(skills={"s": doc}, references=refs)

        outcome = ReferenceExpander().expand(
            Selection(skill_id="s", score=1.0), Query("alpha"), corpus, 15, Budget(200)
        )

        assert outcome.selection.included_reference_ids == ("s/two.md",)
