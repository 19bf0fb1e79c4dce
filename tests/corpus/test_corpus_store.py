# tests/corpus/test_corpus_store.py
"""Tests for CorpusStore copy-on-reload semantics."""

import threading
from pathlib import Path

import pytest

from concierge.corpus import (
    CorpusNotLoadedError,
    CorpusStore,
    CyclicReferenceError,
    MalformedMetadataError,
)
from concierge.corpus.models import Corpus


class TestCorpusStore:
    """Tests for snapshot access and reload."""

    def test_snapshot_before_load(self):
        store = CorpusStore()

        assert not store.loaded
        with pytest.raises(CorpusNotLoadedError):
            store.snapshot()

    def test_initial_corpus(self):
        corpus = Corpus()
        store = CorpusStore(corpus=corpus)

        assert store.loaded
        assert store.generation == 1
        assert store.snapshot() is corpus

    def test_reload_swaps_snapshot(self, sample_corpus: Path):
        store = CorpusStore()

        first = store.reload([sample_corpus])
        second = store.reload([sample_corpus])

        assert store.generation == 2
        assert first is not second
        assert store.snapshot() is second
        assert store.roots == [sample_corpus]

    def test_failed_reload_keeps_previous_snapshot(self, sample_corpus: Path, write_file):
        """A cyclic corpus fails the reload and the old snapshot keeps serving."""
        store = CorpusStore()
        good = store.reload([sample_corpus])

        write_file(
            sample_corpus,
            "aspnet-mvc-testing/references/routing.md",
            "# Route testing\n\nBack to [the skill](../SKILL.md).\n",
        )
        with pytest.raises(CyclicReferenceError):
            store.reload([sample_corpus])

        assert store.snapshot() is good
        assert store.generation == 1

    def test_failed_first_load_leaves_store_empty(self, tmp_path: Path, write_file):
        root = tmp_path / "skills"
        write_file(root, "bad/SKILL.md", "no metadata\n")
        store = CorpusStore()

        with pytest.raises(MalformedMetadataError):
            store.reload([root])

        assert not store.loaded

    def test_custom_loader(self):
        calls = []

        def fake_loader(roots):
            calls.append(list(roots))
            return Corpus()

        store = CorpusStore(loader=fake_loader)
        store.reload(["a", "b"])

        assert calls == [[Path("a"), Path("b")]]

    def test_readers_never_see_missing_snapshot_during_reload(self, sample_corpus: Path):
        """Concurrent readers always get a complete snapshot."""
        store = CorpusStore()
        store.reload([sample_corpus])
        seen = []
        errors = []

        def reader():
            for _ in range(50):
                try:
                    seen.append(len(store.snapshot()))
                except Exception as e:  # pragma: no cover - failure path
                    errors.append(e)

        threads = [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for _ in range(3):
            store.reload([sample_corpus])
        for t in threads:
            t.join()

        assert errors == []
        assert set(seen) == {4}
