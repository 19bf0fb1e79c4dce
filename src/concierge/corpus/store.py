"""Process-wide corpus snapshot with copy-on-reload semantics.

Readers take the current snapshot reference without locking; a reload builds
a complete new Corpus off to the side and swaps the reference once it has
fully succeeded. Reloads are serialized by an exclusive rebuild lock.
"""

import logging
import threading
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from .loader import CorpusLoadError, load
from .models import Corpus

logger = logging.getLogger(__name__)


class CorpusNotLoadedError(RuntimeError):
    """Retrieval was attempted before any corpus load succeeded."""
    pass


class CorpusStore:
    """Holds the active Corpus snapshot.

    Example:
        store = CorpusStore()
        store.reload([Path("skills")])
        corpus = store.snapshot()
    """

    def __init__(
        self,
        corpus: Optional[Corpus] = None,
        loader: Callable[[Iterable[Union[str, Path]]], Corpus] = load,
    ):
        self._corpus = corpus
        self._loader = loader
        self._rebuild_lock = threading.Lock()
        self._roots: List[Path] = []
        self._generation = 0 if corpus is None else 1

    @property
    def loaded(self) -> bool:
        """True once a snapshot is available."""
        return self._corpus is not None

    @property
    def generation(self) -> int:
        """Number of successful loads (bumped on every swap)."""
        return self._generation

    @property
    def roots(self) -> List[Path]:
        """Roots of the last successful load."""
        return list(self._roots)

    def snapshot(self) -> Corpus:
        """Get the active snapshot.

        Raises:
            CorpusNotLoadedError: If no load has succeeded yet
        """
        corpus = self._corpus
        if corpus is None:
            raise CorpusNotLoadedError("No corpus has been loaded")
        return corpus

    def reload(self, root_paths: Iterable[Union[str, Path]]) -> Corpus:
        """Rebuild the corpus from ``root_paths`` and swap it in.

        On failure the previous snapshot stays active and the error propagates.

        Raises:
            CorpusLoadError: If the new corpus cannot be built
        """
        roots = [Path(p) for p in root_paths]
        with self._rebuild_lock:
            try:
                corpus = self._loader(roots)
            except CorpusLoadError as e:
                if self._corpus is not None:
                    logger.error(f"Corpus reload failed, keeping previous snapshot: {e}")
                else:
                    logger.error(f"Corpus load failed: {e}")
                raise
            self._corpus = corpus
            self._roots = roots
            self._generation += 1
            logger.info(f"Corpus snapshot {self._generation} active ({len(corpus)} documents)")
            return corpus
