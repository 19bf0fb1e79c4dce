"""Retrieval settings for Concierge.

This module manages the tunable retrieval configuration stored in the data
directory. The scoring weights and thresholds have no authoritative values;
the defaults below encode the precedence conventions of typical skill corpora
and are expected to be tuned.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .paths import ensure_directory, get_config_file

logger = logging.getLogger(__name__)


@dataclass
class RetrievalSettings:
    """Retrieval configuration.

    Stored in ~/.local/share/concierge/config.json
    """

    # Trigger Matcher weights
    w_phrase: float = 3.0
    w_token: float = 1.0
    w_example: float = 0.5

    # Relevance floor and domain tie-break window
    min_score: float = 0.5
    epsilon: float = 0.1

    # Secondary score a reference must exceed to be expanded.
    # None means "same as min_score".
    reference_expansion_threshold: Optional[float] = None

    # Budget defaults (unit is "bytes" or "tokens")
    default_budget: int = 32_000
    budget_unit: str = "bytes"

    # Cap on ranked candidates handed to the Budget Manager (None = no cap)
    max_selections: Optional[int] = None

    # Scoring fan-out
    max_workers: int = 4
    parallel_threshold: int = 64

    # Corpus roots used when the caller gives none
    corpus_roots: List[str] = field(default_factory=list)

    @property
    def expansion_threshold(self) -> float:
        """Effective reference expansion threshold."""
        if self.reference_expansion_threshold is None:
            return self.min_score
        return self.reference_expansion_threshold

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "RetrievalSettings":
        """Load settings from file.

        Args:
            path: Path to config file. Defaults to standard location.

        Returns:
            RetrievalSettings instance.
        """
        if path is None:
            path = get_config_file()

        if not path.exists():
            return cls()

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return cls.from_dict(data)
        except (json.JSONDecodeError, OSError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable config at {path}: {e}")
            return cls()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RetrievalSettings":
        """Create settings from dictionary.

        Unknown keys are ignored; missing keys keep their defaults.

        Args:
            data: Dictionary with config values.

        Returns:
            RetrievalSettings instance.
        """
        defaults = cls()
        max_selections = data.get("max_selections", defaults.max_selections)
        threshold = data.get(
            "reference_expansion_threshold", defaults.reference_expansion_threshold
        )
        return cls(
            w_phrase=float(data.get("w_phrase", defaults.w_phrase)),
            w_token=float(data.get("w_token", defaults.w_token)),
            w_example=float(data.get("w_example", defaults.w_example)),
            min_score=float(data.get("min_score", defaults.min_score)),
            epsilon=float(data.get("epsilon", defaults.epsilon)),
            reference_expansion_threshold=(
                float(threshold) if threshold is not None else None
            ),
            default_budget=int(data.get("default_budget", defaults.default_budget)),
            budget_unit=str(data.get("budget_unit", defaults.budget_unit)),
            max_selections=(
                int(max_selections) if max_selections is not None else None
            ),
            max_workers=int(data.get("max_workers", defaults.max_workers)),
            parallel_threshold=int(
                data.get("parallel_threshold", defaults.parallel_threshold)
            ),
            corpus_roots=list(data.get("corpus_roots", [])),
        )

    @classmethod
    def from_env(cls, base: Optional["RetrievalSettings"] = None) -> "RetrievalSettings":
        """Apply CONCIERGE_* environment overrides on top of ``base``.

        Recognized variables: CONCIERGE_MIN_SCORE, CONCIERGE_EPSILON,
        CONCIERGE_W_PHRASE, CONCIERGE_W_TOKEN, CONCIERGE_W_EXAMPLE,
        CONCIERGE_BUDGET, CONCIERGE_BUDGET_UNIT, CONCIERGE_MAX_SELECTIONS,
        CONCIERGE_MAX_WORKERS and CONCIERGE_CORPUS (os.pathsep separated).
        """
        data = (base or cls()).to_dict()

        float_vars = {
            "CONCIERGE_MIN_SCORE": "min_score",
            "CONCIERGE_EPSILON": "epsilon",
            "CONCIERGE_W_PHRASE": "w_phrase",
            "CONCIERGE_W_TOKEN": "w_token",
            "CONCIERGE_W_EXAMPLE": "w_example",
        }
        for env_name, key in float_vars.items():
            value = os.environ.get(env_name)
            if value:
                data[key] = float(value)

        budget = os.environ.get("CONCIERGE_BUDGET")
        if budget:
            data["default_budget"] = int(budget)

        unit = os.environ.get("CONCIERGE_BUDGET_UNIT")
        if unit:
            data["budget_unit"] = unit

        max_selections = os.environ.get("CONCIERGE_MAX_SELECTIONS")
        if max_selections:
            data["max_selections"] = (
                None if max_selections.lower() == "none" else int(max_selections)
            )

        max_workers = os.environ.get("CONCIERGE_MAX_WORKERS")
        if max_workers:
            data["max_workers"] = int(max_workers)

        corpus = os.environ.get("CONCIERGE_CORPUS")
        if corpus:
            data["corpus_roots"] = [p for p in corpus.split(os.pathsep) if p]

        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary.

        Returns:
            Dictionary representation.
        """
        return asdict(self)

    def save(self, path: Optional[Path] = None) -> None:
        """Save settings to file.

        Args:
            path: Path to config file. Defaults to standard location.
        """
        if path is None:
            path = get_config_file()

        ensure_directory(path.parent)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
            f.write("\n")
