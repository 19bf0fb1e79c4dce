"""XDG-compliant path resolution for Concierge.

This module provides standardized paths for Concierge data following the XDG
Base Directory Specification via platformdirs.

Directory structure:
    ~/.local/share/concierge/        # CONCIERGE_DATA_DIR
    ├── corpus/                      # Default corpus root
    │   ├── registry.yaml            # Declared overlapping domains
    │   ├── {skill}/SKILL.md
    │   │   └── references/*.md
    │   └── agents/*.md              # Agent personas
    └── config.json                  # Retrieval settings
"""

import os
from pathlib import Path
from typing import Iterable, List, Optional, Union

import platformdirs


def get_data_dir() -> Path:
    """Get the Concierge data directory.

    Uses XDG standard paths via platformdirs:
    - Linux: ~/.local/share/concierge
    - macOS: ~/Library/Application Support/concierge
    - Windows: ~/AppData/Local/concierge

    Can be overridden with CONCIERGE_DATA_DIR environment variable.

    Returns:
        Path to the data directory.
    """
    env_dir = os.environ.get("CONCIERGE_DATA_DIR")
    if env_dir:
        return Path(env_dir).expanduser().resolve()

    return Path(platformdirs.user_data_dir("concierge", appauthor=False))


def get_config_file() -> Path:
    """Get the path to the settings file.

    CONCIERGE_CONFIG takes precedence over the data directory default.

    Returns:
        Path to config.json.
    """
    env_file = os.environ.get("CONCIERGE_CONFIG")
    if env_file:
        return Path(env_file).expanduser().resolve()
    return get_data_dir() / "config.json"


def get_default_corpus_dir() -> Path:
    """Get the default corpus root.

    Returns:
        Path to the corpus directory (~/.local/share/concierge/corpus).
    """
    return get_data_dir() / "corpus"


def resolve_corpus_roots(
    roots: Optional[Iterable[Union[str, Path]]] = None,
) -> List[Path]:
    """Normalize corpus roots to absolute paths.

    Duplicates are dropped while keeping the first occurrence, so the caller's
    ordering is preserved.

    Args:
        roots: Root directories. Defaults to the data directory corpus.

    Returns:
        List of resolved root paths.
    """
    if not roots:
        return [get_default_corpus_dir()]

    resolved: List[Path] = []
    for root in roots:
        path = Path(root).expanduser().resolve()
        if path not in resolved:
            resolved.append(path)
    return resolved


def ensure_directory(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary.

    Args:
        path: Path to the directory.

    Returns:
        The path (for chaining).
    """
    path.mkdir(parents=True, exist_ok=True)
    return path
