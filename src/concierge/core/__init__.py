"""Core modules for Concierge.

This package contains the ambient functionality:
    - config: Retrieval settings (weights, thresholds, budget defaults)
    - paths: XDG-compliant path resolution
"""

from . import config
from . import paths

__all__ = [
    "config",
    "paths",
]
