"""Concierge - skill retrieval and progressive-disclosure context composition.

Given a task description and a size budget, Concierge selects the most
relevant skill documents from a corpus of markdown skills and agent personas,
decides which of their linked reference documents are worth expanding, and
assembles a bounded, ranked payload for a model's context window.

Main modules:
    - corpus: Corpus loading, domain registry and the snapshot store
    - retrieval: Matching, ranking, budget allocation, expansion, assembly
    - core: Configuration and path resolution
    - cli: Command-line interface (concierge command)
"""

__version__ = "0.1.0"
