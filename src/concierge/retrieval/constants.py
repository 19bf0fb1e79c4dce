"""Default weights and thresholds for retrieval.

These are starting points, tuned through RetrievalSettings. Trigger phrases
dominate token overlap because skill authors quote the exact requests a skill
is meant to answer.
"""

# Trigger Matcher weights
W_PHRASE = 3.0
W_TOKEN = 1.0
W_EXAMPLE = 0.5

# Persona example overlap is capped at this many examples' worth of weight
EXAMPLE_CAP = 3

# Relevance floor for ranked candidates
MIN_SCORE = 0.5

# Score window inside which declared domain overlaps are tie-broken
EPSILON = 0.1

# Secondary score a reference must exceed to be expanded
REFERENCE_EXPANSION_THRESHOLD = MIN_SCORE

# Character heuristic for the token budget unit
CHARS_PER_TOKEN = 4

# Scoring fan-out
DEFAULT_MAX_WORKERS = 4
PARALLEL_THRESHOLD = 64

STOPWORDS: frozenset[str] = frozenset(
    {
        "a", "about", "after", "all", "also", "am", "an", "and", "any", "are",
        "as", "at", "be", "been", "before", "being", "but", "by", "can",
        "could", "do", "does", "doing", "for", "from", "get", "had", "has",
        "have", "how", "i", "if", "in", "into", "is", "it", "its", "me", "my",
        "need", "of", "on", "or", "our", "please", "should", "so", "some",
        "than", "that", "the", "their", "them", "then", "there", "these",
        "they", "this", "those", "to", "up", "us", "use", "using", "want",
        "was", "we", "were", "what", "when", "where", "which", "while", "who",
        "why", "will", "with", "would", "you", "your",
    }
)
