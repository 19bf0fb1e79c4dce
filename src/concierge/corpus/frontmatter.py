"""Markdown document parsing: frontmatter, trigger phrases, examples, links.

A top-level document looks like:

    ---
    name: react-state-management
    description: >
      Manage React state. Use when asked to "lift state up" or
      "choose between context and redux".
    domains: [frontend]
    ---

    # React State Management
    ...see [hooks](references/hooks.md) for details.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import yaml

FRONTMATTER_PATTERN = re.compile(
    r"\A\ufeff?---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL
)

# Quoted trigger phrases: "...", “...”, or '...' bounded by non-word characters
QUOTED_PHRASE_PATTERNS = (
    re.compile(r'"([^"\n]+)"'),
    re.compile(r"“([^”\n]+)”"),
    re.compile(r"(?<!\w)'([^'\n]+?)'(?!\w)"),
)

EXAMPLE_PATTERN = re.compile(r"<example>(.*?)</example>", re.DOTALL | re.IGNORECASE)

# [text](target) but not ![image](target)
LINK_PATTERN = re.compile(r"(?<!!)\[[^\]]*\]\(\s*<?([^)\s>]+)>?(?:\s+\"[^\"]*\")?\s*\)")

FENCE_PATTERN = re.compile(r"^\s*(```|~~~)")

HEADING_PATTERN = re.compile(r"^\s{0,3}#{1,6}\s+(.+?)\s*#*\s*$")

REFERENCE_SUFFIXES = (".md", ".markdown", ".txt")


class FrontmatterError(ValueError):
    """Frontmatter block is missing or not a YAML mapping."""
    pass


@dataclass
class ParsedDocument:
    """Raw parse of a markdown document."""
    metadata: Dict[str, Any] = field(default_factory=dict)
    body: str = ""
    has_frontmatter: bool = False


def parse_document(text: str) -> ParsedDocument:
    """Split a markdown document into frontmatter metadata and body.

    Documents without a frontmatter block parse to empty metadata and the
    full text as body.

    Raises:
        FrontmatterError: If the frontmatter is not valid YAML or not a mapping
    """
    match = FRONTMATTER_PATTERN.match(text)
    if not match:
        return ParsedDocument(metadata={}, body=text, has_frontmatter=False)

    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        raise FrontmatterError(f"invalid YAML frontmatter: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise FrontmatterError(
            f"frontmatter must be a mapping, got {type(data).__name__}"
        )

    return ParsedDocument(metadata=data, body=text[match.end():], has_frontmatter=True)


def extract_quoted_phrases(text: str) -> List[str]:
    """Extract quoted trigger phrases in order of first appearance."""
    found: List[Tuple[int, str]] = []
    for pattern in QUOTED_PHRASE_PATTERNS:
        for match in pattern.finditer(text):
            phrase = " ".join(match.group(1).split())
            if phrase:
                found.append((match.start(), phrase))
    found.sort(key=lambda item: item[0])

    phrases: List[str] = []
    seen = set()
    for _, phrase in found:
        key = phrase.lower()
        if key not in seen:
            seen.add(key)
            phrases.append(phrase)
    return phrases


def split_examples(text: str) -> Tuple[str, List[str]]:
    """Split ``<example>`` blocks out of a persona description.

    Returns:
        Tuple of (description without example blocks, example texts)
    """
    examples = [" ".join(m.group(1).split()) for m in EXAMPLE_PATTERN.finditer(text)]
    stripped = EXAMPLE_PATTERN.sub(" ", text)
    return " ".join(stripped.split()), [e for e in examples if e]


def as_string_list(value: Any) -> List[str]:
    """Coerce a frontmatter value (list or comma-separated string) to strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, (list, tuple, set)):
        return [str(item).strip() for item in value if str(item).strip()]
    return [str(value)]


def _is_relative_link(target: str) -> bool:
    if not target or target.startswith("#"):
        return False
    if re.match(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:", target):
        # http:, https:, mailto:, file: ...
        return False
    if target.startswith("/"):
        return False
    return True


def extract_links(body: str) -> List[str]:
    """Extract relative reference links in declaration order.

    Links inside fenced code blocks, absolute URLs and pure anchors are
    skipped; fragments are dropped and duplicates keep their first position.
    Only markdown/text targets are returned.
    """
    links: List[str] = []
    in_fence = False
    fence_marker: Optional[str] = None

    for line in body.splitlines():
        fence = FENCE_PATTERN.match(line)
        if fence:
            if not in_fence:
                in_fence, fence_marker = True, fence.group(1)
            elif fence.group(1) == fence_marker:
                in_fence, fence_marker = False, None
            continue
        if in_fence:
            continue

        for match in LINK_PATTERN.finditer(line):
            target = match.group(1).split("#", 1)[0].split("?", 1)[0]
            if not _is_relative_link(target):
                continue
            if not target.lower().endswith(REFERENCE_SUFFIXES):
                continue
            if target not in links:
                links.append(target)

    return links


def first_heading(body: str) -> Optional[str]:
    """Get the text of the first markdown heading outside code fences."""
    in_fence = False
    for line in body.splitlines():
        if FENCE_PATTERN.match(line):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        match = HEADING_PATTERN.match(line)
        if match:
            return match.group(1).strip()
    return None


def first_paragraph(body: str) -> str:
    """Get the first prose paragraph (headings and code fences skipped)."""
    paragraph: List[str] = []
    in_fence = False
    for line in body.splitlines():
        if FENCE_PATTERN.match(line):
            in_fence = not in_fence
            if paragraph:
                break
            continue
        if in_fence:
            continue
        stripped = line.strip()
        if not stripped:
            if paragraph:
                break
            continue
        if HEADING_PATTERN.match(line):
            if paragraph:
                break
            continue
        paragraph.append(stripped)
    return " ".join(paragraph)
