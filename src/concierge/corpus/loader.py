"""Corpus loader: walks document trees and builds an immutable Corpus.

Layout conventions:

    {root}/
    ├── registry.yaml                    # optional declared domain overlaps
    ├── {skill-id}/SKILL.md              # top-level skill
    │   └── references/*.md              # linked reference documents
    └── agents/{persona-id}.md           # agent personas

Only documents reachable through relative links from a skill or persona are
indexed as references; other markdown files are ignored.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

import yaml

from .frontmatter import (
    FrontmatterError,
    ParsedDocument,
    as_string_list,
    extract_links,
    extract_quoted_phrases,
    first_heading,
    first_paragraph,
    parse_document,
    split_examples,
)
from .models import AgentPersona, Corpus, ReferenceDocument, SkillDocument
from .registry import DomainRegistry, RegistryFormatError

logger = logging.getLogger(__name__)

SKILL_FILENAME = "skill.md"
PERSONA_DIRNAME = "agents"
PERSONA_SUFFIXES = (".md", ".markdown")


class CorpusLoadError(Exception):
    """Error loading a corpus. Fatal to the load attempt."""

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message)


class MalformedMetadataError(CorpusLoadError):
    """A document has no parsable metadata block or trigger text."""
    pass


class DanglingReferenceError(CorpusLoadError):
    """A reference link does not resolve to an existing document."""

    def __init__(self, message: str, path: Optional[Path] = None, target: str = ""):
        self.target = target
        super().__init__(message, path)


class CyclicReferenceError(CorpusLoadError):
    """The document-to-reference graph contains a cycle."""

    def __init__(self, cycle: List[str]):
        self.cycle = cycle
        super().__init__(f"Reference cycle detected: {' -> '.join(cycle)}")


class DuplicateDocumentError(CorpusLoadError):
    """Two documents resolve to the same id."""
    pass


class _TopLevel:
    """Parsed top-level document awaiting reference resolution."""

    def __init__(self, doc_id: str, path: Path, root: Path, metadata: dict, body: str, persona: bool):
        self.id = doc_id
        self.path = path
        self.root = root
        self.metadata = metadata
        self.body = body
        self.persona = persona


def _is_hidden(path: Path, root: Path) -> bool:
    return any(part.startswith(".") for part in path.relative_to(root).parts)


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise MalformedMetadataError(f"cannot read document: {e}", path) from e


def _is_persona_file(path: Path, root: Path) -> bool:
    if path.suffix.lower() not in PERSONA_SUFFIXES:
        return False
    parent = path.parent
    if parent == root:
        return root.name == PERSONA_DIRNAME
    return parent.name == PERSONA_DIRNAME


def _document_id(path: Path, root: Path, persona: bool) -> str:
    if persona:
        return path.relative_to(root).with_suffix("").as_posix()
    rel = path.parent.relative_to(root).as_posix()
    return root.name if rel == "." else rel


class CorpusLoader:
    """Builds a Corpus snapshot from one or more root directories.

    Example:
        loader = CorpusLoader([Path("skills"), Path("agents")])
        corpus = loader.load()
    """

    def __init__(self, root_paths: Iterable[Union[str, Path]]):
        self.roots: List[Path] = []
        for root in root_paths:
            path = Path(root).expanduser().resolve()
            if path not in self.roots:
                self.roots.append(path)

        self._top_level: Dict[str, _TopLevel] = {}
        self._top_level_by_path: Dict[Path, _TopLevel] = {}
        self._links: Dict[Path, List[Path]] = {}
        self._reference_ids: Dict[Path, str] = {}
        self._reference_parsed: Dict[Path, ParsedDocument] = {}

    def load(self) -> Corpus:
        """Load every root into a new Corpus.

        Raises:
            CorpusLoadError: If a root is missing
            MalformedMetadataError: If a document has no parsable trigger text
            DanglingReferenceError: If a link does not resolve
            CyclicReferenceError: If references form a cycle
            DuplicateDocumentError: If two documents share an id
        """
        for root in self.roots:
            self._scan_root(root)

        for top in self._ordered_top_level():
            self._collect_links(top.path, top.root, from_top_level=True)

        self._check_cycles()

        owners = self._assign_references()
        references = self._build_references(owners)

        skills: Dict[str, SkillDocument] = {}
        personas: Dict[str, AgentPersona] = {}
        for top in self._ordered_top_level():
            ref_ids = tuple(
                self._reference_ids[ref_path]
                for ref_path in owners.get(top.id, [])
            )
            if top.persona:
                personas[top.id] = self._build_persona(top, ref_ids)
            else:
                skills[top.id] = self._build_skill(top, ref_ids)

        registry = self._load_registry()
        unknown = registry.unknown_members(list(skills) + list(personas))
        for doc_id in sorted(unknown):
            logger.warning(f"Registry names unknown document '{doc_id}'")

        for persona in personas.values():
            for skill_id in sorted(persona.associated_skill_ids):
                if skill_id not in skills:
                    logger.warning(
                        f"Persona '{persona.id}' lists unknown skill '{skill_id}'"
                    )

        corpus = Corpus(
            skills=skills,
            references=references,
            personas=personas,
            registry=registry,
        )
        logger.info(
            f"Loaded corpus: {len(skills)} skills, {len(personas)} personas, "
            f"{len(references)} references from {len(self.roots)} root(s)"
        )
        return corpus

    # ==================== Scanning ====================

    def _scan_root(self, root: Path) -> None:
        if not root.is_dir():
            raise CorpusLoadError("Corpus root not found", root)

        for path in sorted(root.rglob("*")):
            if not path.is_file() or _is_hidden(path, root):
                continue

            is_skill = path.name.lower() == SKILL_FILENAME
            persona = not is_skill and _is_persona_file(path, root)
            if not is_skill and not persona:
                continue

            top = self._parse_top_level(path, root, persona)
            existing = self._top_level.get(top.id)
            if existing is not None:
                raise DuplicateDocumentError(
                    f"Document id '{top.id}' already defined by {existing.path}", path
                )
            self._top_level[top.id] = top
            self._top_level_by_path[path] = top
            logger.debug(f"Indexed {'persona' if persona else 'skill'} '{top.id}' from {path}")

    def _parse_top_level(self, path: Path, root: Path, persona: bool) -> _TopLevel:
        try:
            parsed = parse_document(_read_text(path))
        except FrontmatterError as e:
            raise MalformedMetadataError(str(e), path) from e

        if not parsed.has_frontmatter:
            raise MalformedMetadataError("missing metadata block", path)

        description = parsed.metadata.get("description")
        if not isinstance(description, str) or not description.strip():
            raise MalformedMetadataError("metadata has no trigger description", path)

        if persona and not split_examples(description)[0]:
            raise MalformedMetadataError(
                "persona description has no text outside its examples", path
            )

        return _TopLevel(
            doc_id=_document_id(path, root, persona),
            path=path,
            root=root,
            metadata=parsed.metadata,
            body=parsed.body,
            persona=persona,
        )

    def _ordered_top_level(self) -> List[_TopLevel]:
        return [self._top_level[doc_id] for doc_id in sorted(self._top_level)]

    # ==================== Links ====================

    def _resolve_link(self, source: Path, root: Path, target: str) -> Path:
        resolved = (source.parent / target).resolve()
        try:
            resolved.relative_to(root)
        except ValueError:
            raise DanglingReferenceError(
                f"link '{target}' points outside corpus root {root}", source, target
            )
        if not resolved.is_file():
            raise DanglingReferenceError(
                f"link '{target}' does not resolve to a document", source, target
            )
        return resolved

    def _collect_links(self, path: Path, root: Path, from_top_level: bool) -> None:
        if path in self._links:
            return

        if from_top_level:
            body = self._top_level_by_path[path].body
        else:
            body = self._reference_body(path, root)

        targets: List[Path] = []
        for target in extract_links(body):
            resolved = self._resolve_link(path, root, target)
            if resolved in self._top_level_by_path:
                if from_top_level:
                    # Cross-link between top-level documents
                    continue
            if resolved not in targets:
                targets.append(resolved)
        self._links[path] = targets

        for resolved in targets:
            if resolved not in self._top_level_by_path:
                self._collect_links(resolved, root, from_top_level=False)

    def _reference_body(self, path: Path, root: Path) -> str:
        if path not in self._reference_parsed:
            try:
                parsed = parse_document(_read_text(path))
            except FrontmatterError as e:
                raise MalformedMetadataError(str(e), path) from e
            self._reference_ids[path] = path.relative_to(root).as_posix()
            self._reference_parsed[path] = parsed
        return self._reference_parsed[path].body

    def _node_id(self, path: Path) -> str:
        top = self._top_level_by_path.get(path)
        if top is not None:
            return top.id
        return self._reference_ids[path]

    def _check_cycles(self) -> None:
        """Depth-first search over the link graph; any back edge is a cycle."""
        visiting: List[Path] = []
        on_stack: Set[Path] = set()
        done: Set[Path] = set()

        def visit(node: Path) -> None:
            visiting.append(node)
            on_stack.add(node)
            for child in self._links.get(node, []):
                if child in on_stack:
                    start = visiting.index(child)
                    cycle = [self._node_id(p) for p in visiting[start:]]
                    cycle.append(self._node_id(child))
                    raise CyclicReferenceError(cycle)
                if child not in done:
                    visit(child)
            on_stack.discard(node)
            visiting.pop()
            done.add(node)

        for top in self._ordered_top_level():
            if top.path not in done:
                visit(top.path)

    # ==================== Ownership ====================

    def _assign_references(self) -> Dict[str, List[Path]]:
        """Give every reachable reference to exactly one top-level document."""
        owner_of: Dict[Path, str] = {}
        owned: Dict[str, List[Path]] = {}

        for top in self._ordered_top_level():
            direct = [
                p for p in self._links.get(top.path, [])
                if p not in self._top_level_by_path
            ]
            ordered: List[Path] = list(direct)

            def descend(node: Path) -> None:
                for child in self._links.get(node, []):
                    if child in self._top_level_by_path or child in ordered:
                        continue
                    ordered.append(child)
                    descend(child)

            for ref_path in direct:
                descend(ref_path)

            mine: List[Path] = []
            for ref_path in ordered:
                current = owner_of.get(ref_path)
                if current is None:
                    owner_of[ref_path] = top.id
                    mine.append(ref_path)
                elif current != top.id:
                    logger.warning(
                        f"Reference '{self._reference_ids[ref_path]}' is owned by "
                        f"'{current}'; not listing it under '{top.id}'"
                    )
            owned[top.id] = mine

        return owned

    def _build_references(self, owners: Dict[str, List[Path]]) -> Dict[str, ReferenceDocument]:
        references: Dict[str, ReferenceDocument] = {}
        for parent_id, paths in owners.items():
            for path in paths:
                ref_id = self._reference_ids[path]
                if ref_id in references:
                    raise DuplicateDocumentError(
                        f"Reference id '{ref_id}' already defined by {references[ref_id].path}",
                        path,
                    )
                parsed = self._reference_parsed[path]
                body, metadata = parsed.body, parsed.metadata
                heading = first_heading(body)
                title = heading or str(metadata.get("title") or path.stem)
                pseudo_trigger = " ".join(p for p in (heading, first_paragraph(body)) if p)
                references[ref_id] = ReferenceDocument(
                    id=ref_id,
                    parent_skill_id=parent_id,
                    body=body,
                    path=path,
                    title=title,
                    trigger_text=pseudo_trigger,
                    trigger_phrases=tuple(extract_quoted_phrases(pseudo_trigger)),
                )
        return references

    # ==================== Documents ====================

    def _title(self, top: _TopLevel) -> str:
        for key in ("title", "name"):
            value = top.metadata.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return first_heading(top.body) or top.id

    def _phrases(self, trigger_text: str, metadata: dict) -> Tuple[str, ...]:
        phrases = extract_quoted_phrases(trigger_text)
        seen = {p.lower() for p in phrases}
        for phrase in as_string_list(metadata.get("triggers")):
            if phrase.lower() not in seen:
                seen.add(phrase.lower())
                phrases.append(phrase)
        return tuple(phrases)

    def _build_skill(self, top: _TopLevel, ref_ids: Tuple[str, ...]) -> SkillDocument:
        trigger_text = " ".join(top.metadata["description"].split())
        return SkillDocument(
            id=top.id,
            title=self._title(top),
            trigger_text=trigger_text,
            body=top.body,
            references=ref_ids,
            path=top.path,
            trigger_phrases=self._phrases(trigger_text, top.metadata),
            domains=frozenset(as_string_list(top.metadata.get("domains"))),
        )

    def _build_persona(self, top: _TopLevel, ref_ids: Tuple[str, ...]) -> AgentPersona:
        trigger_text, examples = split_examples(top.metadata["description"])
        examples.extend(as_string_list(top.metadata.get("examples")))
        return AgentPersona(
            id=top.id,
            title=self._title(top),
            trigger_text=trigger_text,
            body=top.body,
            references=ref_ids,
            path=top.path,
            trigger_phrases=self._phrases(trigger_text, top.metadata),
            domains=frozenset(as_string_list(top.metadata.get("domains"))),
            examples=tuple(examples),
            associated_skill_ids=frozenset(as_string_list(top.metadata.get("skills"))),
        )

    def _load_registry(self) -> DomainRegistry:
        try:
            return DomainRegistry.from_roots(self.roots)
        except (yaml.YAMLError, RegistryFormatError) as e:
            raise MalformedMetadataError(f"invalid domain registry: {e}") from e


def load(root_paths: Iterable[Union[str, Path]]) -> Corpus:
    """Load a Corpus from the given root directories.

    Args:
        root_paths: Corpus root directories, loaded in order

    Returns:
        A new immutable Corpus snapshot
    """
    return CorpusLoader(root_paths).load()
