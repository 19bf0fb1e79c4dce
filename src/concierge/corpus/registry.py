"""
Declared overlapping domains for relevance tie-breaking.

The DomainRegistry records which documents claim adjacent territory (a
framework skill and its general-language skill, for instance). The Relevance
Ranker consults it to decide when the more specific of two near-equal
documents should be promoted.
"""

import logging
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

import yaml

logger = logging.getLogger(__name__)

REGISTRY_FILENAME = "registry.yaml"


class RegistryFormatError(ValueError):
    """registry.yaml parsed but does not have the expected shape."""
    pass


class DomainRegistry:
    """
    Parsed domain registry configuration.

    The registry is loaded from a YAML file (registry.yaml at a corpus root)
    that defines:
    - version: Schema version for future compatibility
    - overlaps: Mapping of domain names to the document ids in that domain

    Example registry.yaml:
        version: 1
        overlaps:
          frontend:
            - react-state-management
            - nextjs-app-router
          testing:
            - aspnet-mvc-testing
            - typescript-testing
    """

    def __init__(
        self,
        version: int,
        overlaps: Dict[str, List[str]],
    ) -> None:
        """
        Initialize a DomainRegistry.

        Args:
            version: Schema version for future compatibility
            overlaps: Mapping of domain names to lists of document ids
        """
        self.version = version
        self.overlaps = overlaps
        self._by_document: Dict[str, Set[str]] = {}
        for domain, members in overlaps.items():
            for doc_id in members or []:
                self._by_document.setdefault(doc_id, set()).add(domain)

    @classmethod
    def from_yaml(cls, path: Path) -> "DomainRegistry":
        """
        Load registry from YAML file.

        Handles missing sections gracefully by using empty defaults.

        Args:
            path: Path to the registry.yaml file

        Returns:
            A DomainRegistry instance with the parsed configuration

        Raises:
            FileNotFoundError: If the file does not exist
            yaml.YAMLError: If the file contains invalid YAML
            RegistryFormatError: If the sections have the wrong types
        """
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        # Handle empty file (yaml.safe_load returns None)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise RegistryFormatError(f"{path}: expected a mapping, got {type(data).__name__}")

        overlaps = data.get("overlaps") or {}
        if not isinstance(overlaps, dict):
            raise RegistryFormatError(
                f"{path}: 'overlaps' must be a mapping, got {type(overlaps).__name__}"
            )

        parsed: Dict[str, List[str]] = {}
        for domain, members in overlaps.items():
            if members is None:
                members = []
            if not isinstance(members, list):
                raise RegistryFormatError(
                    f"{path}: members of domain '{domain}' must be a list, "
                    f"got {type(members).__name__}"
                )
            parsed[str(domain)] = [str(m) for m in members]

        return cls(version=data.get("version", 1), overlaps=parsed)

    @classmethod
    def empty(cls) -> "DomainRegistry":
        """
        Create an empty registry with default values.

        Returns:
            A DomainRegistry instance with no declared overlaps
        """
        return cls(version=1, overlaps={})

    @classmethod
    def from_roots(cls, roots: Iterable[Path]) -> "DomainRegistry":
        """
        Merge the registry.yaml files found at the given corpus roots.

        Roots without a registry contribute nothing.

        Args:
            roots: Corpus root directories

        Returns:
            A merged DomainRegistry
        """
        merged = cls.empty()
        for root in roots:
            path = root / REGISTRY_FILENAME
            if path.exists():
                merged = merged.merge(cls.from_yaml(path))
            else:
                logger.debug(f"No registry at {path}")
        return merged

    def merge(self, other: "DomainRegistry") -> "DomainRegistry":
        """Return a new registry holding the union of both registries."""
        overlaps: Dict[str, List[str]] = {
            domain: list(members) for domain, members in self.overlaps.items()
        }
        for domain, members in other.overlaps.items():
            current = overlaps.setdefault(domain, [])
            for doc_id in members:
                if doc_id not in current:
                    current.append(doc_id)
        return DomainRegistry(version=max(self.version, other.version), overlaps=overlaps)

    def domains_for(
        self, doc_id: str, declared: Optional[Iterable[str]] = None
    ) -> FrozenSet[str]:
        """
        Resolve the full set of domains for a document.

        Args:
            doc_id: Document id
            declared: Domains the document declares itself

        Returns:
            Registry domains merged with the declared ones
        """
        domains = set(self._by_document.get(doc_id, ()))
        if declared:
            domains.update(declared)
        return frozenset(domains)

    def unknown_members(self, known_ids: Iterable[str]) -> Set[str]:
        """Get registry members that are not loaded documents."""
        return set(self._by_document) - set(known_ids)
