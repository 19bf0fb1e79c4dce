# tests/corpus/test_domain_registry.py
"""Tests for DomainRegistry class."""

from pathlib import Path

import pytest
import yaml

from concierge.corpus import DomainRegistry, RegistryFormatError, load
from concierge.corpus.models import Corpus, SkillDocument


class TestDomainRegistry:
    """Tests for DomainRegistry.from_yaml() parsing."""

    def test_load_registry_from_yaml(self, tmp_path: Path):
        """Valid YAML parses correctly with all fields."""
        yaml_content = """
version: 1

overlaps:
  frontend:
    - react-state-management
    - nextjs-app-router
  testing:
    - aspnet-mvc-testing
"""
        registry_file = tmp_path / "registry.yaml"
        registry_file.write_text(yaml_content)

        registry = DomainRegistry.from_yaml(registry_file)

        assert registry.version == 1
        assert registry.overlaps["frontend"] == ["react-state-management", "nextjs-app-router"]
        assert registry.overlaps["testing"] == ["aspnet-mvc-testing"]

    def test_load_registry_empty_file(self, tmp_path: Path):
        """Empty YAML file returns empty registry with defaults."""
        registry_file = tmp_path / "registry.yaml"
        registry_file.write_text("")

        registry = DomainRegistry.from_yaml(registry_file)

        assert registry.version == 1
        assert registry.overlaps == {}

    def test_load_registry_missing_file(self, tmp_path: Path):
        """A missing registry file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            DomainRegistry.from_yaml(tmp_path / "missing.yaml")

    def test_load_registry_invalid_yaml(self, tmp_path: Path):
        """Invalid YAML propagates the parser error."""
        registry_file = tmp_path / "registry.yaml"
        registry_file.write_text("overlaps: [unclosed")

        with pytest.raises(yaml.YAMLError):
            DomainRegistry.from_yaml(registry_file)

    @pytest.mark.parametrize(
        "content,message",
        [
            ("- just\n- a list\n", "expected a mapping"),
            ("overlaps:\n  - testing\n", "'overlaps' must be a mapping"),
            ("overlaps:\n  testing: aspnet-mvc-testing\n", "must be a list"),
        ],
    )
    def test_load_registry_wrong_shape(self, tmp_path: Path, content: str, message: str):
        """Sections of the wrong type are rejected instead of coerced."""
        registry_file = tmp_path / "registry.yaml"
        registry_file.write_text(content)

        with pytest.raises(RegistryFormatError, match=message):
            DomainRegistry.from_yaml(registry_file)

    def test_load_registry_null_members(self, tmp_path: Path):
        registry_file = tmp_path / "registry.yaml"
        registry_file.write_text("overlaps:\n  testing:\n")

        assert DomainRegistry.from_yaml(registry_file).overlaps == {"testing": []}

    def test_empty_registry(self):
        registry = DomainRegistry.empty()

        assert registry.version == 1
        assert registry.overlaps == {}
        assert registry.domains_for("anything") == frozenset()


class TestDomainRegistryLookup:
    """Tests for domain resolution and merging."""

    def test_domains_for_merges_declared(self):
        registry = DomainRegistry(version=1, overlaps={"testing": ["a", "b"], "dotnet": ["a"]})

        assert registry.domains_for("a") == frozenset({"testing", "dotnet"})
        assert registry.domains_for("b", ["frontend"]) == frozenset({"testing", "frontend"})

    def test_merge_unions_members(self):
        first = DomainRegistry(version=1, overlaps={"testing": ["a"]})
        second = DomainRegistry(version=2, overlaps={"testing": ["a", "b"], "web": ["c"]})

        merged = first.merge(second)

        assert merged.version == 2
        assert merged.overlaps == {"testing": ["a", "b"], "web": ["c"]}
        assert first.overlaps == {"testing": ["a"]}

    def test_from_roots_skips_roots_without_registry(self, tmp_path: Path):
        with_registry = tmp_path / "one"
        without_registry = tmp_path / "two"
        with_registry.mkdir()
        without_registry.mkdir()
        (with_registry / "registry.yaml").write_text("overlaps:\n  testing: [a]\n")

        registry = DomainRegistry.from_roots([with_registry, without_registry])

        assert registry.overlaps == {"testing": ["a"]}

    def test_unknown_members(self):
        registry = DomainRegistry(version=1, overlaps={"testing": ["a", "ghost"]})

        assert registry.unknown_members(["a"]) == {"ghost"}


class TestCorpusOverlap:
    """Tests for Corpus.overlapping() backed by the registry."""

    def test_registry_overlap(self, sample_corpus: Path):
        corpus = load([sample_corpus])

        aspnet = corpus.skills["aspnet-mvc-testing"]
        typescript = corpus.skills["typescript-testing"]
        react = corpus.skills["react-state-management"]

        assert corpus.overlapping(aspnet, typescript)
        assert not corpus.overlapping(aspnet, react)

    def test_frontmatter_domains_overlap(self):
        react = SkillDocument(id="react", title="React", trigger_text="react", body="", domains=frozenset({"frontend"}))
        nextjs = SkillDocument(id="nextjs", title="Next", trigger_text="next", body="", domains=frozenset({"frontend"}))
        python = SkillDocument(id="python", title="Python", trigger_text="py", body="")

        corpus = Corpus(skills={"react": react, "nextjs": nextjs, "python": python})

        assert corpus.overlapping(react, nextjs)
        assert not corpus.overlapping(react, python)
