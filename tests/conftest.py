"""Shared fixtures for Concierge tests.

Corpora are written to ``tmp_path`` with the same layout a real skill tree
uses: ``{skill}/SKILL.md``, ``{skill}/references/*.md`` and
``agents/*.md`` personas.
"""
from pathlib import Path
from typing import Callable

import pytest
import yaml


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _frontmatter(metadata: dict) -> str:
    return "---\n" + yaml.safe_dump(metadata, sort_keys=False, allow_unicode=True) + "---\n"


@pytest.fixture
def write_file() -> Callable[..., Path]:
    """Write an arbitrary file below a root."""
    def _write_file(root: Path, rel_path: str, text: str) -> Path:
        return _write(root / rel_path, text)
    return _write_file


@pytest.fixture
def write_skill() -> Callable[..., Path]:
    """Write ``{root}/{skill_id}/SKILL.md`` with frontmatter and body."""
    def _write_skill(root: Path, skill_id: str, description: str, body: str = "", **metadata) -> Path:
        meta = {"name": skill_id.split("/")[-1], "description": description}
        meta.update(metadata)
        return _write(root / skill_id / "SKILL.md", _frontmatter(meta) + body)
    return _write_skill


@pytest.fixture
def write_persona() -> Callable[..., Path]:
    """Write ``{root}/agents/{name}.md`` with frontmatter and body."""
    def _write_persona(root: Path, name: str, description: str, body: str = "", **metadata) -> Path:
        meta = {"name": name, "description": description}
        meta.update(metadata)
        return _write(root / "agents" / f"{name}.md", _frontmatter(meta) + body)
    return _write_persona


ASPNET_BODY = """# ASP.NET MVC Testing

Arrange the controller, act on the action, assert on the result.

- [Mocking](references/mocking.md)
- [Routing](references/routing.md)
"""

MOCKING_BODY = """# Mocking dependencies

Reach for this when you need to "mock a repository" behind a controller.

Use Moq to stub the repository interface and verify calls.
"""

ROUTING_BODY = """# Route testing

Check route tables when asked to "test a route".
"""

TYPESCRIPT_BODY = """# TypeScript Testing

Write specs next to the code under test.
"""

REACT_BODY = """# React State Management

Prefer local state; lift it only when siblings share it.
"""

PERSONA_DESCRIPTION = """Test engineer for .NET and TypeScript code bases.
<example>Add a unit test for the checkout controller</example>
<example>Why is this jest test flaky</example>
"""

REGISTRY_YAML = """version: 1
overlaps:
  testing:
    - aspnet-mvc-testing
    - typescript-testing
"""


@pytest.fixture
def sample_corpus(tmp_path: Path, write_skill, write_file, write_persona) -> Path:
    """A small corpus: three skills, two references and one persona."""
    root = tmp_path / "skills"
    write_skill(
        root,
        "aspnet-mvc-testing",
        'Unit testing for ASP.NET MVC controllers. Use when asked to '
        '"test a controller" or to write a "unit test".',
        ASPNET_BODY,
    )
    write_file(root, "aspnet-mvc-testing/references/mocking.md", MOCKING_BODY)
    write_file(root, "aspnet-mvc-testing/references/routing.md", ROUTING_BODY)
    write_skill(
        root,
        "typescript-testing",
        'Test TypeScript code with Jest or Vitest. Use when asked to "test TypeScript".',
        TYPESCRIPT_BODY,
    )
    write_skill(
        root,
        "react-state-management",
        'Manage React state with hooks and context. Use when asked to "lift state up".',
        REACT_BODY,
    )
    write_persona(
        root,
        "test-engineer",
        PERSONA_DESCRIPTION,
        "# Test Engineer\n\nYou write focused, deterministic tests.\n",
        skills=["aspnet-mvc-testing", "typescript-testing"],
    )
    write_file(root, "registry.yaml", REGISTRY_YAML)
    return root


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch) -> Path:
    """Point the data directory and config file at ``tmp_path``."""
    data_dir = tmp_path / "data"
    monkeypatch.setenv("CONCIERGE_DATA_DIR", str(data_dir))
    monkeypatch.delenv("CONCIERGE_CONFIG", raising=False)
    for name in (
        "CONCIERGE_MIN_SCORE", "CONCIERGE_EPSILON", "CONCIERGE_W_PHRASE",
        "CONCIERGE_W_TOKEN", "CONCIERGE_W_EXAMPLE", "CONCIERGE_BUDGET",
        "CONCIERGE_BUDGET_UNIT", "CONCIERGE_MAX_SELECTIONS",
        "CONCIERGE_MAX_WORKERS", "CONCIERGE_CORPUS",
    ):
        monkeypatch.delenv(name, raising=False)
    return data_dir
