#!/usr/bin/env python3
"""Concierge CLI - Command-line wrapper around the retrieval engine.

Usage:
    concierge retrieve "write a unit test for my controller" --root skills/
    concierge list --root skills/
    concierge show aspnet-mvc-testing --root skills/
    concierge config
"""

import json
import logging
from typing import Optional, Tuple

import click

from . import __version__
from .core.config import RetrievalSettings
from .core.paths import get_config_file, resolve_corpus_roots
from .corpus import CorpusLoadError, CorpusNotLoadedError
from .retrieval import BudgetTooSmallError, RetrievalEngine

root_option = click.option(
    "--root",
    "-r",
    "roots",
    multiple=True,
    type=click.Path(file_okay=False),
    help="Corpus root directory (repeatable). Defaults to configured roots.",
)


def _load_engine(roots: Tuple[str, ...]) -> RetrievalEngine:
    """Build an engine from file and environment settings and load its corpus."""
    settings = RetrievalSettings.from_env(RetrievalSettings.load())
    engine = RetrievalEngine(settings=settings)
    try:
        engine.reload_corpus(list(roots) or None)
    except CorpusLoadError as e:
        raise click.ClickException(str(e))
    return engine


@click.group()
@click.version_option(version=__version__, prog_name="concierge")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """Concierge - Skill retrieval with progressive disclosure.

    Picks the skill documents most relevant to a task, expands their
    reference documents when the budget allows, and prints a bounded
    context payload.

    \b
    Quick start:
        concierge list --root ./skills
        concierge retrieve "write a unit test for my controller" --root ./skills
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("query")
@root_option
@click.option(
    "--budget",
    "-b",
    type=int,
    default=None,
    help="Payload budget. Defaults to the configured default_budget.",
)
@click.option(
    "--unit",
    type=click.Choice(["bytes", "tokens"]),
    default=None,
    help="Budget unit.",
)
@click.option(
    "--hint",
    "hints",
    multiple=True,
    help="Document id to force-include (repeatable, in order).",
)
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    help="Output the payload as JSON.",
)
@click.option(
    "--render",
    is_flag=True,
    help="Prefix each record with its provenance header.",
)
def retrieve(
    query: str,
    roots: Tuple[str, ...],
    budget: Optional[int],
    unit: Optional[str],
    hints: Tuple[str, ...],
    as_json: bool,
    render: bool,
):
    """Retrieve a context payload for QUERY.

    \b
    Examples:
        concierge retrieve "test a controller" --root ./skills --budget 4000
        concierge retrieve "" --hint react-state-management --json
    """
    engine = _load_engine(roots)

    try:
        payload = engine.retrieve(query, list(hints), budget, unit)
    except (BudgetTooSmallError, CorpusNotLoadedError, ValueError) as e:
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps(payload.to_dict(), indent=2))
        return

    if payload.is_empty:
        click.echo("No matching skill.", err=True)
        return

    click.echo(payload.render() if render else payload.text, nl=False)
    if render:
        click.echo()


@main.command("list")
@root_option
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    help="Output as JSON.",
)
def list_cmd(roots: Tuple[str, ...], as_json: bool):
    """List skills and personas in the corpus.

    \b
    Examples:
        concierge list --root ./skills
        concierge list --json
    """
    corpus = _load_engine(roots).store.snapshot()

    docs = list(corpus.iter_documents())
    if not docs:
        click.echo("No documents found.")
        return

    if as_json:
        click.echo(json.dumps(
            [
                {
                    "id": doc.id,
                    "title": doc.title,
                    "persona": doc.is_persona,
                    "size_bytes": doc.size_bytes,
                    "references": list(doc.references),
                }
                for doc in docs
            ],
            indent=2,
        ))
        return

    for doc in docs:
        kind = click.style("persona", fg="blue") if doc.is_persona else click.style("skill", fg="green")
        click.echo(f"{click.style(doc.id, bold=True)} [{kind}] {doc.title}")
        for ref_id in doc.references:
            click.echo(f"    ref: {ref_id}")


@main.command()
@click.argument("doc_id")
@root_option
def show(doc_id: str, roots: Tuple[str, ...]):
    """Show a skill, persona or reference and its metadata."""
    corpus = _load_engine(roots).store.snapshot()

    doc = corpus.get_document(doc_id)
    if doc is None:
        ref = corpus.references.get(doc_id)
        if ref is None:
            raise click.ClickException(f"Unknown document: {doc_id}")
        click.echo(click.style(ref.id, bold=True))
        click.echo(f"  parent: {ref.parent_skill_id}")
        click.echo(f"  path: {ref.path}")
        click.echo(f"  size: {ref.size_bytes} bytes")
        click.echo()
        click.echo(ref.body)
        return

    click.echo(click.style(doc.id, bold=True))
    click.echo(f"  title: {doc.title}")
    click.echo(f"  path: {doc.path}")
    click.echo(f"  size: {doc.size_bytes} bytes")
    if doc.trigger_phrases:
        click.echo(f"  triggers: {', '.join(doc.trigger_phrases)}")
    domains = corpus.registry.domains_for(doc.id, doc.domains)
    if domains:
        click.echo(f"  domains: {', '.join(sorted(domains))}")
    if doc.references:
        click.echo(f"  references: {', '.join(doc.references)}")
    click.echo()
    click.echo(doc.body)


@main.command()
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    help="Output as JSON.",
)
def config(as_json: bool):
    """Show the effective retrieval settings."""
    settings = RetrievalSettings.from_env(RetrievalSettings.load())

    if as_json:
        click.echo(json.dumps(settings.to_dict(), indent=2))
        return

    click.echo(click.style("Concierge Settings", bold=True))
    click.echo()
    click.echo(f"Config file: {get_config_file()}")
    for key, value in settings.to_dict().items():
        click.echo(f"  {key}: {value}")
    roots = resolve_corpus_roots(settings.corpus_roots)
    click.echo(f"Corpus roots: {', '.join(str(r) for r in roots)}")


if __name__ == "__main__":
    main()
