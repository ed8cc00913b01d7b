#!/usr/bin/env python3
"""
Command-line interface for filling .docx CV templates.

Subcommands:
- render: Render a template with a CV record or binding data (JSON/YAML)
- inspect: List the directives a template uses and any unbalanced tags
- extract: Extract a CV record from a .docx, .pdf or text CV
- sample: Write the bundled sample CV record
- taxonomies: List the skill taxonomies, or show one
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from dotenv import load_dotenv
from omegaconf import OmegaConf

from vellum.contexts.intake import extract_cv_file
from vellum.contexts.intake.logger import setup_intake_logger
from vellum.contexts.templating import (
    MismatchPolicy,
    inspect_template,
    load_render_options,
    render_template_file,
)
from vellum.contexts.templating.defaults import sample_cv_record
from vellum.contexts.templating.engine import LOGS_PATH
from vellum.contexts.templating.exceptions import PackageError
from vellum.contexts.templating.registries import taxonomy_registry
from vellum.utils.timestamp import now

load_dotenv()

app = typer.Typer(
    add_completion=False,
    help="Fill Word (.docx) CV templates with structured CV data",
    invoke_without_command=True,
)


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def save_record(record: Dict[str, Any], output: Path) -> None:
    """Write a record as JSON (.json) or YAML (anything else)."""
    output.parent.mkdir(parents=True, exist_ok=True)
    if output.suffix.lower() == ".json":
        output.write_text(json.dumps(record, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    else:
        OmegaConf.save(OmegaConf.create(record), output)


@app.command("render")
def render_command(
    template: Path = typer.Argument(
        ...,
        help="Template .docx file",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    data: Optional[Path] = typer.Argument(
        None,
        help="CV record or binding data (.json/.yaml)",
    ),
    output: Path = typer.Option(
        ...,
        "--output",
        "-o",
        help="Output .docx path",
    ),
    cv_record: bool = typer.Option(
        True,
        "--cv-record/--binding",
        help="Treat the data as a CV record (mapped to a binding context) or as ready binding data",
    ),
    sample_fallback: bool = typer.Option(
        False,
        "--sample-fallback",
        help="Render with the sample CV record when the data is missing or empty",
    ),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Fail on unbalanced loop/conditional tags",
    ),
    warn: bool = typer.Option(
        False,
        "--warn",
        help="Log a warning for unbalanced loop/conditional tags",
    ),
):
    """
    Render a template with a CV record.

    Unbalanced tags are dropped silently unless --warn or --strict is given.
    Logs are saved to outs/logs/render_TIMESTAMP/.

    Examples:\n

        $ render_cv.py render template.docx cv.yaml -o out.docx

        $ render_cv.py render template.docx bindings.json -o out.docx --binding --strict

        $ render_cv.py render template.docx -o preview.docx --sample-fallback
    """
    if strict and warn:
        typer.secho("Error: --strict and --warn are mutually exclusive", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if data is None and not sample_fallback:
        typer.secho("Error: DATA is required without --sample-fallback", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    policy = MismatchPolicy.STRICT if strict else MismatchPolicy.WARN if warn else None

    typer.secho(f"\nRendering: {template.name}\n", fg=typer.colors.BLUE, bold=True)

    try:
        options = load_render_options(mismatch_policy=policy)
    except ValueError as e:
        typer.secho(f"✗ Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    result = render_template_file(
        template,
        data,
        output,
        options=options,
        cv_record=cv_record,
        sample_fallback=sample_fallback,
    )

    if not result.success:
        typer.secho(f"✗ Render failed: {result.error}", fg=typer.colors.RED, err=True)
        typer.echo(f"  Logs: {result.log_dir}")
        raise typer.Exit(code=1)

    typer.secho(f"✓ Success! Saved to: {result.output_path}", fg=typer.colors.GREEN)
    typer.echo(f"  Parts processed: {', '.join(result.parts_processed) or 'none'}")
    if result.used_sample_fallback:
        typer.secho("  Used the sample CV record", fg=typer.colors.YELLOW)
    typer.echo(f"  Time: {result.time_s:.2f}s")
    typer.echo(f"  Logs: {result.log_dir}")


@app.command("inspect")
def inspect_command(
    template: Path = typer.Argument(
        ...,
        help="Template .docx file",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
):
    """
    List the directives a template uses.

    Directives are read after joining run fragments, so a placeholder split
    across formatting changes is reported whole.

    Example:\n

        $ render_cv.py inspect template.docx
    """
    try:
        report = inspect_template(template.read_bytes())
    except PackageError as e:
        typer.secho(f"✗ Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.secho(f"\nTemplate: {template.name}", fg=typer.colors.BLUE, bold=True)
    typer.echo(f"Parts: {', '.join(report.parts) or 'none'}")

    sections = [
        ("Placeholders", report.placeholders),
        ("Computed fields", report.computed),
        ("Unknown placeholders", report.unknown),
        ("Loops", report.loops),
        ("Conditionals", report.conditionals),
    ]
    for title, names in sections:
        typer.echo(f"\n{title} ({len(names)}):")
        for name in names:
            typer.echo(f"  • {name}")

    if report.is_balanced:
        typer.secho("\n✓ All loop and conditional tags are balanced", fg=typer.colors.GREEN)
    else:
        typer.secho(f"\nUnbalanced tags ({len(report.unbalanced)}):", fg=typer.colors.YELLOW)
        for entry in report.unbalanced:
            typer.secho(f"  ✗ {entry}", fg=typer.colors.YELLOW)
        raise typer.Exit(code=1)


@app.command("extract")
def extract_command(
    cv_file: Path = typer.Argument(
        ...,
        help="CV file (.docx, .pdf or .txt)",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output path (.json or .yaml; defaults to <cv_file>.yaml)",
    ),
):
    """
    Extract a CV record from a .docx, .pdf or text CV.

    Extraction is local and heuristic. Fields the CV does not contain are left
    empty.

    Examples:\n

        $ render_cv.py extract cv.docx

        $ render_cv.py extract cv.pdf

        $ render_cv.py extract cv.txt -o record.json
    """
    output_path = output if output else cv_file.with_suffix(".yaml")

    setup_intake_logger(LOGS_PATH / f"extract_{now()}", source_name=cv_file.name)
    typer.secho(f"\nExtracting: {cv_file.name}", fg=typer.colors.BLUE, bold=True)

    try:
        record = extract_cv_file(cv_file)
    except (PackageError, ValueError) as e:
        typer.secho(f"✗ Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    save_record(record, output_path)

    personal = record["personal_info"]
    typer.echo(f"Name: {personal['full_name'] or '(not found)'}")
    typer.echo(f"Skills: {len(record['skills'])}")
    typer.echo(f"Experience: {len(record['experience'])}")
    typer.echo(f"Education: {len(record['education'])}")
    typer.secho(f"\n✓ Success! Record saved to: {output_path}", fg=typer.colors.GREEN)


@app.command("sample")
def sample_command(
    output: Path = typer.Option(
        Path("sample_cv.yaml"),
        "--output",
        "-o",
        help="Output path (.json or .yaml)",
    ),
):
    """
    Write the bundled sample CV record.

    Example:\n

        $ render_cv.py sample -o sample.json
    """
    save_record(sample_cv_record(), output)
    typer.secho(f"✓ Sample CV record saved to: {output}", fg=typer.colors.GREEN)


@app.command("taxonomies")
def taxonomies_command(
    name: Optional[str] = typer.Argument(
        None,
        help="Taxonomy to show in full (omit to list all)",
    ),
):
    """
    List the skill taxonomies used by [SKILLS_BY_CATEGORY].

    Examples:\n

        $ render_cv.py taxonomies

        $ render_cv.py taxonomies default
    """
    names = taxonomy_registry.list_taxonomies()
    if not names:
        directory = taxonomy_registry.config_base_path / "taxonomies"
        typer.secho(f"✗ No taxonomies in {directory}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if name is None:
        configured = load_render_options().taxonomy
        typer.secho(f"\nSkill taxonomies ({len(names)}):", fg=typer.colors.BLUE, bold=True)
        for entry in names:
            marker = " (configured)" if entry == configured else ""
            typer.echo(f"  • {entry}{marker}")
        return

    try:
        taxonomy = taxonomy_registry.get_taxonomy(name)
    except (FileNotFoundError, ValueError) as e:
        typer.secho(f"✗ Error: {e}", fg=typer.colors.RED, err=True)
        typer.echo(f"  Available: {', '.join(names)}")
        raise typer.Exit(code=1)

    typer.secho(f"\nTaxonomy: {taxonomy.name}", fg=typer.colors.BLUE, bold=True)
    for category, keywords in taxonomy.categories:
        typer.echo(f"  • {category} ({len(keywords)} keywords)")
    typer.echo(f"  Fallback: {taxonomy.fallback_category}")


if __name__ == "__main__":
    app()
