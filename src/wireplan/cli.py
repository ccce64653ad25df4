"""Command line entry point: ``wireplan generate`` and ``wireplan inspect``."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, NoReturn

import click

from wireplan.config import WirePlanSettings
from wireplan.emitters import WiringRenderer
from wireplan.exceptions import WirePlanConfigurationError, WirePlanError
from wireplan.frontends import discover_sources, load_declarations
from wireplan.plan import ResolutionPlan
from wireplan.resolve import resolve
from wireplan.types import Severity

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

source_dir_argument = click.argument(
    "source_dir",
    required=False,
    type=click.Path(file_okay=False, path_type=Path),
)
default_module_option = click.option(
    "--default-module",
    help="Module assigned to factories without a @Module tag.",
)
exclude_option = click.option(
    "--exclude",
    multiple=True,
    help="Glob pattern, relative to SOURCE_DIR, to skip. Repeatable.",
)


@click.group()
@click.version_option(package_name="wireplan", prog_name="wireplan")
@click.option("--verbose", "-v", is_flag=True, help="Log every resolution step.")
def cli(verbose: bool) -> None:
    """Generate dependency-injection wiring from annotated Python sources.

    \b
    Examples:
      wireplan generate src --output src/ioc
      wireplan inspect src > plan.json
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=_LOG_FORMAT)


@cli.command("generate")
@source_dir_argument
@click.option(
    "--output",
    "-o",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory receiving the generated modules.",
)
@default_module_option
@exclude_option
@click.option("--dry-run", is_flag=True, help="Print the files that would be written.")
def generate(
    source_dir: Path | None,
    output_dir: Path | None,
    default_module: str | None,
    exclude: tuple[str, ...],
    dry_run: bool,
) -> None:
    """Resolve SOURCE_DIR and write tokens, factories and containers."""
    try:
        settings = _load_settings(
            source_dir=source_dir,
            output_dir=output_dir,
            default_module=default_module,
            exclude=list(exclude) or None,
        )
        plan = _resolve_sources(settings)
        files = WiringRenderer(settings).render(plan)
    except WirePlanError as error:
        _fail(error)

    written = 0
    for relative_path, text in files.items():
        target = settings.output_dir / relative_path
        if dry_run:
            click.echo(f"would write {target}")
            continue
        if target.is_file() and target.read_text(encoding="utf-8") == text:
            logger.debug("Unchanged %s", target)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
        written += 1

    click.echo(
        f"{len(plan.tokens)} tokens, {len(plan.factories)} factories, "
        f"{len(plan.modules)} module(s); {written} file(s) written to {settings.output_dir}",
    )
    for diagnostic in plan.diagnostics:
        if diagnostic.severity is Severity.WARNING:
            click.echo(f"warning: {diagnostic.message}", err=True)


@cli.command("inspect")
@source_dir_argument
@default_module_option
@exclude_option
def inspect(
    source_dir: Path | None,
    default_module: str | None,
    exclude: tuple[str, ...],
) -> None:
    """Print the resolution plan of SOURCE_DIR as JSON."""
    try:
        settings = _load_settings(
            source_dir=source_dir,
            default_module=default_module,
            exclude=list(exclude) or None,
        )
        plan = _resolve_sources(settings)
    except WirePlanError as error:
        _fail(error)
    click.echo(json.dumps(plan.as_dict(), indent=2))


def _load_settings(**overrides: Any) -> WirePlanSettings:
    return WirePlanSettings(**{key: value for key, value in overrides.items() if value is not None})


def _resolve_sources(settings: WirePlanSettings) -> ResolutionPlan:
    root = settings.source_dir
    if not root.is_dir():
        msg = f"Source directory {root} does not exist."
        raise WirePlanConfigurationError(msg)
    paths = discover_sources(root, exclude=settings.discovery_exclude())
    logger.info("Scanning %d source file(s) under %s", len(paths), root)
    declarations = load_declarations(paths, root=root)
    return resolve(declarations, default_module=settings.default_module)


def _fail(error: WirePlanError) -> NoReturn:
    click.echo(f"error: {error}", err=True)
    raise SystemExit(1) from error
