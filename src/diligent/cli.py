from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, List, NoReturn, Optional

import click

from .dependency_scanner import UnsupportedManifestError, default_depers, select_deper
from .license_catalog import CATEGORY_TOKENS, DEFAULT_CATALOG, WhitelistConfigError
from .log import configure_logging, get_logger
from .policy import (
    DiligentConfig,
    ExitStatus,
    IgnorePatternError,
    compile_ignore_patterns,
    load_config,
    process_manifest,
)
from .reporting import REPORT_FORMATS, write_report


log = get_logger(__name__)


def _split_values(values: Iterable[str]) -> List[str]:
    items: List[str] = []
    for value in values:
        items.extend(part.strip() for part in value.split(",") if part.strip())
    return items


def _fail(status: ExitStatus, message: str) -> NoReturn:
    click.echo(message, err=True)
    raise SystemExit(int(status))


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default="warning",
    show_default=True,
    help="Verbosity of diagnostic logging written to stderr.",
)
def main(log_level: str) -> None:
    """Diligent determines the licenses associated with your software dependencies."""
    configure_logging(log_level)


@main.command()
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False, path_type=str))
@click.option(
    "--whitelist",
    "-w",
    multiple=True,
    help=(
        "Licenses compatible with your software; repeat or comma separate. Identifiers and the "
        f"categories {', '.join(repr(token) for token in CATEGORY_TOKENS)} are supported."
    ),
)
@click.option(
    "--ignore",
    "-i",
    multiple=True,
    help="Regular expression of package names to leave out of the report and whitelist checks.",
)
@click.option("--npm-dev-deps", is_flag=True, help="[NPM] Include developer dependencies.")
@click.option("--license", "-l", "by_license", is_flag=True, help="Sort output by license.")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(REPORT_FORMATS, case_sensitive=False),
    default="text",
    show_default=True,
    help="Output format for the report.",
)
@click.option("--csv", "csv_output", is_flag=True, help="Shorthand for --format csv.")
@click.option(
    "--out",
    "-o",
    type=click.Path(dir_okay=False, writable=True, path_type=str),
    help="Write the report to a file instead of stdout.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=str),
    help="YAML file providing whitelist, ignore, npm_dev_deps and strict_whitelist settings.",
)
@click.option(
    "--lenient-whitelist",
    is_flag=True,
    help="Accept whitelist entries that are not known license identifiers or categories.",
)
@click.option(
    "--timeout",
    type=float,
    help="HTTP timeout (seconds) for registry lookups; defaults to DILIGENT_HTTP_TIMEOUT or 10s.",
)
def scan(
    manifest: str,
    whitelist: tuple[str, ...],
    ignore: tuple[str, ...],
    npm_dev_deps: bool,
    by_license: bool,
    fmt: str,
    csv_output: bool,
    out: Optional[str],
    config_path: Optional[str],
    lenient_whitelist: bool,
    timeout: Optional[float],
) -> None:
    """Resolve the licenses of the dependencies declared in MANIFEST."""

    try:
        config = load_config(Path(config_path)) if config_path else DiligentConfig()
    except ValueError as exc:
        _fail(ExitStatus.INVALID_WHITELIST, f"Unable to load configuration: {exc}")

    strict = config.strict_whitelist and not lenient_whitelist
    try:
        allowed = DEFAULT_CATALOG.build_whitelist(config.whitelist + _split_values(whitelist), strict=strict)
    except WhitelistConfigError as exc:
        _fail(ExitStatus.INVALID_WHITELIST, str(exc))

    try:
        patterns = compile_ignore_patterns(config.ignore + list(ignore))
    except IgnorePatternError as exc:
        _fail(ExitStatus.INVALID_IGNORE_PATTERN, str(exc))

    depers = default_depers(
        DEFAULT_CATALOG, npm_dev_deps=npm_dev_deps or config.npm_dev_deps, timeout=timeout
    )
    try:
        deper = select_deper(manifest, depers)
    except UnsupportedManifestError as exc:
        _fail(ExitStatus.UNSUPPORTED_MANIFEST, str(exc))

    log.debug("processing %s with the %s deper", manifest, deper.name)
    result = process_manifest(deper, Path(manifest).read_bytes(), allowed, patterns)
    if result.error is not None:
        _fail(ExitStatus.MANIFEST_INVALID, result.error)

    for warning in result.warnings:
        click.echo(f"WARNING: {warning}", err=True)
    if not result.dependencies:
        _fail(
            ExitStatus.NO_DEPENDENCIES,
            "did not successfully process any dependencies - see warnings above for details",
        )

    report_format = "csv" if csv_output else fmt
    try:
        rendered = write_report(result, report_format, Path(out) if out else None, by_license=by_license)
    except OSError as exc:
        _fail(ExitStatus.REPORT_FAILED, f"Unable to write report: {exc}")
    if not out:
        click.echo(rendered)

    for violation in result.violations:
        click.echo(f"NOT WHITELISTED: {violation}", err=True)

    if result.status is not ExitStatus.OK:
        raise SystemExit(int(result.status))


@main.command()
@click.option(
    "--category",
    "-c",
    multiple=True,
    type=click.Choice(CATEGORY_TOKENS, case_sensitive=False),
    help="Only list licenses in these categories.",
)
@click.option("--json", "json_output", is_flag=True, help="Emit JSON instead of a table.")
def licenses(category: tuple[str, ...], json_output: bool) -> None:
    """List the license identifiers diligent knows about."""

    selected = set(DEFAULT_CATALOG.expand_category_tokens([token.lower() for token in category] or ["all"]))
    known = [lic for lic in DEFAULT_CATALOG if lic.identifier in selected]

    if json_output:
        payload = [
            {"identifier": lic.identifier, "name": lic.name, "category": lic.category.value}
            for lic in known
        ]
        click.echo(json.dumps(payload, indent=2))
        return

    width = max([len("Identifier")] + [len(lic.identifier) for lic in known])
    click.echo(f"{'Identifier':<{width}}  {'Category':<16}  Name")
    for lic in known:
        click.echo(f"{lic.identifier:<{width}}  {lic.category.value:<16}  {lic.name}")


if __name__ == "__main__":
    main()
