"""Command-line interface for the Data Safe toolkit."""

import csv
import io
import json
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog
import typer
from rich.console import Console
from rich.table import Table

from .config import load_config, parse_ttl
from .constants import DEFAULT_LIST_FIELDS, DEFAULT_TAG_NAMESPACE, OUTPUT_FORMATS
from .core.connector_summary import (
    ConnectorGroup,
    group_by_connector,
    has_connector_hints,
    with_connection_details,
)
from .core.lifecycle import normalize_lifecycle_filter
from .core.selection import (
    count_by_lifecycle,
    field_value,
    filter_by_name,
    filter_by_ocid,
    find_untagged,
    load_selection,
    save_selection,
)
from .observability import LogContext, configure_logging, level_from_flags
from .session import DataSafeSession
from .utils.exceptions import AmbiguousMatchError, DataSafeError, RemoteFetchError

app = typer.Typer(
    name="odb-datasafe",
    help="Oracle Data Safe target and connector administration",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)
logger = structlog.get_logger(__name__)


@dataclass
class CLISettings:
    """Options shared by every command, collected by the app callback."""

    config_file: Path | None = None
    oci_profile: str | None = None
    oci_region: str | None = None
    oci_config: Path | None = None
    cache_ttl: str | None = None
    log_filter: str | None = None
    logging_from_flags: bool = False


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Path | None = typer.Option(None, "--config", help="YAML configuration file"),
    log_level: str = typer.Option(
        "INFO", "--log-level", help="Log verbosity: TRACE, DEBUG, INFO, WARN, ERROR"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug output"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Trace output (every OCI call)"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Warnings and errors only"),
    log_file: Path | None = typer.Option(None, "--log-file", help="Also write logs to FILE"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Render log lines as JSON"),
    log_filter: str | None = typer.Option(
        None, "--log-filter", help="Only log from modules matching these names, e.g. resolver,cache"
    ),
    oci_profile: str | None = typer.Option(None, "--oci-profile", help="OCI config profile"),
    oci_region: str | None = typer.Option(None, "--oci-region", help="OCI region override"),
    oci_config: Path | None = typer.Option(None, "--oci-config", help="OCI config file"),
    cache_ttl: str | None = typer.Option(
        None, "--cache-ttl", help="Listing cache TTL in seconds (0 disables caching)"
    ),
) -> None:
    """
    Manage Oracle Data Safe targets and connectors.

    Names are resolved to OCIDs with exact, case-insensitive and partial
    matching; listings are cached for a few minutes between invocations.
    """
    level = level_from_flags(log_level, verbose=verbose, debug=debug, quiet=quiet)
    configure_logging(level=level, json_logs=json_logs, log_file=log_file, log_filter=log_filter)
    ctx.obj = CLISettings(
        config_file=config_file,
        oci_profile=oci_profile,
        oci_region=oci_region,
        oci_config=oci_config,
        cache_ttl=cache_ttl,
        log_filter=log_filter,
        logging_from_flags=bool(
            log_level.upper() != "INFO" or verbose or debug or quiet or log_file or json_logs
        ),
    )


def _open_session(ctx: typer.Context, dry_run: bool = False) -> DataSafeSession:
    """Load configuration, apply command-line overrides and build a session."""
    settings: CLISettings = ctx.obj or CLISettings()
    config = load_config(settings.config_file)

    # LOG_LEVEL / config file logging section apply unless a logging flag was given
    if not settings.logging_from_flags:
        configure_logging(
            level=config.logging.level,
            json_logs=config.logging.format == "json",
            log_file=config.logging.file,
            log_filter=settings.log_filter,
        )

    if settings.oci_profile:
        config.oci.profile = settings.oci_profile
    if settings.oci_region:
        config.oci.region = settings.oci_region
    if settings.oci_config:
        config.oci.config_file = settings.oci_config
    if settings.cache_ttl is not None:
        config.cache.ttl_seconds = parse_ttl(settings.cache_ttl)
    if dry_run:
        config.dry_run = True

    return DataSafeSession(config)


@contextmanager
def _handle_errors(command: str) -> Iterator[None]:
    """
    Translate toolkit errors into operator messages and exit codes.

    Exit codes: 1 resolution/validation error, 2 OCI error.
    """
    with LogContext(command=command):
        try:
            yield
        except typer.Exit:
            raise
        except AmbiguousMatchError as e:
            err_console.print(
                f"[red]ERROR:[/red] {e.resource_type.capitalize()} name "
                f"[bold]{e.value!r}[/bold] is ambiguous"
            )
            err_console.print(_candidate_table(e))
            err_console.print("Use the exact name or the OCID.")
            raise typer.Exit(code=1) from e
        except RemoteFetchError as e:
            err_console.print(f"[red]ERROR:[/red] {e}")
            raise typer.Exit(code=2) from e
        except (DataSafeError, ValueError, FileNotFoundError) as e:
            err_console.print(f"[red]ERROR:[/red] {e}")
            raise typer.Exit(code=1) from e


def _candidate_table(error: AmbiguousMatchError) -> Table:
    table = Table(title=f"Candidates for {error.value!r}")
    table.add_column("Display Name", style="cyan")
    table.add_column("OCID", style="green", overflow="fold")
    for candidate in error.candidates:
        table.add_row(candidate.display_name, candidate.identifier)
    return table


def _check_format(output_format: str) -> str:
    fmt = output_format.lower()
    if fmt not in OUTPUT_FORMATS:
        raise ValueError(
            f"Unknown output format {output_format!r} (use {', '.join(sorted(OUTPUT_FORMATS))})"
        )
    return fmt


def _split_fields(fields: str) -> list[str]:
    return [f.strip() for f in fields.split(",") if f.strip()]


def _emit_records(
    records: Sequence[Any], fields: Sequence[str], output_format: str, title: str
) -> None:
    """Print records as a rich table, JSON or CSV."""
    if output_format == "json":
        if list(fields) == ["all"]:
            payload = [r.to_cli_dict() for r in records]
        else:
            payload = [{f: field_value(r, f) for f in fields} for r in records]
        typer.echo(json.dumps(payload, indent=2))
        return

    if output_format == "csv":
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(fields)
        for record in records:
            writer.writerow(["" if (v := field_value(record, f)) is None else v for f in fields])
        typer.echo(buffer.getvalue(), nl=False)
        return

    table = Table(title=title)
    for f in fields:
        table.add_column(f, style="cyan" if f == "display-name" else None)
    for record in records:
        table.add_row(*[_cell(field_value(record, f)) for f in fields])
    console.print(table)
    console.print(f"Total: {len(records)}")


def _cell(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def _emit_counts(records: Sequence[Any], output_format: str) -> None:
    counts = count_by_lifecycle(records)
    total = sum(c for _, c in counts)

    if output_format == "json":
        typer.echo(json.dumps({"counts": dict(counts), "total": total}, indent=2))
        return
    if output_format == "csv":
        typer.echo("lifecycle-state,count")
        for state, count in counts:
            typer.echo(f"{state},{count}")
        return

    if not counts:
        console.print("No targets found")
        return

    table = Table(title="Data Safe targets by lifecycle state")
    table.add_column("Lifecycle State", style="cyan")
    table.add_column("Count", justify="right", style="green")
    for state, count in counts:
        table.add_row(state, str(count))
    table.add_section()
    table.add_row("TOTAL", str(total), style="bold")
    console.print(table)


@app.command()
def resolve(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Target (or connector) name, partial name or OCID"),
    compartment: str | None = typer.Option(
        None, "--compartment", "-c", help="Compartment name or OCID (default: DS_ROOT_COMP)"
    ),
    connector: bool = typer.Option(False, "--connector", help="Resolve an on-prem connector"),
) -> None:
    """
    Resolve a name to its OCID.

    Examples:
        odb-datasafe resolve prod-db1
        odb-datasafe resolve sales -c Production
        odb-datasafe resolve my-connector --connector
    """
    with _handle_errors("resolve"), _open_session(ctx) as session:
        if connector:
            ocid = session.resolver.resolve_connector_ocid(name, compartment)
        else:
            ocid = session.resolver.resolve_target_ocid(name, compartment)
        typer.echo(ocid)


@app.command("list")
def list_targets(
    ctx: typer.Context,
    compartment: str | None = typer.Option(
        None, "--compartment", "-c", help="Compartment name or OCID (default: DS_ROOT_COMP)"
    ),
    targets: list[str] = typer.Option(
        [], "--targets", "-T", help="Target names or OCIDs (repeat or comma-separate)"
    ),
    lifecycle: str | None = typer.Option(
        None, "--lifecycle", "-L", help="Lifecycle states, e.g. ACTIVE,NEEDS_ATTENTION"
    ),
    name_filter: str | None = typer.Option(
        None, "--filter", "-r", help="Regex on target display names"
    ),
    mode: str = typer.Option("details", "--mode", "-M", help="details or count"),
    output_format: str = typer.Option("table", "--format", "-f", help="table, json or csv"),
    fields: str = typer.Option(
        ",".join(DEFAULT_LIST_FIELDS), "--fields", "-F", help="Comma-separated fields ('all' for json)"
    ),
    input_json: Path | None = typer.Option(
        None, "--input-json", help="Read targets from a saved selection instead of OCI"
    ),
    save_json: Path | None = typer.Option(
        None, "--save-json", help="Save the selected targets for later --input-json runs"
    ),
) -> None:
    """
    List Data Safe target databases.

    Examples:
        odb-datasafe list
        odb-datasafe list --mode count
        odb-datasafe list -L NEEDS_ATTENTION -f csv
        odb-datasafe list -r '^prod' --save-json selection.json
    """
    with _handle_errors("list"):
        fmt = _check_format(output_format)
        if mode not in ("details", "count"):
            raise ValueError(f"Unknown mode {mode!r} (use details or count)")
        states = normalize_lifecycle_filter(lifecycle)

        if input_json:
            records = load_selection(input_json)
            if states:
                wanted = {s.value for s in states}
                records = [r for r in records if r.lifecycle_state in wanted]
            if targets:
                raise ValueError("--targets cannot be combined with --input-json")
        else:
            with _open_session(ctx) as session:
                scope_id = session.compartments.resolve_or_root(compartment)
                records = session.listing_cache.get_targets(scope_id, states)
                if targets:
                    ocids = session.resolver.resolve_targets(targets, compartment)
                    records = filter_by_ocid(records, ocids)

        records = filter_by_name(records, name_filter)
        logger.debug("Targets selected", count=len(records))

        if save_json:
            save_selection(records, save_json)
            err_console.print(f"[green]Saved {len(records)} targets to {save_json}[/green]")

        if mode == "count":
            _emit_counts(records, fmt)
        else:
            _emit_records(records, _split_fields(fields), fmt, "Data Safe targets")


@app.command()
def details(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Target name or OCID"),
    compartment: str | None = typer.Option(
        None, "--compartment", "-c", help="Compartment name or OCID (default: DS_ROOT_COMP)"
    ),
    output_format: str = typer.Option("table", "--format", "-f", help="table or json"),
) -> None:
    """
    Show details for one target, including its connector.

    Examples:
        odb-datasafe details prod-db1
        odb-datasafe details ocid1.datasafetargetdatabase.oc1..xyz -f json
    """
    with _handle_errors("details"), _open_session(ctx) as session:
        fmt = _check_format(output_format)
        ocid = session.resolver.resolve_target_ocid(target, compartment)
        record = session.client.get_target(ocid)

        if fmt == "json":
            typer.echo(json.dumps(record.to_cli_dict(), indent=2))
            return

        table = Table(title=record.display_name or ocid, show_header=False)
        table.add_column("Property", style="cyan")
        table.add_column("Value", overflow="fold")
        table.add_row("OCID", record.id)
        table.add_row("Lifecycle State", _cell(record.lifecycle_state))
        table.add_row("Lifecycle Details", _cell(record.lifecycle_details))
        table.add_row("Compartment", _cell(record.compartment_id))
        table.add_row("Database Type", _cell(record.database_type))
        table.add_row("Infrastructure", _cell(record.infrastructure_type))
        table.add_row("Connector", _cell(record.connector_id))
        table.add_row("Created", _cell(record.time_created))
        table.add_row("Freeform Tags", _cell(record.freeform_tags or None))
        table.add_row("Defined Tags", _cell(record.defined_tags or None))
        console.print(table)


@app.command()
def untagged(
    ctx: typer.Context,
    compartment: str | None = typer.Option(
        None, "--compartment", "-c", help="Compartment name or OCID (default: DS_ROOT_COMP)"
    ),
    namespace: str = typer.Option(
        DEFAULT_TAG_NAMESPACE, "--namespace", "-n", help="Defined tag namespace to check"
    ),
    state: str = typer.Option("ACTIVE", "--state", "-s", help="Lifecycle state filter"),
    output_format: str = typer.Option("table", "--format", "-f", help="table, json or csv"),
) -> None:
    """
    Find targets without any defined tag in a namespace.

    Examples:
        odb-datasafe untagged
        odb-datasafe untagged -n Security -f csv
    """
    with _handle_errors("untagged"), _open_session(ctx) as session:
        fmt = _check_format(output_format)
        scope_id = session.compartments.resolve_or_root(compartment)
        records = session.listing_cache.get_targets(scope_id, normalize_lifecycle_filter(state))
        missing = find_untagged(records, namespace)
        logger.info("Untagged targets", total=len(records), untagged=len(missing))

        if not missing and fmt == "table":
            console.print(f"No targets without {namespace} tags")
            return
        _emit_records(
            missing,
            ["id", "display-name", "lifecycle-state", "database-type"],
            fmt,
            f"Targets without {namespace} tags",
        )


@app.command()
def connectors(
    ctx: typer.Context,
    compartment: str | None = typer.Option(
        None, "--compartment", "-c", help="Compartment name or OCID (default: DS_ROOT_COMP)"
    ),
    output_format: str = typer.Option("table", "--format", "-f", help="table or json"),
) -> None:
    """List on-prem connectors."""
    with _handle_errors("connectors"), _open_session(ctx) as session:
        fmt = _check_format(output_format)
        scope_id = session.compartments.resolve_or_root(compartment)
        items = session.listing_cache.get_connectors(scope_id)

        if fmt == "json":
            typer.echo(json.dumps([c.to_cli_dict() for c in items], indent=2))
            return

        table = Table(title="On-prem connectors")
        table.add_column("Display Name", style="cyan")
        table.add_column("Lifecycle State")
        table.add_column("Version")
        table.add_column("OCID", overflow="fold")
        for c in sorted(items, key=lambda c: c.display_name or ""):
            table.add_row(
                _cell(c.display_name), _cell(c.lifecycle_state), _cell(c.available_version), c.id
            )
        console.print(table)


@app.command("connector-summary")
def connector_summary(
    ctx: typer.Context,
    compartment: str | None = typer.Option(
        None, "--compartment", "-c", help="Compartment name or OCID (default: DS_ROOT_COMP)"
    ),
    lifecycle: str | None = typer.Option(
        None, "--lifecycle", "-L", help="Lifecycle states, e.g. ACTIVE,NEEDS_ATTENTION"
    ),
    detailed: bool = typer.Option(
        False, "--detailed", "-D", help="List the targets under each connector"
    ),
    output_format: str = typer.Option("table", "--format", "-f", help="table, json or csv"),
    fields: str = typer.Option(
        ",".join(DEFAULT_LIST_FIELDS), "--fields", "-F", help="Target fields for --detailed"
    ),
) -> None:
    """
    Show targets grouped by on-prem connector.

    Examples:
        odb-datasafe connector-summary
        odb-datasafe connector-summary -L ACTIVE -f csv
        odb-datasafe connector-summary -D -f json
    """
    with _handle_errors("connector-summary"), _open_session(ctx) as session:
        fmt = _check_format(output_format)
        states = normalize_lifecycle_filter(lifecycle)
        scope_id = session.compartments.resolve_or_root(compartment)

        items = session.listing_cache.get_connectors(scope_id)
        records = session.listing_cache.get_targets(scope_id, states)
        if items and records and not has_connector_hints(records):
            records = with_connection_details(session.client, records)

        groups = group_by_connector(records, items)
        logger.debug("Targets grouped by connector", connectors=len(items), groups=len(groups))

        if detailed:
            _emit_connector_targets(groups, _split_fields(fields), fmt)
        else:
            _emit_connector_counts(groups, fmt)


def _emit_connector_counts(groups: Sequence[ConnectorGroup], output_format: str) -> None:
    if output_format == "json":
        typer.echo(json.dumps([g.to_dict() for g in groups], indent=2))
        return
    if output_format == "csv":
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(["connector_name", "lifecycle_state", "count"])
        for group in groups:
            for state, count in group.state_counts().items():
                writer.writerow([group.connector_name, state, count])
        typer.echo(buffer.getvalue(), nl=False)
        return

    if not groups:
        console.print("No targets found")
        return

    table = Table(title="Data Safe targets by on-prem connector")
    table.add_column("Connector", style="cyan")
    table.add_column("Lifecycle State")
    table.add_column("Count", justify="right", style="green")
    for group in groups:
        for i, (state, count) in enumerate(group.state_counts().items()):
            table.add_row(group.connector_name if i == 0 else "", state, str(count))
        table.add_row("", "Subtotal", str(group.total), style="dim")
        table.add_section()
    table.add_row("GRAND TOTAL", "", str(sum(g.total for g in groups)), style="bold")
    console.print(table)


def _emit_connector_targets(
    groups: Sequence[ConnectorGroup], fields: Sequence[str], output_format: str
) -> None:
    if output_format == "json":
        payload = [
            {
                "connector_id": g.connector_id,
                "connector_name": g.connector_name,
                "targets": [{f: field_value(t, f) for f in fields} for t in g.targets],
            }
            for g in groups
        ]
        typer.echo(json.dumps(payload, indent=2))
        return
    if output_format == "csv":
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(["connector_name", *fields])
        for group in groups:
            for target in group.targets:
                row = [field_value(target, f) for f in fields]
                writer.writerow([group.connector_name, *["" if v is None else v for v in row]])
        typer.echo(buffer.getvalue(), nl=False)
        return

    for group in groups:
        _emit_records(group.targets, fields, "table", group.connector_name)


@app.command()
def refresh(
    ctx: typer.Context,
    targets: list[str] = typer.Argument(..., help="Target names or OCIDs"),
    compartment: str | None = typer.Option(
        None, "--compartment", "-c", help="Compartment name or OCID (default: DS_ROOT_COMP)"
    ),
    wait: bool = typer.Option(
        False, "--wait", "-w", help="Wait for each refresh to finish (SUCCEEDED or FAILED)"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Show what would be done"),
) -> None:
    """
    Refresh one or more targets.

    Examples:
        odb-datasafe refresh prod-db1 prod-db2
        odb-datasafe refresh 'prod-db1,prod-db2' --dry-run
        odb-datasafe refresh prod-db1 --wait
    """
    with _handle_errors("refresh"), _open_session(ctx, dry_run=dry_run) as session:
        ocids = session.resolver.resolve_targets(targets, compartment)
        submitted = session.operations.refresh_all(ocids, wait=wait)
        if session.operations.dry_run:
            console.print(f"[yellow]DRY RUN:[/yellow] {len(ocids)} target(s) would be refreshed")
        elif wait:
            console.print(f"[green]Refresh completed for {submitted} target(s)[/green]")
        else:
            console.print(f"[green]Refresh submitted for {submitted} target(s)[/green]")


@app.command("update-tags")
def update_tags(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Target name or OCID"),
    freeform_tags: str | None = typer.Option(
        None, "--freeform-tags", help='Freeform tags JSON, e.g. \'{"env": "prod"}\''
    ),
    defined_tags: str | None = typer.Option(
        None, "--defined-tags", help='Defined tags JSON, e.g. \'{"DBSec": {"Env": "prod"}}\''
    ),
    compartment: str | None = typer.Option(
        None, "--compartment", "-c", help="Compartment name or OCID (default: DS_ROOT_COMP)"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Show what would be done"),
) -> None:
    """Replace freeform and/or defined tags on a target."""
    with _handle_errors("update-tags"), _open_session(ctx, dry_run=dry_run) as session:
        freeform = _parse_json_option("--freeform-tags", freeform_tags)
        defined = _parse_json_option("--defined-tags", defined_tags)
        ocid = session.resolver.resolve_target_ocid(target, compartment)
        if session.operations.update_tags(ocid, freeform, defined):
            console.print(f"[green]Tags updated for {ocid}[/green]")


@app.command("update-service")
def update_service(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Target name or OCID"),
    service_name: str = typer.Argument(..., help="New database service name"),
    compartment: str | None = typer.Option(
        None, "--compartment", "-c", help="Compartment name or OCID (default: DS_ROOT_COMP)"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Show what would be done"),
) -> None:
    """
    Point a target at another database service name.

    Examples:
        odb-datasafe update-service prod-db1 prod_exa.example.com --dry-run
    """
    with _handle_errors("update-service"), _open_session(ctx, dry_run=dry_run) as session:
        ocid = session.resolver.resolve_target_ocid(target, compartment)
        if session.operations.update_service(ocid, service_name):
            console.print(f"[green]Service name updated for {ocid}[/green]")


def _parse_json_option(option: str, value: str | None) -> dict[str, Any] | None:
    if value is None:
        return None
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        raise ValueError(f"{option} is not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise ValueError(f"{option} must be a JSON object")
    return parsed


@app.command()
def delete(
    ctx: typer.Context,
    targets: list[str] = typer.Argument(..., help="Target names or OCIDs"),
    compartment: str | None = typer.Option(
        None, "--compartment", "-c", help="Compartment name or OCID (default: DS_ROOT_COMP)"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Show what would be done"),
) -> None:
    """
    Delete target registrations.

    Examples:
        odb-datasafe delete old-db1 --dry-run
        odb-datasafe delete old-db1 old-db2 --yes
    """
    with _handle_errors("delete"), _open_session(ctx, dry_run=dry_run) as session:
        ocids = session.resolver.resolve_targets(targets, compartment)

        if not session.operations.dry_run and not yes:
            if not typer.confirm(f"Delete {len(ocids)} target(s)?"):
                console.print("[yellow]Aborted.[/yellow]")
                raise typer.Exit()

        deleted = sum(1 for ocid in ocids if session.operations.delete(ocid))
        if not session.operations.dry_run:
            console.print(f"[green]Deleted {deleted} target(s)[/green]")


@app.command("cache-clear")
def cache_clear(ctx: typer.Context) -> None:
    """Remove every cached listing."""
    with _handle_errors("cache-clear"), _open_session(ctx) as session:
        removed = session.listing_cache.clear()
        console.print(f"Removed {removed} cached listing(s) from {session.listing_cache.cache_dir}")
