#!/usr/bin/env python3
"""
CLI for the HSSE Composite Dashboard

Commands:
    dashboard      - Build (or fetch from cache) the composite report
    section        - Compute one report slot, uncached
    sections       - List registered report slots
    rollup-status  - Show rollup coverage per domain/granularity
    cache-clear    - Clear the dashboard cache

Usage:
    python cli.py dashboard --start 2024-01-01 --end 2024-12-31
    python cli.py dashboard --department Operations --json
    python cli.py section hazard_statistics --start 2024-01-01
    python cli.py rollup-status

Examples:
    # Last 12 months, all departments, without the yearly trend slots
    python cli.py dashboard --no-trends

    # Force a fresh computation (result is still cached)
    python cli.py dashboard --skip-cache --json
"""

import json
import sys

import click


def get_app_context():
    """Get Flask app context for database access."""
    from app import create_app
    app = create_app()
    return app.app_context()


def _request_params(start, end, department, location, no_trends, skip_cache=False):
    params = {
        'startDate': start,
        'endDate': end,
        'department': department,
        'location': location,
        'includeTrends': not no_trends,
        'skipCache': skip_cache,
    }
    return {k: v for k, v in params.items() if v is not None}


def _filter_options(func):
    func = click.option("--no-trends", is_flag=True, help="Skip the yearly trend slots")(func)
    func = click.option("--location", default=None, help="Location filter (exact match)")(func)
    func = click.option("--department", default=None, help="Department filter (exact match)")(func)
    func = click.option("--end", default=None, help="Window end, YYYY-MM-DD (default: today UTC)")(func)
    func = click.option("--start", default=None, help="Window start, YYYY-MM-DD (default: end - 1 year)")(func)
    return func


def _fail(message):
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


@click.group()
@click.version_option(version="1.0.0", prog_name="hsse-cli")
def cli():
    """HSSE Composite Dashboard CLI - build reports and inspect caches and rollups."""
    pass


@cli.command("dashboard")
@_filter_options
@click.option("--skip-cache", is_flag=True, help="Bypass the cache read")
@click.option("--json", "output_json", is_flag=True, help="Output the full report as JSON")
def dashboard(start, end, department, location, no_trends, skip_cache, output_json):
    """Build the composite HSSE report for one window and filter."""
    from services.hsse.base import DashboardError
    from utils.normalize import ValidationError

    with get_app_context():
        from flask import current_app
        service = current_app.extensions['hsse_dashboard']

        try:
            report, meta = service.handle_with_meta(
                _request_params(start, end, department, location, no_trends, skip_cache)
            )
        except ValidationError as e:
            _fail(f"{e.field or 'input'}: {e}")
        except DashboardError as e:
            _fail(str(e))

        if output_json:
            click.echo(json.dumps({"data": report.to_response(), "meta": meta}, indent=2, default=str))
            return

        click.echo(f"Window: {report.filter.start_date} .. {report.filter.end_date}")
        click.echo(f"Department: {report.filter.department or 'all'}   "
                   f"Location: {report.filter.location or 'all'}")
        click.echo(f"Cache: {'hit' if meta['cache_hit'] else 'miss'} ({meta['elapsed_ms']}ms)")
        click.echo()
        for slot in report.slot_names():
            value = getattr(report, slot)
            if value is None:
                continue
            if value.status == 'ok':
                click.echo(f"  {slot:<24} ok ({value.source})")
            else:
                click.secho(f"  {slot:<24} unavailable: {value.reason}", fg="yellow")

        if meta['unavailable']:
            click.echo()
            click.secho(f"{len(meta['unavailable'])} slot(s) unavailable; report was not cached",
                        fg="yellow")


@cli.command("section")
@click.argument("slot")
@_filter_options
def section(slot, start, end, department, location, no_trends):
    """
    Compute one report slot without touching the cache.

    SLOT: slot name, e.g. hazard_statistics (see `sections`)
    """
    from utils.normalize import ValidationError

    with get_app_context():
        from flask import current_app
        service = current_app.extensions['hsse_dashboard']

        try:
            result = service.compute_section(
                slot, _request_params(start, end, department, location, no_trends)
            )
        except KeyError:
            _fail(f"unknown section {slot!r}; run `sections` for the list")
        except ValidationError as e:
            _fail(f"{e.field or 'input'}: {e}")

        click.echo(json.dumps(result.model_dump(mode='json', by_alias=True), indent=2))


@cli.command("sections")
def sections():
    """List registered report slots in report order."""
    from services.hsse.registry import list_sections

    for item in list_sections():
        rollup = f"rollup:{item['rollup_domain']}" if item['rollup_domain'] else ""
        click.echo(f"{item['slot']:<24} {item['tier']:<9} {item['title']:<32} {rollup}")


@cli.command("rollup-status")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def rollup_status(output_json):
    """Show which domains and granularities the rollup table covers."""
    with get_app_context():
        from flask import current_app
        coverage = current_app.extensions['hsse_dashboard'].rollup_status()

    if output_json:
        click.echo(json.dumps(coverage, indent=2))
        return
    if not coverage:
        click.echo("No rollups present; every slot is served live.")
        return
    for item in coverage:
        click.echo(
            f"{item['domain']:<12} {item['granularity']:<6} "
            f"{item['first_period_start']} .. {item['last_period_end']} "
            f"({item['row_count']} rows, computed {item['last_computed_at']})"
        )


@cli.command("cache-clear")
def cache_clear():
    """Clear every cached dashboard report."""
    with get_app_context():
        from flask import current_app
        current_app.extensions['hsse_dashboard'].clear_cache()
    click.secho("Dashboard cache cleared", fg="green")


if __name__ == "__main__":
    cli()
