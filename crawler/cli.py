"""
CLI for running the digest pipeline and managing tracked handles.
"""
from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone

import click
from dotenv import load_dotenv

from crawler.errors import AllEndpointsExhausted, DuplicateHandle, InvalidHandle
from digest import build_fetcher, build_service, build_store
from digest.models import RunReport, RunStatus, Trigger
from digest.settings import load_settings
from digest.status import build_status
from digest.summarizer import DigestGenerationFailed


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _echo_json(payload) -> None:
    click.echo(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


def _report(report: RunReport) -> None:
    click.echo(f"[{report.status.value}] {report.message}")
    if report.date:
        click.echo(f"date={report.date} posts={report.posts_count} handles={report.handles_count}")
    for handle, reason in report.failures.items():
        click.echo(f"  @{handle}: {reason}", err=True)
    if report.skipped:
        click.echo(f"  not attempted: {', '.join(report.skipped)}", err=True)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool):
    load_dotenv(os.getenv("DIGEST_DOTENV", ".env"))
    _configure_logging(verbose)
    ctx.obj = load_settings()


def _run(ctx: click.Context, trigger: Trigger) -> None:
    service = build_service(ctx.obj)
    try:
        report = service.run(trigger)
    except DigestGenerationFailed as exc:
        raise click.ClickException(str(exc))
    _report(report)
    if report.status is RunStatus.FAILED:
        ctx.exit(1)


@cli.command()
@click.pass_context
def daily(ctx: click.Context):
    """Scheduled run: scrape, summarize and store today's digest."""
    _run(ctx, Trigger.DAILY)


@cli.command("scrape-now")
@click.pass_context
def scrape_now(ctx: click.Context):
    """On-demand run; nothing is stored when no posts are found."""
    _run(ctx, Trigger.MANUAL)


@cli.command("fetch-handle")
@click.argument("handle")
@click.pass_context
def fetch_handle(ctx: click.Context, handle: str):
    """Fetch one handle through the mirror list and print its posts."""
    fetcher = build_fetcher(ctx.obj)
    try:
        outcome = fetcher.fetch_recent_posts(handle, cutoff=ctx.obj.recency.cutoff(datetime.now(timezone.utc)))
    except InvalidHandle as exc:
        raise click.BadParameter(str(exc), param_hint="HANDLE")
    except AllEndpointsExhausted as exc:
        for attempt in exc.attempts:
            click.echo(f"  {attempt.endpoint}: {attempt.kind} ({attempt.reason})", err=True)
        raise click.ClickException(f"all endpoints failed for @{exc.handle}")
    click.echo(f"via {outcome.endpoint}")
    for post in outcome.posts:
        click.echo(json.dumps(post.model_dump(), ensure_ascii=False))


@cli.group()
def handles():
    """Manage tracked handles."""


@handles.command("list")
@click.pass_context
def handles_list(ctx: click.Context):
    store = build_store(ctx.obj)
    for tracked in store.list_handles():
        click.echo(f"{tracked.id}  @{tracked.handle}  added {tracked.added_at:%Y-%m-%d %H:%M}")


@handles.command("add")
@click.argument("handle")
@click.pass_context
def handles_add(ctx: click.Context, handle: str):
    store = build_store(ctx.obj)
    try:
        tracked = store.add_handle(handle)
    except InvalidHandle as exc:
        raise click.BadParameter(str(exc), param_hint="HANDLE")
    except DuplicateHandle as exc:
        raise click.ClickException(str(exc))
    click.echo(f"{tracked.id}  @{tracked.handle}")


@handles.command("remove")
@click.argument("handle_id")
@click.pass_context
def handles_remove(ctx: click.Context, handle_id: str):
    store = build_store(ctx.obj)
    if not store.remove_handle(handle_id):
        raise click.ClickException(f"no handle with id {handle_id}")
    click.echo(f"removed {handle_id}")


@cli.command()
@click.option("--date", "day", default=None, help="Exact date (YYYY-MM-DD).")
@click.option("--limit", default=7, show_default=True, help="Days to walk back from today.")
@click.pass_context
def summaries(ctx: click.Context, day: str | None, limit: int):
    """Show stored digests."""
    store = build_store(ctx.obj)
    if day:
        digest = store.get_digest(day)
        if digest is None:
            raise click.ClickException(f"no digest found for {day}")
        _echo_json(digest.model_dump(mode="json"))
        return
    _echo_json([d.model_dump(mode="json") for d in store.get_recent(limit)])


@cli.command()
@click.pass_context
def purge(ctx: click.Context):
    """Delete digests past the retention window."""
    removed = build_store(ctx.obj).purge_expired()
    click.echo(f"purged {removed} digest(s)")


@cli.command()
@click.pass_context
def status(ctx: click.Context):
    _echo_json(build_status(build_store(ctx.obj), ctx.obj))


if __name__ == "__main__":  # pragma: no cover
    cli()
