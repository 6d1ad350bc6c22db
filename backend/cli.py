#!/usr/bin/env python3
"""
CLI for Candidate Ingestion

Commands:
    sync             - Run a candidate sync (Google Places, or a JSON file)
    cancel-sync      - Request cancellation of a running sync
    rescore          - Recompute scores/duplicate flags for pending candidates
    retry-import     - Re-run campsite creation for an approved candidate
    list-candidates  - Show candidates in the review queue

Usage:
    python cli.py sync
    python cli.py sync --file data/places.json --max-places 200
    python cli.py cancel-sync 3f2a...
    python cli.py rescore
    python cli.py retry-import 9c1e... --actor ops
    python cli.py list-candidates --status pending --limit 50

The JSON file holds a list of place objects with RawPlace fields
(place_id, name, address, latitude, longitude, phone, website, rating,
rating_count, types, business_status).
"""

import click
import sys
import json


def get_app_context():
    """Get Flask app context for database access."""
    from app import create_app
    app = create_app()
    return app.app_context()


def _echo_error(error):
    click.secho(f"Error [{error.kind.value}]: {error.message}", fg="red")


@click.group()
@click.version_option(version="1.0.0", prog_name="candidate-cli")
def cli():
    """Candidate Ingestion CLI - Sync, rescore and repair import candidates."""
    pass


@cli.command("sync")
@click.option("--file", "file_path", type=click.Path(exists=True), default=None,
              help="Read places from a JSON file instead of Google Places")
@click.option("--max-places", type=int, default=None, help="Cap on raw records read")
@click.option("--batch-size", type=int, default=50, show_default=True,
              help="Records per batch when reading from a file")
@click.option("--triggered-by", default="cli", show_default=True)
def sync(file_path, max_places, batch_size, triggered_by):
    """Run a candidate sync in the foreground."""
    from services.ingestion_config import is_sync_enabled
    from services.places_client import GooglePlacesSource, PlaceSourceError, StaticPlaceSource

    if not is_sync_enabled():
        click.secho("Candidate sync is disabled (CANDIDATE_SYNC_ENABLED=false)", fg="yellow")
        sys.exit(2)

    if file_path:
        with open(file_path, "r") as f:
            records = json.load(f)
        if not isinstance(records, list):
            click.secho("JSON file must contain a list of places", fg="red")
            sys.exit(1)
        source = StaticPlaceSource.from_records(records, batch_size=batch_size)
        click.echo(f"Source: {file_path} ({len(records)} records)")
    else:
        try:
            source = GooglePlacesSource()
        except PlaceSourceError as e:
            click.secho(f"Error: {e}", fg="red")
            sys.exit(1)
        click.echo(f"Source: Google Places ({len(source.queries)} queries)")

    with get_app_context():
        from flask import current_app
        from services.candidate_sync import CandidateSyncService
        from services.ingestion_config import settings_from_app_config

        matcher, scorer = settings_from_app_config(current_app.config)
        service = CandidateSyncService(matcher_settings=matcher, scorer_settings=scorer)
        result = service.run(source, triggered_by=triggered_by, max_places=max_places)

        if result.is_err:
            _echo_error(result.error)
            sys.exit(1)

        run = result.value
        click.echo("=" * 60)
        click.secho("SYNC SUMMARY", fg="cyan", bold=True)
        click.echo("=" * 60)
        click.echo(f"Run ID:     {run.id}")
        click.echo(f"Status:     {run.status}")
        click.echo(f"Batches:    {run.batches_completed}")
        click.echo(f"Seen:       {run.records_seen}")
        click.echo(click.style("  Created:    ", fg="white") + click.style(str(run.candidates_created), fg="green"))
        click.echo(click.style("  Existing:   ", fg="white") + click.style(str(run.skipped_existing), fg="blue"))
        click.echo(click.style("  Invalid:    ", fg="white") + click.style(str(run.skipped_invalid), fg="yellow"))
        click.echo(click.style("  Duplicates: ", fg="white") + click.style(str(run.duplicates_flagged), fg="magenta"))
        if run.error_message:
            click.secho(f"  Error: {run.error_kind}: {run.error_message}", fg="red")
            sys.exit(1)


@cli.command("cancel-sync")
@click.argument("run_id")
def cancel_sync(run_id):
    """Request cancellation of RUN_ID; it stops before its next batch."""
    with get_app_context():
        from services.candidate_sync import CandidateSyncService

        result = CandidateSyncService().cancel_sync(run_id)
        if result.is_err:
            _echo_error(result.error)
            sys.exit(1)
        click.secho(f"Cancel requested for run {run_id}", fg="green")


@cli.command("rescore")
def rescore():
    """Recompute confidence and duplicate fields for every pending candidate."""
    with get_app_context():
        from flask import current_app
        from services.candidate_sync import CandidateSyncService
        from services.ingestion_config import settings_from_app_config

        matcher, scorer = settings_from_app_config(current_app.config)
        result = CandidateSyncService(matcher_settings=matcher, scorer_settings=scorer).rescore_pending()
        if result.is_err:
            _echo_error(result.error)
            sys.exit(1)

        stats = result.value
        click.echo(f"  Rescored:   {stats['rescored']}")
        click.echo(f"  Duplicates: {stats['duplicates']}")
        click.echo(f"  Skipped:    {stats['skipped']}")


@cli.command("retry-import")
@click.argument("candidate_id")
@click.option("--actor", default="cli", show_default=True, help="Recorded as imported_by")
def retry_import(candidate_id, actor):
    """Re-run campsite creation for an approved CANDIDATE_ID."""
    with get_app_context():
        from routes.candidates import get_campsite_creator
        from services.candidate_review import CandidateReviewService
        from services.candidate_store import CandidateStore

        service = CandidateReviewService(CandidateStore(), get_campsite_creator())
        result = service.retry_import(candidate_id, actor)
        if result.is_err:
            _echo_error(result.error)
            sys.exit(1)
        click.secho(
            f"Candidate {candidate_id} imported as campsite {result.value.campsite_id}",
            fg="green",
        )


@cli.command("list-candidates")
@click.option("--status", type=click.Choice(["pending", "approved", "rejected", "imported"]), default=None)
@click.option("--duplicates/--no-duplicates", default=None, help="Only (non-)duplicates")
@click.option("--limit", type=click.IntRange(1, 100), default=20, show_default=True)
@click.option("--offset", type=click.IntRange(0), default=0)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def list_candidates(status, duplicates, limit, offset, output_json):
    """Show candidates ordered by confidence."""
    with get_app_context():
        from services.candidate_store import CandidateStore

        result = CandidateStore().list_candidates(
            status=status,
            is_duplicate=duplicates,
            limit=limit,
            offset=offset,
        )
        if result.is_err:
            _echo_error(result.error)
            sys.exit(1)

        total, candidates = result.value
        if output_json:
            click.echo(json.dumps(
                {"total": total, "candidates": [c.to_dict() for c in candidates]},
                indent=2,
                default=str,
            ))
            return

        click.echo(f"{total} candidate(s)")
        for c in candidates:
            flag = click.style(" DUP", fg="magenta") if c.is_duplicate else ""
            click.echo(f"  {c.id}  {c.confidence_score:.4f}  {c.status:<9} {c.name}{flag}")


if __name__ == "__main__":
    cli()
