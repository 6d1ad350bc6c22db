"""
Tests for the candidate CLI.

Commands run against the test app: get_app_context is replaced with a no-op
because the app fixture already holds an app context.
"""

import contextlib
import json

import pytest
from click.testing import CliRunner

import cli as cli_module
from models.import_candidate import ImportCandidate


@pytest.fixture
def runner(app, monkeypatch):
    monkeypatch.setattr(cli_module, "get_app_context", contextlib.nullcontext)
    return CliRunner()


@pytest.fixture
def places_file(tmp_path):
    path = tmp_path / "places.json"
    path.write_text(json.dumps([
        {"place_id": "f-1", "name": "Forest Camp", "latitude": 18.9, "longitude": 98.9,
         "phone": "+66 53 111 000", "rating": 4.1, "rating_count": 8},
        {"place_id": "f-2", "name": "Valley Camp", "latitude": 18.95, "longitude": 98.85},
        {"place_id": "f-3", "name": "", "latitude": 18.95, "longitude": 98.85},
    ]))
    return path


class TestSyncCommand:

    def test_sync_from_file(self, runner, places_file, session):
        result = runner.invoke(cli_module.cli, ["sync", "--file", str(places_file), "--batch-size", "2"])

        assert result.exit_code == 0, result.output
        assert "SYNC SUMMARY" in result.output
        assert "completed" in result.output
        assert session.query(ImportCandidate).count() == 2

    def test_sync_disabled(self, runner, places_file, monkeypatch):
        monkeypatch.setenv("CANDIDATE_SYNC_ENABLED", "false")

        result = runner.invoke(cli_module.cli, ["sync", "--file", str(places_file)])

        assert result.exit_code == 2
        assert "disabled" in result.output

    def test_sync_file_must_be_list(self, runner, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"place_id": "x"}))

        result = runner.invoke(cli_module.cli, ["sync", "--file", str(path)])

        assert result.exit_code == 1

    def test_sync_without_api_key(self, runner):
        result = runner.invoke(cli_module.cli, ["sync"])

        assert result.exit_code == 1
        assert "PLACES_API_KEY" in result.output


class TestReviewCommands:

    def test_list_candidates_json(self, runner, make_candidate):
        candidate = make_candidate(confidence_score=0.7)

        result = runner.invoke(cli_module.cli, ["list-candidates", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["total"] == 1
        assert data["candidates"][0]["id"] == candidate.id

    def test_list_candidates_table(self, runner, make_candidate):
        make_candidate(name="Moonlight Camp")

        result = runner.invoke(cli_module.cli, ["list-candidates", "--status", "pending"])

        assert "1 candidate(s)" in result.output
        assert "Moonlight Camp" in result.output

    def test_rescore(self, runner, make_candidate):
        make_candidate()

        result = runner.invoke(cli_module.cli, ["rescore"])

        assert result.exit_code == 0, result.output
        assert "Rescored:   1" in result.output

    def test_retry_import(self, runner, creator, make_candidate):
        candidate = make_candidate(status="approved")

        result = runner.invoke(cli_module.cli, ["retry-import", candidate.id, "--actor", "ops"])

        assert result.exit_code == 0, result.output
        assert "campsite-1" in result.output

    def test_retry_import_pending_fails(self, runner, creator, make_candidate):
        candidate = make_candidate()

        result = runner.invoke(cli_module.cli, ["retry-import", candidate.id])

        assert result.exit_code == 1
        assert "CONFLICT" in result.output

    def test_cancel_unknown_run(self, runner):
        result = runner.invoke(cli_module.cli, ["cancel-sync", "missing"])

        assert result.exit_code == 1
        assert "NOT_FOUND" in result.output
