"""Tests for the wound-intake command line interface.

Each test runs the commands against a DuckDB file in a temporary directory
so that sessions resume across invocations.
"""

import pytest
from typer.testing import CliRunner

from wound_intake import __version__
from wound_intake.cli import app, parse_assignments, parse_consent
from wound_intake.infrastructure.settings import get_settings

from tests.conftest import CASE_ID, CLINICIAN_ID, OTHER_CLINICIAN_ID

runner = CliRunner()

IDENTITY = ["--case-id", CASE_ID, "--clinician-id", CLINICIAN_ID]


@pytest.fixture(autouse=True)
def cli_env(monkeypatch, tmp_path):
    """Durable storage, no external services and a PIN pepper."""
    for name in ("GEMINI_API_KEY", "FIELD_ENCRYPTION_KEY", "FIELD_ENCRYPTION_LEGACY_KEYS", "WI_CASE_ID", "WI_CLINICIAN_ID"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("WI_STORAGE_BACKEND", "duckdb")
    monkeypatch.setenv("WI_DB_PATH", str(tmp_path / "cli.duckdb"))
    monkeypatch.setenv("PIN_HASH_PEPPER", "test-pepper")
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()


class TestParsing:
    """Test suite for option parsing helpers."""

    def test_parse_assignments(self):
        assert parse_assignments(["firstName=Ada", "mrn=", "notes=a=b"], "--patient") == {
            "firstName": "Ada",
            "mrn": "",
            "notes": "a=b",
        }
        assert parse_assignments(None, "--patient") == {}

    def test_parse_consent_flags(self):
        assert parse_consent(["dataStorage=Yes", "photography=no", "notes=verbal"]) == {
            "dataStorage": True,
            "photography": False,
            "notes": "verbal",
        }


class TestCli:
    """Test suite for the CLI commands."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_snapshot_creates_case(self):
        result = runner.invoke(app, ["snapshot", *IDENTITY])

        assert result.exit_code == 0
        assert "BIO_INTAKE" in result.stdout
        assert CASE_ID in result.stdout

    def test_biography_flow(self):
        """Confirmation fails until the biography is complete, then advances."""
        incomplete = runner.invoke(app, ["confirm-bio", *IDENTITY])
        assert incomplete.exit_code == 1
        assert "Biography incomplete" in incomplete.stdout

        updated = runner.invoke(app, [
            "update-bio", *IDENTITY,
            "-p", "firstName=Ada", "-p", "age=36",
            "-c", "dataStorage=yes", "-c", "photography=true",
        ])
        assert updated.exit_code == 0
        assert "Biography updated (2 patient, 2 consent fields)" in updated.stdout

        confirmed = runner.invoke(app, ["confirm-bio", *IDENTITY])
        assert confirmed.exit_code == 0
        assert "state: WOUND_IMAGING" in confirmed.stdout

        rolled_back = runner.invoke(app, ["event", "rollback", *IDENTITY])
        assert rolled_back.exit_code == 0
        assert "ROLLBACK applied (state: BIO_INTAKE)" in rolled_back.stdout

    def test_unknown_and_illegal_events(self):
        unknown = runner.invoke(app, ["event", "TELEPORT", *IDENTITY])
        assert unknown.exit_code == 1
        assert "Unknown event" in unknown.stdout

        illegal = runner.invoke(app, ["event", "STORED", *IDENTITY])
        assert illegal.exit_code == 1
        assert "InvalidTransitionError" in illegal.stdout

    def test_bio_confirmed_event_requires_complete_biography(self):
        result = runner.invoke(app, ["event", "BIO_CONFIRMED", *IDENTITY])
        assert result.exit_code == 1
        assert "IncompleteBiographyError" in result.stdout

        snapshot = runner.invoke(app, ["snapshot", *IDENTITY])
        assert "BIO_INTAKE" in snapshot.stdout

    def test_other_clinician_rejected(self):
        assert runner.invoke(app, ["snapshot", *IDENTITY]).exit_code == 0

        result = runner.invoke(app, ["snapshot", "--case-id", CASE_ID, "--clinician-id", OTHER_CLINICIAN_ID])
        assert result.exit_code == 1
        assert "UnauthorizedAccessError" in result.stdout

    def test_invalid_identifier(self):
        result = runner.invoke(app, ["snapshot", "--case-id", "case-42", "--clinician-id", CLINICIAN_ID])
        assert result.exit_code == 1
        assert "Invalid case identifier" in result.stdout

    def test_identity_from_environment(self, cli_env):
        cli_env.setenv("WI_CASE_ID", f"sid-{CASE_ID}")
        cli_env.setenv("WI_CLINICIAN_ID", f"cid-{CLINICIAN_ID}")
        result = runner.invoke(app, ["snapshot"])
        assert result.exit_code == 0
        assert CASE_ID in result.stdout

    def test_assign_pin(self):
        result = runner.invoke(app, ["assign-pin", *IDENTITY, "--length", "8"])
        assert result.exit_code == 0
        assert "PIN issued:" in result.stdout

    def test_assign_pin_without_pepper(self, cli_env):
        cli_env.delenv("PIN_HASH_PEPPER")
        get_settings.cache_clear()
        result = runner.invoke(app, ["assign-pin", *IDENTITY])
        assert result.exit_code == 1
        assert "PIN_HASH_PEPPER" in result.stdout

    def test_malformed_assignment(self):
        result = runner.invoke(app, ["update-bio", *IDENTITY, "-p", "firstName"])
        assert result.exit_code == 2

    def test_generate_key(self):
        result = runner.invoke(app, ["generate-key"])
        assert result.exit_code == 0
        assert len(result.stdout.strip()) == 44
