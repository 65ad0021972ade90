"""Tests for configuration and the command-line interface.

Tests cover:
- Settings from environment variables and .env files
- Command-line overrides
- Exit codes of the subcommands
"""

import json
import os
from pathlib import Path

import pytest

from vortex_backend_manifest.cli import apply_overrides, build_parser, main
from vortex_backend_manifest.config import Settings, load_env
from vortex_backend_manifest.constants import DEFAULT_SLACK_CHANNEL, VERSION_WINDOW
from vortex_backend_manifest.errors import PreconditionError
from vortex_backend_manifest.registry import SourceRegistry
from vortex_backend_manifest.sources.base import GameInfo

ENV_VARS = [
    "NEXUS_APIKEY", "NEXUS_API_KEY", "SLACK_BOT_TOKEN", "SLACK_CHANNEL",
    "PERSONAL_ACCESS_TOKEN", "GITHUB_PROJECT_ID", "MANIFEST_DIR", "ARCHIVE_DIR",
    "GAMES_DIR", "DRYRUN", "UPDATE_CHECK_SINCE", "VERSION_WINDOW_LOW",
    "VERSION_WINDOW_HIGH", "MAX_WORKERS", "EXT_MOTM_LINK", "EXT_MOTM_DATE",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Empty configuration, working directory without a .env file."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


def run_cli(*argv):
    with pytest.raises(SystemExit) as exc_info:
        main(list(argv))
    return exc_info.value.code


# ============================================================================
# TestSettings
# ============================================================================

class TestSettings:
    """Tests for Settings.from_env()."""

    def test_defaults(self, tmp_path):
        """Test the defaults for an empty environment."""
        settings = Settings.from_env(environ={}, root=tmp_path)

        assert settings.nexus_api_key == ""
        assert settings.slack_channel == DEFAULT_SLACK_CHANNEL
        assert settings.manifest_dir == tmp_path / "out"
        assert settings.archive_dir == tmp_path / "archive"
        assert settings.games_dir == tmp_path / "cloned" / "vortex-games"
        assert settings.version_window == VERSION_WINDOW
        assert settings.dry_run is False
        assert settings.update_check_since is None

    def test_values_from_environment(self, tmp_path):
        """Test that every variable is picked up."""
        settings = Settings.from_env(environ={
            "NEXUS_API_KEY": "key",
            "DRYRUN": "true",
            "UPDATE_CHECK_SINCE": "1700000000000",
            "MANIFEST_DIR": "/data/out",
            "VERSION_WINDOW_LOW": "1.6.0",
            "MAX_WORKERS": "2",
        }, root=tmp_path)

        assert settings.require_nexus_key() == "key"
        assert settings.dry_run is True
        assert settings.update_check_since == 1_700_000_000_000
        assert settings.manifest_dir == Path("/data/out")
        assert settings.version_window == ("1.6.0", VERSION_WINDOW[1])
        assert settings.max_workers == 2

    def test_invalid_number(self, tmp_path):
        """Test that malformed numbers are precondition failures."""
        with pytest.raises(PreconditionError, match="UPDATE_CHECK_SINCE"):
            Settings.from_env(environ={"UPDATE_CHECK_SINCE": "yesterday"}, root=tmp_path)

    def test_required_secrets(self):
        """Test the precondition checks for missing credentials."""
        settings = Settings()
        with pytest.raises(PreconditionError, match="Nexus API key"):
            settings.require_nexus_key()
        with pytest.raises(PreconditionError, match="GitHub token"):
            settings.require_github_token()

    def test_load_env_file(self, clean_env, tmp_path):
        """Test that .env values fill in without overriding the process."""
        clean_env.setenv("VORTEX_TEST_FROM_FILE", "placeholder")
        clean_env.delenv("VORTEX_TEST_FROM_FILE")
        clean_env.setenv("VORTEX_TEST_EXISTING", "from-process")
        (tmp_path / ".env").write_text(
            "VORTEX_TEST_FROM_FILE=from-file\nVORTEX_TEST_EXISTING=from-file\n", encoding="utf-8",
        )

        found = load_env()

        assert Path(found).resolve() == (tmp_path / ".env").resolve()
        assert os.environ["VORTEX_TEST_FROM_FILE"] == "from-file"
        assert os.environ["VORTEX_TEST_EXISTING"] == "from-process"


# ============================================================================
# TestCli
# ============================================================================

class TestCli:
    """Tests for the vortex-manifest command."""

    @pytest.fixture
    def dirs(self, clean_env, tmp_path, make_entry):
        out = tmp_path / "out"
        out.mkdir()
        (out / "extensions-manifest.json").write_text(
            json.dumps({"last_updated": 1, "extensions": [make_entry(1, 10), {"modId": 2, "fileId": 20}]}),
            encoding="utf-8",
        )
        return ["--manifest-dir", str(out), "--archive-dir", str(tmp_path / "archive")]

    def test_command_is_required(self):
        """Test that argparse rejects a missing subcommand."""
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args([])
        assert exc_info.value.code == 2

    def test_overrides(self, tmp_path):
        """Test that flags win over environment settings."""
        args = build_parser().parse_args(["--dry-run", "--manifest-dir", "m", "refresh", "--games-dir", "g"])
        settings = apply_overrides(args, Settings())
        assert settings.dry_run is True
        assert settings.manifest_dir == Path("m")
        assert settings.games_dir == Path("g")

    def test_validate_success(self, dirs, capsys):
        """Test validating a good manifest."""
        assert run_cli(*dirs, "validate") == 0
        assert "Validation successful!" in capsys.readouterr().err

    def test_validate_reports_bad_entries(self, dirs, tmp_path, capsys):
        """Test that malformed entries fail validation."""
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"last_updated": 1, "extensions": [{"modId": 3, "fileId": 30, "name": "x"}]}))

        assert run_cli(*dirs, "validate", "--path", str(bad)) == 1
        assert "Error: 3:" in capsys.readouterr().err

    def test_validate_reports_schema_errors(self, dirs, tmp_path, capsys):
        """Test that schema violations fail validation."""
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"extensions": []}))

        assert run_cli(*dirs, "validate", "--path", str(bad)) == 1
        assert "Manifest validation failed" in capsys.readouterr().err

    def test_missing_api_key_exits(self, dirs, capsys):
        """Test that flows needing the marketplace fail without a key."""
        assert run_cli(*dirs, "refresh") == 1
        assert "No Nexus API key" in capsys.readouterr().err

    def test_add_and_reject(self, dirs, clean_env, fake_source, make_info, make_file, tmp_path):
        """Test exit codes for adding the same extension twice."""
        fake_source.add(make_info(598, category_id=4), [make_file(777)])
        fake_source.games["back4blood"] = GameInfo(id=4233, name="Back 4 Blood", domain_name="back4blood")
        clean_env.setenv("NEXUS_APIKEY", "key")
        clean_env.setattr(SourceRegistry, "create_source", lambda name, **kwargs: fake_source)

        assert run_cli(*dirs, "add", "--mod-id", "598", "--game-domain", "back4blood") == 0
        assert run_cli(*dirs, "add", "--mod-id", "598") == 1

        saved = json.loads((tmp_path / "out" / "extensions-manifest.json").read_text(encoding="utf-8"))
        assert [entry["modId"] for entry in saved["extensions"]] == [1, 2, 598]

    def test_add_spotlight_dry_run(self, dirs, tmp_path):
        """Test that dry runs succeed without writing."""
        spotlights = tmp_path / "out" / "modspotlights.json"
        spotlights.write_text("[]", encoding="utf-8")

        assert run_cli("--dry-run", *dirs, "add-spotlight", "--link", "https://www.youtube.com/watch?v=abc") == 0
        assert spotlights.read_text(encoding="utf-8") == "[]"

    def test_add_spotlight_invalid_link(self, dirs):
        """Test that bad links exit with an error."""
        assert run_cli(*dirs, "add-spotlight", "--link", "https://example.com/video") == 1

    def test_validate_rejects_non_object_manifest(self, dirs, tmp_path, capsys):
        """Test that a top-level array is a validation failure, not a crash."""
        bad = tmp_path / "array.json"
        bad.write_text(json.dumps([{"modId": 1}]), encoding="utf-8")

        assert run_cli(*dirs, "validate", "--path", str(bad)) == 1
        assert "Manifest validation failed" in capsys.readouterr().err

    def test_add_motm_from_environment(self, dirs, clean_env, tmp_path):
        """Test that link and date fall back to the environment."""
        motm = tmp_path / "out" / "modsofthemonth.json"
        motm.write_text("[]", encoding="utf-8")
        clean_env.setenv("EXT_MOTM_LINK", "https://www.youtube.com/watch?v=motm")
        clean_env.setenv("EXT_MOTM_DATE", "1700000000000")

        assert run_cli(*dirs, "add-motm") == 0

        saved = json.loads(motm.read_text(encoding="utf-8"))
        assert [(entry["link"], entry["date"]) for entry in saved] == [
            ("https://www.youtube.com/watch?v=motm", 1_700_000_000_000),
        ]

    def test_add_motm_invalid_date(self, dirs, tmp_path, capsys):
        """Test that a non-numeric date exits with an error."""
        (tmp_path / "out" / "modsofthemonth.json").write_text("[]", encoding="utf-8")

        assert run_cli(*dirs, "add-motm", "--link", "https://example.com/v", "--date", "March") == 1
        assert "not a unix timestamp" in capsys.readouterr().err

    def test_add_motm_duplicate(self, dirs, tmp_path):
        """Test that a listed link exits with an error."""
        (tmp_path / "out" / "modsofthemonth.json").write_text(
            json.dumps([{"date": 1, "id": "x", "link": "https://example.com/v"}]), encoding="utf-8",
        )
        assert run_cli(*dirs, "add-motm", "--link", "https://example.com/v") == 1

    def test_sanitize(self, dirs, tmp_path, capsys):
        """Test removing extensions by id."""
        assert run_cli(*dirs, "sanitize", "--mod-id", "2", "7") == 0

        saved = json.loads((tmp_path / "out" / "extensions-manifest.json").read_text(encoding="utf-8"))
        assert [entry["modId"] for entry in saved["extensions"]] == [1]
        assert "Not in the manifest: 7" in capsys.readouterr().err
        assert any("_before-sanitize_" in path.name for path in (tmp_path / "archive").iterdir())

    def test_sanitize_requires_ids(self, dirs):
        """Test that argparse rejects a missing id list."""
        assert run_cli(*dirs, "sanitize") == 2
