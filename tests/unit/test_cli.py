"""Unit tests for the command line interface."""

import json
import os
import time

import click
import pytest
from click.testing import CliRunner

from display_launcher import cli as cli_module
from display_launcher.cli import cli, parse_extras
from display_launcher.models.intent import ACTION_DELETE, ACTION_VIEW


@pytest.fixture
def runner():
    """Provide a click test runner."""
    return CliRunner()


@pytest.fixture
def cli_env(monkeypatch, tmp_path, fake_platform, host_package):
    """Point the CLI at the fake platform and a temporary staging directory."""
    monkeypatch.setattr(cli_module, "create_platform", lambda config: fake_platform)
    monkeypatch.setenv("DISPLAY_LAUNCHER_STAGING_DIR", str(tmp_path / "staging"))
    monkeypatch.setenv("DISPLAY_LAUNCHER_HOST_PACKAGE", host_package)
    config = tmp_path / "config.yaml"
    config.write_text("")
    return ["--config", str(config)]


@pytest.mark.unit
class TestParseExtras:
    """Test KEY=VALUE parsing."""

    def test_pairs(self):
        """Test values may contain equals signs."""
        assert parse_extras(("a=1", "url=http://x?y=z")) == {"a": "1", "url": "http://x?y=z"}

    def test_missing_separator(self):
        """Test malformed pairs are rejected."""
        with pytest.raises(click.BadParameter):
            parse_extras(("novalue",))


@pytest.mark.unit
class TestCommands:
    """Test CLI commands against the fake platform."""

    def test_apps_table(self, runner, cli_env):
        """Test apps prints one line per launchable app."""
        result = runner.invoke(cli, cli_env + ["apps"])

        assert result.exit_code == 0
        assert "org.videolan.vlc" in result.output
        assert "com.android.settings" not in result.output
        assert "com.example.displaylauncher" not in result.output

    def test_apps_json(self, runner, cli_env):
        """Test apps --json uses the API field names."""
        result = runner.invoke(cli, cli_env + ["apps", "--json"])

        assert result.exit_code == 0
        records = json.loads(result.output)
        assert records[0] == {
            "name": "example App",
            "packageName": "com.example.app",
            "isSystemApp": False,
        }

    def test_launch(self, runner, cli_env, fake_platform):
        """Test launch dispatches the entry point."""
        result = runner.invoke(cli, cli_env + ["launch", "org.videolan.vlc"])

        assert result.exit_code == 0
        assert "Launched org.videolan.vlc" in result.output
        assert fake_platform.dispatched[0].component == "org.videolan.vlc/.MainActivity"

    def test_launch_with_intent_options(self, runner, cli_env, fake_platform):
        """Test action, data and extras are forwarded."""
        result = runner.invoke(cli, cli_env + [
            "launch", "org.videolan.vlc",
            "--action", ACTION_VIEW,
            "--data", "http://example.com/a.mp4",
            "--extra", "title=Clip",
        ])

        assert result.exit_code == 0
        intent = fake_platform.dispatched[0]
        assert intent.action == ACTION_VIEW
        assert intent.data == "http://example.com/a.mp4"
        assert intent.extras == {"title": "Clip"}

    def test_launch_failure_exit_code(self, runner, cli_env):
        """Test an unknown package exits non-zero."""
        result = runner.invoke(cli, cli_env + ["launch", "nonexistent.package"])

        assert result.exit_code == 1
        assert "Failed to launch nonexistent.package" in result.output

    def test_uninstall(self, runner, cli_env, fake_platform):
        """Test uninstall sends a DELETE intent."""
        result = runner.invoke(cli, cli_env + ["uninstall", "com.spotify.music"])

        assert result.exit_code == 0
        assert fake_platform.dispatched[0].action == ACTION_DELETE

    def test_install_cleans_up_staged_copy(self, runner, cli_env, fake_platform, tmp_path):
        """Test install waits for cleanup of the staged and device copies."""
        with open(cli_env[1], "w") as f:
            f.write("staging:\n  cleanup_delay_sec: 0\n")
        apk = tmp_path / "game.apk"
        apk.write_bytes(b"PK\x03\x04")

        result = runner.invoke(cli, cli_env + ["install", str(apk)])

        assert result.exit_code == 0
        assert fake_platform.dispatched[0].action == ACTION_VIEW
        assert apk.exists()
        assert list((tmp_path / "staging").glob("*.apk")) == []
        assert len(fake_platform.discarded) == 1

    def test_sweep(self, runner, cli_env, tmp_path):
        """Test sweep reports removed artifacts."""
        staging = tmp_path / "staging"
        staging.mkdir()
        stale = staging / "uploaded_1.apk"
        stale.write_bytes(b"old")
        past = time.time() - 3600
        os.utime(stale, (past, past))

        result = runner.invoke(cli, cli_env + ["sweep"])

        assert result.exit_code == 0
        assert "Removed 1 stale artifact(s)" in result.output
        assert not stale.exists()

    def test_invalid_config(self, runner, tmp_path):
        """Test an invalid config file is a usage error."""
        config = tmp_path / "config.yaml"
        config.write_text("port: 0\n")

        result = runner.invoke(cli, ["--config", str(config), "sweep"])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output
