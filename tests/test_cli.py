"""Tests for the command-line interface."""

import json
import sys

import pytest

from hidrazy.cli import main


def run_cli(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["hidrazy", *args])
    main()


class TestCli:
    """End-to-end CLI runs against a temporary ledger."""

    def test_record_then_usage(self, monkeypatch, capsys, tmp_path):
        db = str(tmp_path / "ledger.db")

        run_cli(monkeypatch, "--db", db, "record", "user_1", "tts-1",
                "--request-type", "speech-synthesis", "--input-tokens", "120")
        assert "Recorded" in capsys.readouterr().out

        run_cli(monkeypatch, "--db", db, "usage", "user_1", "--json")
        body = json.loads(capsys.readouterr().out)
        assert body["monthlyStats"]["ttsUnits"] == 120
        assert body["dailyStats"]["conversationTurns"] == 1

    def test_check_denied_exit_code(self, monkeypatch, capsys, tmp_path):
        db = str(tmp_path / "ledger.db")
        monkeypatch.setenv("HIDRAZY_LIMITS_JSON", json.dumps({"monthly_tts_units": 100}))

        run_cli(monkeypatch, "--db", db, "record", "user_1", "tts-1",
                "-t", "speech-synthesis", "-i", "100")
        capsys.readouterr()

        with pytest.raises(SystemExit) as exc_info:
            run_cli(monkeypatch, "--db", db, "check", "user_1", "speech-synthesis")
        assert exc_info.value.code == 2
        assert json.loads(capsys.readouterr().out)["allowed"] is False

    def test_token_requires_secret(self, monkeypatch):
        monkeypatch.delenv("HIDRAZY_JWT_SECRET", raising=False)
        with pytest.raises(SystemExit):
            run_cli(monkeypatch, "token", "user_1")

    def test_no_command(self, monkeypatch):
        with pytest.raises(SystemExit):
            run_cli(monkeypatch)
