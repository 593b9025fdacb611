"""Tests for scripts/tokenctl.py against a file-backed SQLite database."""

import importlib.util
import json
from pathlib import Path
from uuid import UUID

import pytest
import yaml

from token_kernel.db.engine import reset_engine

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "tokenctl.py"


def _load_cli():
    spec = importlib.util.spec_from_file_location("tokenctl", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def cli():
    yield _load_cli()
    reset_engine()


@pytest.fixture
def config_path(tmp_path) -> Path:
    path = tmp_path / "token.yaml"
    path.write_text(yaml.safe_dump({
        "config_id": "cli",
        "version": 1,
        "database": {"url": f"sqlite:///{tmp_path / 'ledger.db'}"},
        "token": {
            "name": "Cli Token",
            "symbol": "CLI",
            "decimals": 2,
            "initial_supply": 500,
            "administrator": "0xadmin",
        },
    }))
    return path


@pytest.fixture
def token_id(cli, config_path, capsys) -> str:
    assert cli.main(["--config", str(config_path), "init"]) == 0
    out = capsys.readouterr().out.strip()
    UUID(out)
    return out


def _run(cli, config_path, *args) -> int:
    return cli.main(["--config", str(config_path), *args])


class TestCommands:
    def test_info_json(self, cli, config_path, token_id, capsys):
        assert _run(cli, config_path, "info", token_id, "--json") == 0

        info = json.loads(capsys.readouterr().out)
        assert info["symbol"] == "CLI"
        assert info["total_supply"] == "500"
        assert info["released"] is False
        assert info["migration_state"] == "not_allowed"

    def test_info_table(self, cli, config_path, token_id, capsys):
        assert _run(cli, config_path, "info", token_id) == 0
        assert "Cli Token (CLI)" in capsys.readouterr().out

    def test_release_then_transfer(self, cli, config_path, token_id, capsys):
        assert _run(cli, config_path, "release", token_id, "--caller", "0xadmin") == 0
        assert _run(cli, config_path, "transfer", token_id, "--caller", "0xadmin", "0xbob", "25") == 0
        capsys.readouterr()

        assert _run(cli, config_path, "balance", token_id, "0xbob") == 0
        assert capsys.readouterr().out.strip() == "25"

    def test_mint_and_finish(self, cli, config_path, token_id, capsys):
        assert _run(cli, config_path, "mint", token_id, "--caller", "0xadmin", "0xbob", "5") == 0
        assert "supply 505" in capsys.readouterr().out

        assert _run(cli, config_path, "finish-minting", token_id, "--caller", "0xadmin") == 0
        assert capsys.readouterr().out.strip() == "minting finished"

    def test_events_json(self, cli, config_path, token_id, capsys):
        assert _run(cli, config_path, "events", token_id, "--json") == 0

        events = json.loads(capsys.readouterr().out)
        assert [e["event_type"] for e in events] == ["token_created", "minted"]
        assert events[1]["payload"]["amount"] == "500"


class TestErrors:
    def test_rejected_operation_exit_code(self, cli, config_path, token_id, capsys):
        code = _run(cli, config_path, "transfer", token_id, "--caller", "0xadmin", "0xbob", "1")

        assert code == 2
        assert "TRANSFERS_DISABLED" in capsys.readouterr().err

    def test_unknown_token(self, cli, config_path, token_id, capsys):
        code = _run(cli, config_path, "info", "00000000-0000-0000-0000-000000000000")

        assert code == 2
        assert "TOKEN_NOT_FOUND" in capsys.readouterr().err

    def test_invalid_config(self, cli, tmp_path, capsys):
        bad = tmp_path / "bad.yaml"
        bad.write_text("config_id: broken\n")

        assert cli.main(["--config", str(bad), "init"]) == 1
        assert "Invalid configuration" in capsys.readouterr().err
