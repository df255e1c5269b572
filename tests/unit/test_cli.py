"""
Module 09C - CLI Tests

Drives rewards_cli.main.main() end to end against a temporary SQLite
database: build, publish, proof export, offline verification, sweep,
CSV export, raffle odds and config initialisation.
"""
import json

import pytest

from rewards_cli.config import load_config
from rewards_cli.main import (
    EXIT_RUNTIME_ERROR,
    EXIT_SUCCESS,
    EXIT_VERIFICATION_FAILED,
    create_parser,
    main,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ("REWARDS_DATABASE_URL", "REWARDS_LEAF_VERSION", "REWARDS_LEAF_LAYOUT",
                 "REWARDS_LOG_LEVEL", "REWARDS_LOG_FILE", "REWARDS_SOLANA_RPC_URL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "cli.json"
    path.write_text(json.dumps({
        "storage": {"url": f"sqlite:///{tmp_path / 'rewards.db'}"},
        "cli": {"log_level": "WARNING"},
    }))
    return str(path)


@pytest.fixture
def events_path(tmp_path):
    path = tmp_path / "events.json"
    path.write_text(json.dumps([
        {"user_id": "alice", "amount": 1500},
        {"user_id": "bob", "amount": 700},
        {"user_id": "alice", "amount": 500},
    ]))
    return str(path)


def _build(config_path, events_path, capsys) -> dict:
    code = main(["-c", config_path, "build", "2026-W02", "--events", events_path, "--json"])
    assert code == EXIT_SUCCESS
    return json.loads(capsys.readouterr().out)


class TestParser:

    def test_no_command(self, capsys):
        assert main([]) == EXIT_RUNTIME_ERROR

    def test_odds_requires_one_ticket_source(self):
        parser = create_parser()
        with pytest.raises(SystemExit):
            parser.parse_args(["odds", "--total", "10", "--tickets", "1", "--credits", "5"])

    def test_epoch_must_be_positive(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["publish", "0"])


class TestEpochCommands:

    def test_build_and_rebuild(self, config_path, events_path, capsys):
        first = _build(config_path, events_path, capsys)
        assert first["already_exists"] is False
        assert first["epoch"]["leaf_count"] == 2
        assert first["epoch"]["total_amount"] == 2700

        second = _build(config_path, events_path, capsys)
        assert second["already_exists"] is True
        assert second["epoch"]["root_hex"] == first["epoch"]["root_hex"]

    def test_build_bad_week_key(self, config_path, events_path, capsys):
        code = main(["-c", config_path, "build", "2026-W60", "--events", events_path])
        assert code == EXIT_RUNTIME_ERROR

    def test_publish_and_list(self, config_path, events_path, capsys):
        epoch = _build(config_path, events_path, capsys)["epoch"]
        number = str(epoch["epoch_number"])

        assert main(["-c", config_path, "epochs", "--unpublished", "--json"]) == EXIT_SUCCESS
        assert len(json.loads(capsys.readouterr().out)) == 1

        code = main(["-c", config_path, "publish", number, "--root", epoch["root_hex"], "--json"])
        assert code == EXIT_SUCCESS
        assert json.loads(capsys.readouterr().out)["set_on_chain"] is True

        assert main(["-c", config_path, "epochs", "--unpublished", "--json"]) == EXIT_SUCCESS
        assert json.loads(capsys.readouterr().out) == []

    def test_publish_wrong_root(self, config_path, events_path, capsys):
        epoch = _build(config_path, events_path, capsys)["epoch"]
        code = main(["-c", config_path, "publish", str(epoch["epoch_number"]), "--root", "00" * 32])
        assert code == EXIT_RUNTIME_ERROR
        assert "ROOT_MISMATCH" in capsys.readouterr().err


class TestClaimCommands:

    def test_proof_verifies_offline(self, config_path, events_path, tmp_path, capsys):
        number = str(_build(config_path, events_path, capsys)["epoch"]["epoch_number"])
        proof_file = tmp_path / "alice.json"

        assert main(["-c", config_path, "proof", "alice", number, "--out", str(proof_file)]) == EXIT_SUCCESS
        bundle = json.loads(proof_file.read_text())
        assert bundle["amount"] == 2000

        assert main(["-c", config_path, "verify-proof", str(proof_file), "--json"]) == EXIT_SUCCESS
        capsys.readouterr()

        bundle["amount"] = 2001
        proof_file.write_text(json.dumps(bundle))
        code = main(["-c", config_path, "verify-proof", str(proof_file)])
        assert code == EXIT_VERIFICATION_FAILED
        assert "INVALID" in capsys.readouterr().out

    def test_proof_not_eligible(self, config_path, events_path, capsys):
        number = str(_build(config_path, events_path, capsys)["epoch"]["epoch_number"])
        assert main(["-c", config_path, "proof", "mallory", number]) == EXIT_RUNTIME_ERROR

    def test_verify_unreadable(self, config_path, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{}")
        assert main(["-c", config_path, "verify-proof", str(bad)]) == EXIT_RUNTIME_ERROR

    def test_sweep_and_export(self, config_path, events_path, tmp_path, capsys):
        _build(config_path, events_path, capsys)
        assert main(["-c", config_path, "sweep", "--json"]) == EXIT_SUCCESS
        assert json.loads(capsys.readouterr().out) == {"reverted_count": 0}

        out = tmp_path / "claims.csv"
        assert main(["-c", config_path, "export", "--out", str(out)]) == EXIT_SUCCESS
        assert out.read_text().splitlines()[0] == "started_at,week_key,epoch_number,amount,status,tx_sig"


class TestOddsCommand:

    def test_tickets(self, config_path, capsys):
        code = main(["-c", config_path, "odds", "--tickets", "5", "--total", "100", "--pool", "1000", "--json"])
        assert code == EXIT_SUCCESS
        data = json.loads(capsys.readouterr().out)
        assert data["win_probability_formatted"] == "14.3%"
        assert data["prizes"] == [500, 300, 200]

    def test_credits(self, config_path, capsys):
        assert main(["-c", config_path, "odds", "--credits", "2500", "--total", "10"]) == EXIT_SUCCESS
        assert capsys.readouterr().out.startswith("2 of 10 tickets")


class TestConfigCommand:

    def test_init_then_show(self, tmp_path, capsys):
        path = tmp_path / "rewards.json"
        assert main(["config", "--init", "--path", str(path)]) == EXIT_SUCCESS
        template = json.loads(path.read_text())
        assert template["epochs"]["leaf_version"] == 2
        assert "cli" in template

        assert main(["config", "--init", "--path", str(path)]) == EXIT_RUNTIME_ERROR

    def test_show_redacts(self, tmp_path, capsys):
        path = tmp_path / "secret.json"
        path.write_text(json.dumps({"api": {"admin_secret": "hunter2"}}))
        assert main(["-c", str(path), "config", "--show"]) == EXIT_SUCCESS
        shown = json.loads(capsys.readouterr().out)
        assert shown["api"]["admin_secret"] == "***"

    def test_yaml_config(self, tmp_path):
        path = tmp_path / "rewards.yaml"
        path.write_text("epochs:\n  leaf_version: 1\ncli:\n  log_level: DEBUG\n")
        config = load_config(path)
        assert config.runtime.epochs.leaf_version == 1
        assert config.log_level == "DEBUG"

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "rewards.yaml"
        path.write_text("storage:\n  url: sqlite:///file.db\n")
        monkeypatch.setenv("REWARDS_DATABASE_URL", "sqlite:///env.db")
        assert load_config(path).runtime.storage.url == "sqlite:///env.db"
