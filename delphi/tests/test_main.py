"""Unit tests for the replay CLI."""

import argparse
import io
import json
from unittest.mock import patch

import pytest
from web3 import Web3

from delphi.main import build_validator_set, main, parse_submission, replay
from delphi.src.AggregationEngine import AggregationEngine, EngineConfig
from delphi.src.ValidatorSet import CachedValidatorSet, StaticValidatorSet
from delphi.src.ValidatorSetHttp import ValidatorSetHttp

ADMIN = Web3.to_checksum_address("0x" + "aa" * 20)
ALICE = Web3.to_checksum_address("0x" + "bb" * 20)
BOB = Web3.to_checksum_address("0x" + "cc" * 20)
MALLORY = Web3.to_checksum_address("0x" + "dd" * 20)
T0 = 1_700_000_000_000_000


def jsonl(*items: dict) -> str:
    return "\n".join(json.dumps(item) for item in items) + "\n"


class TestParseSubmission:
    """Test JSON-lines parsing."""

    def test_parses_line(self) -> None:
        """A JSON object with reporter and value should be returned as is."""
        line = json.dumps({"reporter": ALICE, "value": 150, "timestamp": T0})

        assert parse_submission(line, 1) == {
            "reporter": ALICE, "value": 150, "timestamp": T0,
        }

    def test_invalid_json(self) -> None:
        """Malformed lines should raise ValueError with the line number."""
        with pytest.raises(ValueError, match="Line 2: invalid JSON"):
            parse_submission("{oops", 2)

    def test_missing_fields(self) -> None:
        """Objects without reporter and value should raise ValueError."""
        with pytest.raises(ValueError, match="Line 1: expected object"):
            parse_submission(json.dumps({"reporter": ALICE}), 1)

    def test_not_an_object(self) -> None:
        """Non-object lines should raise ValueError."""
        with pytest.raises(ValueError, match="expected object"):
            parse_submission("[1, 2]", 1)


class TestReplay:
    """Test replaying submissions into an engine."""

    def make_engine(self) -> AggregationEngine:
        engine = AggregationEngine(EngineConfig(admin=ADMIN))
        engine.set_reporters(ADMIN, [ALICE, BOB])
        return engine

    def test_counts(self) -> None:
        """Accepted and rejected submissions should be counted."""
        engine = self.make_engine()

        accepted, rejected = replay(engine, io.StringIO(jsonl(
            {"reporter": ALICE.lower(), "value": 150, "timestamp": T0},
            {"reporter": ALICE, "value": 150, "timestamp": T0 + 1},
            {"reporter": BOB, "value": 99, "timestamp": T0},
            {"reporter": MALLORY, "value": 150, "timestamp": T0},
            {"reporter": "nope", "value": 150, "timestamp": T0},
            {"reporter": BOB, "value": 170, "timestamp": T0},
        )))

        assert (accepted, rejected) == (2, 4)
        assert [o.reporter for o in engine.window()] == [BOB, ALICE]

    def test_blank_lines_skipped(self) -> None:
        """Blank lines should be neither accepted nor rejected."""
        engine = self.make_engine()
        lines = io.StringIO(
            "\n   \n" + jsonl({"reporter": ALICE, "value": 150, "timestamp": T0})
        )

        assert replay(engine, lines) == (1, 0)

    def test_bad_timestamp_rejected(self) -> None:
        """A non-integer timestamp should be rejected without stopping the replay."""
        engine = self.make_engine()

        accepted, rejected = replay(engine, io.StringIO(jsonl(
            {"reporter": ALICE, "value": 150, "timestamp": 0},
            {"reporter": BOB, "value": 160, "timestamp": "x"},
            {"reporter": BOB, "value": 170, "timestamp": 1_000},
        )))

        assert (accepted, rejected) == (2, 1)
        assert [o.timestamp for o in engine.window()] == [1_000, 0]

    def test_malformed_line_rejected(self) -> None:
        """A line that is not a submission should be rejected, not fatal."""
        engine = self.make_engine()
        lines = io.StringIO(
            "{oops\n"
            + "[1, 2]\n"
            + jsonl({"reporter": ALICE, "value": 150, "timestamp": T0})
        )

        assert replay(engine, lines) == (1, 2)


class TestBuildValidatorSet:
    """Test validator set selection."""

    def make_args(self, **overrides) -> argparse.Namespace:
        args = {
            "validators": "",
            "validators_url": None,
            "validator_contract": None,
            "network": "sapphire-localnet",
            "validator_cache_ttl": 30.0,
        }
        args.update(overrides)
        return argparse.Namespace(**args)

    def test_static(self) -> None:
        """Without a URL or contract the static list should be used."""
        validators = build_validator_set(self.make_args(validators=ALICE.lower()))

        assert isinstance(validators, StaticValidatorSet)
        assert validators.get_active_validators() == [ALICE]

    def test_http(self) -> None:
        """A URL should select a cached HTTP validator set."""
        validators = build_validator_set(
            self.make_args(validators_url="http://node.test/validators")
        )

        assert isinstance(validators, CachedValidatorSet)
        assert isinstance(validators.inner, ValidatorSetHttp)
        assert validators.ttl == 30.0

    def test_contract(self) -> None:
        """A contract address should select a cached contract validator set."""
        with patch("delphi.main.ValidatorSetContract.from_network") as from_network:
            validators = build_validator_set(
                self.make_args(validator_contract=BOB, network="sapphire")
            )

        from_network.assert_called_once_with("sapphire", BOB)
        assert isinstance(validators, CachedValidatorSet)
        assert validators.inner is from_network.return_value


class TestMain:
    """Test the CLI entry point."""

    def test_replay_file(self, tmp_path, capsys) -> None:
        """The final snapshot should be printed as JSON."""
        path = tmp_path / "submissions.jsonl"
        path.write_text(jsonl(
            {"reporter": ALICE, "value": 150, "timestamp": T0},
            {"reporter": ALICE, "value": 160, "timestamp": T0 + 1_000_000},
            {"reporter": BOB, "value": 170, "timestamp": T0 + 2_000_000},
            {"reporter": MALLORY, "value": 180, "timestamp": T0 + 3_000_000},
        ))

        main([
            "--admin", ADMIN.lower(),
            "--reporters", f"{ALICE},{BOB.lower()}",
            "--input", str(path),
        ])

        output = json.loads(capsys.readouterr().out)
        assert output["average"] == 170
        assert [o["reporter"] for o in output["window"]] == [BOB, ALICE]
        assert output["reporters"] == sorted([ALICE, BOB])
        assert len(output["stats"]) == 2

    def test_static_validators(self, tmp_path, capsys) -> None:
        """Static validators should be allowed to submit."""
        path = tmp_path / "submissions.jsonl"
        path.write_text(jsonl({"reporter": MALLORY, "value": 500, "timestamp": T0}))

        main(["--admin", ADMIN, "--validators", MALLORY, "--input", str(path)])

        output = json.loads(capsys.readouterr().out)
        assert output["window"][0]["reporter"] == MALLORY
        assert output["reporters"] == []

    def test_custom_cooldown(self, tmp_path, capsys) -> None:
        """--cooldown should be applied in seconds."""
        path = tmp_path / "submissions.jsonl"
        path.write_text(jsonl(
            {"reporter": ALICE, "value": 150, "timestamp": T0},
            {"reporter": ALICE, "value": 160, "timestamp": T0 + 1_000_000},
        ))

        main([
            "--admin", ADMIN, "--reporters", ALICE,
            "--cooldown", "1", "--input", str(path),
        ])

        output = json.loads(capsys.readouterr().out)
        assert len(output["window"]) == 2

    def test_stdin(self, monkeypatch, capsys) -> None:
        """'-' should read submissions from stdin."""
        monkeypatch.setattr(
            "sys.stdin", io.StringIO(jsonl({"reporter": ALICE, "value": 150}))
        )

        main(["--admin", ADMIN, "--reporters", ALICE, "--input", "-"])

        output = json.loads(capsys.readouterr().out)
        assert output["average"] == 150

    def test_missing_admin(self, monkeypatch) -> None:
        """A missing admin should be a usage error."""
        monkeypatch.delenv("ADMIN", raising=False)

        with pytest.raises(SystemExit) as exc_info:
            main(["--input", "-"])
        assert exc_info.value.code == 2

    def test_invalid_reporter(self) -> None:
        """Invalid reporter addresses should be a usage error."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--admin", ADMIN, "--reporters", "0x1234"])
        assert exc_info.value.code == 2

    def test_conflicting_validator_sources(self) -> None:
        """URL and contract validator sources should be mutually exclusive."""
        with pytest.raises(SystemExit) as exc_info:
            main([
                "--admin", ADMIN,
                "--validators-url", "http://node.test",
                "--validator-contract", BOB,
            ])
        assert exc_info.value.code == 2

    def test_missing_input_file(self, tmp_path) -> None:
        """Runtime failures should exit with status 1."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--admin", ADMIN, "--input", str(tmp_path / "missing.jsonl")])
        assert exc_info.value.code == 1

    def test_bad_lines_do_not_abort(self, tmp_path, capsys) -> None:
        """Malformed lines and bad timestamps should not stop the replay."""
        path = tmp_path / "submissions.jsonl"
        path.write_text(
            "not json\n"
            + jsonl(
                {"reporter": ALICE, "value": 150, "timestamp": "soon"},
                {"reporter": ALICE, "value": 160, "timestamp": T0},
            )
        )

        main(["--admin", ADMIN, "--reporters", ALICE, "--input", str(path)])

        output = json.loads(capsys.readouterr().out)
        assert output["average"] == 160
        assert len(output["window"]) == 1
