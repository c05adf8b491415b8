"""
Tests for the pricepilot command line.
"""
import json

import pytest

from pricepilot import cli
from tests.conftest import make_hasher, make_merkle_proof, make_oracle, oracle_transport, prices_payload


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda level: None)


class _FakeHasherFactory:
    @staticmethod
    def from_config(*args, **kwargs):
        return make_hasher()


class TestTierCommand:
    def test_prints_tier_and_premium(self, capsys):
        assert cli.main(["tier", "199.99"]) == 0
        out = capsys.readouterr().out
        assert "Tier:    2" in out
        assert "Premium: $3.00" in out
        assert "199990000" in out

    def test_out_of_range(self, capsys):
        assert cli.main(["tier", "0.50"]) == 2
        assert "PP_TIER_OUT_OF_RANGE" in capsys.readouterr().err

    def test_no_command(self, capsys):
        assert cli.main([]) == 1

    def test_bad_amount(self):
        with pytest.raises(SystemExit):
            cli.main(["tier", "cheap"])


class TestCommitCommand:
    def test_prints_public_view_only(self, capsys, monkeypatch):
        """The salt and the rest of the opening stay off stdout."""
        monkeypatch.setattr(cli, "PoseidonHasher", _FakeHasherFactory)
        code = cli.main([
            "commit", "--order", "A1", "--price", "199.99",
            "--date", "2025-01-15", "--product", "X1",
        ])
        assert code == 0
        view = json.loads(capsys.readouterr().out)
        assert set(view) == {"commitment", "tier", "premium"}
        assert view["tier"] == 2
        assert view["premium"] == "3000000"


class TestCheckCommand:
    def test_reports_eligibility(self, capsys, monkeypatch):
        hasher = make_hasher()
        proof = make_merkle_proof(hasher, current_price=100_000_000)
        transport = oracle_transport(
            prices_payload(proof.root, [("MACBOOK", 100_000_000, 200_000_000)]),
            {"MACBOOK": proof},
        )
        monkeypatch.setattr(cli, "PoseidonHasher", _FakeHasherFactory)
        monkeypatch.setattr(cli, "OracleClient", lambda config, hasher=None: make_oracle(transport, hasher))
        assert cli.main(["check", "--product", "macbook", "--price", "200"]) == 0
        out = capsys.readouterr().out
        assert "Eligible: yes" in out
        assert "(50.00%)" in out
        assert "$100.00" in out
