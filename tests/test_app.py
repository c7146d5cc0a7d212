"""
Tests for the command line interface.
"""

import pytest

from sicsync import __version__
from sicsync.app import main
from sicsync.config import ConfigRecordApiKeyProvider
from sicsync.database import get_engine
from sicsync.errors import TransportFailure
from sicsync.registry import LookupResult
from sicsync.storage import CustomerStore

from conftest import FakeRegistryClient, SIC_CODES
from test_config import ENV_VARS


@pytest.fixture
def cli_env(monkeypatch, tmp_path):
    """Isolated working directory and environment for CLI runs."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


@pytest.fixture
def cli_db(cli_env, tmp_path):
    path = tmp_path / "cli.db"
    main(["init-db", "--db", str(path)])
    return path


@pytest.fixture
def codes_csv(tmp_path):
    path = tmp_path / "sic_codes.csv"
    lines = ["code,description"] + [f'{code},"{desc}"' for code, desc in SIC_CODES]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def customers_csv(tmp_path):
    path = tmp_path / "customers.csv"
    path.write_text(
        "entity_id,company_no,balance,overdue_balance,unbilled_orders\n"
        "CUST-0001,1234567,0,0,0\n"
        "CUST-0002,07654321,150.50,0,0\n"
        ",09999999,0,0,0\n"
        "CUST-0003,00000003,abc,0,0\n",
        encoding="utf-8",
    )
    return path


def _fake_client(monkeypatch, results):
    client = FakeRegistryClient(results)
    monkeypatch.setattr("sicsync.app.RegistryClient", lambda *args, **kwargs: client)
    return client


class TestSetupCommands:
    """Test init-db, seed-codes, import-customers and set-api-key."""

    def test_version(self, cli_env, capsys):
        main(["--version"])

        assert capsys.readouterr().out.strip() == __version__

    def test_no_command_prints_help(self, cli_env, capsys):
        main([])

        assert "usage: sicsync" in capsys.readouterr().out

    def test_init_db(self, cli_env, tmp_path, capsys):
        path = tmp_path / "nested" / "cli.db"

        main(["init-db", "--db", str(path)])

        assert path.exists()
        assert f"Database ready: {path}" in capsys.readouterr().out

    def test_missing_database_exits(self, cli_env, tmp_path):
        with pytest.raises(SystemExit, match="Database not found"):
            main(["list", "--db", str(tmp_path / "missing.db")])

    def test_seed_codes(self, cli_db, codes_csv, capsys):
        main(["seed-codes", "--input", str(codes_csv), "--db", str(cli_db)])

        assert f"Loaded {len(SIC_CODES)} SIC codes" in capsys.readouterr().out

    def test_seed_codes_missing_file(self, cli_db, tmp_path):
        with pytest.raises(SystemExit, match="Input file not found"):
            main(["seed-codes", "--input", str(tmp_path / "nope.csv"), "--db", str(cli_db)])

    def test_import_customers(self, cli_db, customers_csv, capsys):
        main(["import-customers", "--input", str(customers_csv), "--db", str(cli_db)])

        out = capsys.readouterr().out
        assert "Done. imported=2 skipped=2" in out
        candidates = CustomerStore(cli_db).query()
        assert [c.registry_id for c in candidates] == ["1234567", "07654321"]

    def test_set_api_key(self, cli_db, capsys):
        main(["set-api-key", "--key", "stored-key", "--db", str(cli_db)])

        assert "API key stored in configuration record" in capsys.readouterr().out
        assert ConfigRecordApiKeyProvider(get_engine(cli_db)).get_api_key() == "stored-key"


class TestListCommand:
    """Test the list command."""

    def test_empty(self, cli_db, capsys):
        main(["list", "--db", str(cli_db)])

        assert "No candidates." in capsys.readouterr().out

    def test_lists_candidates(self, cli_db, customers_csv, capsys):
        main(["import-customers", "--input", str(customers_csv), "--db", str(cli_db)])
        capsys.readouterr()

        main(["list", "--db", str(cli_db), "--limit", "1"])

        out = capsys.readouterr().out
        assert "Found 1 candidates:" in out
        assert "Company No:" in out

    def test_invalid_batch_limit_env(self, cli_db, cli_env):
        cli_env.setenv("SICSYNC_BATCH_LIMIT", "0")

        with pytest.raises(SystemExit, match="SICSYNC_BATCH_LIMIT must be at least 1"):
            main(["run", "--db", str(cli_db)])

    def test_invalid_limit(self, cli_db):
        with pytest.raises(SystemExit):
            main(["list", "--db", str(cli_db), "--limit", "0"])


class TestRunCommand:
    """Test the run command with a fake registry client."""

    @pytest.fixture
    def loaded_db(self, cli_db, codes_csv, customers_csv, capsys):
        main(["seed-codes", "--input", str(codes_csv), "--db", str(cli_db)])
        main(["import-customers", "--input", str(customers_csv), "--db", str(cli_db)])
        capsys.readouterr()
        return cli_db

    def test_run_prints_totals(self, loaded_db, cli_env, capsys):
        client = _fake_client(cli_env, {
            "01234567": LookupResult(status_code=200, domain_codes=["0620", "4791"], company_status="dissolved"),
            "07654321": LookupResult(status_code=200, domain_codes=["9999"], company_status="dissolved"),
        })

        main(["run", "--db", str(loaded_db), "--api-key", "ch-key"])

        out = capsys.readouterr().out
        assert "Done. processed=2 updated=2 untouched=0 rejected=1 deactivated=1 errors=0" in out
        assert sorted(client.calls) == ["01234567", "07654321"]

    def test_run_counts_transport_errors(self, loaded_db, cli_env, capsys):
        _fake_client(cli_env, {
            "01234567": TransportFailure("Registry unreachable"),
        })

        main(["run", "--db", str(loaded_db), "--api-key", "ch-key", "--workers", "2"])

        out = capsys.readouterr().out
        assert "processed=2 updated=0 untouched=1 rejected=0 deactivated=0 errors=1" in out

    def test_run_without_database(self, cli_env, tmp_path):
        with pytest.raises(SystemExit, match="Database not found"):
            main(["run", "--db", str(tmp_path / "missing.db")])


class TestLookupCommand:
    """Test the single-company lookup command."""

    def test_lookup_prints_profile(self, cli_env, capsys):
        client = _fake_client(cli_env, {
            "01234567": LookupResult(status_code=200, domain_codes=["0620"], company_status="active"),
        })

        main(["lookup", "--company-no", "1234567", "--api-key", "ch-key"])

        out = capsys.readouterr().out
        assert client.calls == ["01234567"]
        assert "Company: 01234567" in out
        assert "SIC codes: 620" in out
        assert "Status: active" in out

    def test_lookup_not_found(self, cli_env, capsys):
        _fake_client(cli_env, {})

        main(["lookup", "--company-no", "09999999", "--api-key", "ch-key"])

        out = capsys.readouterr().out
        assert "HTTP status: 404" in out
        assert "SIC codes: -" in out

    def test_lookup_failure_exits(self, cli_env):
        _fake_client(cli_env, {"01234567": TransportFailure("Registry unreachable")})

        with pytest.raises(SystemExit, match="Lookup failed"):
            main(["lookup", "--company-no", "01234567", "--api-key", "ch-key"])
