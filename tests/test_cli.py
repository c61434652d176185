"""Tests for the command line entry point."""

import locale

import pytest
from click.testing import CliRunner

from vaultsync import main as main_module
from vaultsync.api_client import ApiResponse
from vaultsync.errors import RemoteFailure
from vaultsync.main import main
from vaultsync.service import VaultService

from conftest import FakeApi, FakeCrypto, account, make_query

OPTS = ["--user", "alice", "--token", "tok", "--core-password", "core"]


@pytest.fixture
def fake_api() -> FakeApi:
    api = FakeApi()
    api.queries.append(make_query("PULL_ALL", 10, [account(1, "银行"), account(2, "github.com")]))
    return api


@pytest.fixture
def cli(monkeypatch, tmp_path, store, fake_api):
    """CliRunner whose commands talk to the fakes."""
    monkeypatch.setenv("VAULTSYNC_DATA_DIR", str(tmp_path))
    monkeypatch.setattr(
        main_module, "VaultService",
        lambda session: VaultService(session, store=store, api=fake_api, crypto=FakeCrypto()),
    )
    return CliRunner()


def test__list__prints_sorted_records(cli) -> None:
    result = cli.invoke(main, OPTS + ["list"])

    assert result.exit_code == 0, result.output
    lines = [line for line in result.output.splitlines() if line.strip().startswith(("1", "2"))]
    assert "github.com" in lines[0]
    assert "pw2" in lines[0]


def test__search__matches_pinyin_initials(cli) -> None:
    result = cli.invoke(main, OPTS + ["search", "yh"])

    assert result.exit_code == 0, result.output
    assert "银行" in result.output
    assert "github.com" not in result.output


def test__add__reports_and_resyncs(cli, fake_api) -> None:
    result = cli.invoke(main, OPTS + ["add", "--website", "new.com", "--account", "bob", "--password", "pw"])

    assert result.exit_code == 0, result.output
    assert "Entry added" in result.output
    assert fake_api.calls[0] == ("insert_account", ("new.com", "bob", "enc:pw"))
    assert fake_api.call_names()[-1] == "fetch_accounts"


def test__delete__rejected_by_server_exits_nonzero(cli, fake_api) -> None:
    fake_api.mutation_response = ApiResponse(code=2001, msg="record not found")

    result = cli.invoke(main, OPTS + ["delete", "5", "--yes"])

    assert result.exit_code == 1
    assert "record not found" in result.output
    assert fake_api.call_names() == ["delete_account", "fetch_accounts"]


def test__list__network_failure_prints_status(cli, fake_api) -> None:
    fake_api.queries[:] = [RemoteFailure("refused")]

    result = cli.invoke(main, OPTS + ["list", "--refresh"])

    assert result.exit_code == 1
    assert "Network error" in result.output


def test__list__missing_token_is_usage_error(cli) -> None:
    result = cli.invoke(main, ["--user", "alice", "list"], env={"VAULTSYNC_TOKEN": ""})

    assert result.exit_code == 2


def test__clear_cache__drops_cached_snapshot(cli, tmp_path) -> None:
    assert cli.invoke(main, OPTS + ["list"]).exit_code == 0

    result = cli.invoke(main, ["--user", "alice", "clear-cache"])

    assert result.exit_code == 0
    assert "Cache cleared for alice" in result.output


def test__main__uses_user_collation_and_survives_missing_locale(cli, monkeypatch) -> None:
    calls = []

    def fake_setlocale(category, value):
        calls.append((category, value))
        raise locale.Error("unsupported locale setting")

    monkeypatch.setattr(main_module.locale, "setlocale", fake_setlocale)

    result = cli.invoke(main, OPTS + ["list"])

    assert result.exit_code == 0, result.output
    assert calls == [(locale.LC_COLLATE, "")]
