"""Tests for the raindrop-sync CLI commands."""

import json
import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import typer
from conftest import make_bookmark
from pytest_mock import MockerFixture
from typer.testing import CliRunner

from raindrop_sync.auth import TokenStore
from raindrop_sync.cli.commands.sync import find_target
from raindrop_sync.cli.main import app
from raindrop_sync.models import TokenSet
from raindrop_sync.storage import DuckDBBookmarkStore
from raindrop_sync.sync import AccountSyncResult, SyncSummary

runner = CliRunner()

DEFAULT_TOKENS = Path("data") / "default" / "tokens.json"
DEFAULT_DATABASE = Path("data") / "default" / "bookmarks.duckdb"


@pytest.fixture
def process_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RAINDROP_CLIENT_ID", "cli-client")
    monkeypatch.setenv("RAINDROP_CLIENT_SECRET", "cli-secret")


@pytest.fixture
def mock_orchestrator(mocker: MockerFixture) -> MagicMock:
    """Replace the orchestrator used by ``sync run``.

    Args:
        mocker: pytest-mock fixture

    Returns:
        MagicMock: The patched SyncOrchestrator class
    """
    mocker.patch("raindrop_sync.cli.commands.sync.setup_logging")
    orchestrator_cls = mocker.patch("raindrop_sync.cli.commands.sync.SyncOrchestrator")
    orchestrator_cls.return_value.run_once = mocker.AsyncMock(
        return_value=SyncSummary(accounts=[AccountSyncResult("default", fetched=2, saved=2)])
    )
    return orchestrator_cls


class TestSyncRun:
    """Test cases for ``sync run``."""

    @pytest.mark.unit
    def test_success_exits_zero(self, mock_orchestrator: MagicMock) -> None:
        result = runner.invoke(app, ["sync", "run"])

        assert result.exit_code == 0
        mock_orchestrator.return_value.run_once.assert_awaited_once_with(full=False)

    @pytest.mark.unit
    def test_full_flag(self, mock_orchestrator: MagicMock) -> None:
        result = runner.invoke(app, ["sync", "run", "--full"])

        assert result.exit_code == 0
        mock_orchestrator.return_value.run_once.assert_awaited_once_with(full=True)

    @pytest.mark.unit
    def test_all_accounts_failed_exits_one(
        self, mock_orchestrator: MagicMock, mocker: MockerFixture
    ) -> None:
        mock_orchestrator.return_value.run_once = mocker.AsyncMock(
            return_value=SyncSummary(
                accounts=[AccountSyncResult("default", error="No authentication tokens")]
            )
        )

        result = runner.invoke(app, ["sync", "run"])

        assert result.exit_code == 1

    @pytest.mark.unit
    def test_partial_failure_exits_zero(
        self, mock_orchestrator: MagicMock, mocker: MockerFixture
    ) -> None:
        mock_orchestrator.return_value.run_once = mocker.AsyncMock(
            return_value=SyncSummary(
                accounts=[
                    AccountSyncResult("a", error="Token refresh failed"),
                    AccountSyncResult("b", fetched=1, saved=1),
                ]
            )
        )

        result = runner.invoke(app, ["sync", "run"])

        assert result.exit_code == 0

    @pytest.mark.unit
    def test_accounts_file_option_overrides_settings(
        self, mock_orchestrator: MagicMock, tmp_path: Path
    ) -> None:
        accounts_file = tmp_path / "accounts.yaml"

        result = runner.invoke(app, ["sync", "run", "--accounts-file", str(accounts_file)])

        assert result.exit_code == 0
        settings = mock_orchestrator.call_args.args[0]
        assert settings.sync.accounts_file == accounts_file

    @pytest.mark.unit
    def test_verbose_enables_debug_logging(
        self, mocker: MockerFixture, restore_root_logger: logging.Logger
    ) -> None:
        levels: list[int] = []

        def record_level(full: bool) -> SyncSummary:
            levels.append(logging.getLogger().getEffectiveLevel())
            return SyncSummary(accounts=[AccountSyncResult("default")])

        orchestrator_cls = mocker.patch("raindrop_sync.cli.commands.sync.SyncOrchestrator")
        orchestrator_cls.return_value.run_once = mocker.AsyncMock(side_effect=record_level)

        result = runner.invoke(app, ["sync", "run", "-v"])

        assert result.exit_code == 0
        assert levels == [logging.DEBUG]

    @pytest.mark.unit
    def test_configuration_error_exits_one(
        self, mock_orchestrator: MagicMock, mocker: MockerFixture
    ) -> None:
        mocker.patch(
            "raindrop_sync.cli.commands.sync.get_settings",
            side_effect=ValueError("Configuration error: bad value"),
        )

        result = runner.invoke(app, ["sync", "run"])

        assert result.exit_code == 1
        mock_orchestrator.assert_not_called()


class TestAuthCommands:
    """Test cases for the ``auth`` command group."""

    @pytest.mark.unit
    def test_url_prints_authorize_url(self, process_credentials: None) -> None:
        result = runner.invoke(app, ["auth", "url", "--state", "xyz"])

        assert result.exit_code == 0
        assert "https://raindrop.io/oauth/authorize?" in result.stdout
        assert "client_id=cli-client" in result.stdout
        assert "state=xyz" in result.stdout

    @pytest.mark.unit
    def test_url_without_client_id_fails(self) -> None:
        result = runner.invoke(app, ["auth", "url"])

        assert result.exit_code == 1

    @pytest.mark.unit
    def test_exchange_stores_tokens(
        self, process_credentials: None, mocker: MockerFixture
    ) -> None:
        manager_cls = mocker.patch("raindrop_sync.cli.commands.auth.TokenManager")
        manager_cls.return_value.exchange_code = mocker.AsyncMock(
            return_value=TokenSet(access_token="a", refresh_token="r", expires_at=123)
        )

        result = runner.invoke(app, ["auth", "exchange", "the-code"])

        assert result.exit_code == 0
        assert manager_cls.return_value.exchange_code.await_args.args[1] == "the-code"
        assert json.loads(DEFAULT_TOKENS.read_text()) == {
            "accessToken": "a",
            "refreshToken": "r",
            "expiresAt": 123,
        }

    @pytest.mark.unit
    def test_exchange_without_secret_fails(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RAINDROP_CLIENT_ID", "cli-client")

        result = runner.invoke(app, ["auth", "exchange", "the-code"])

        assert result.exit_code == 1
        assert not DEFAULT_TOKENS.exists()

    @pytest.mark.unit
    def test_status_without_tokens_fails(self) -> None:
        result = runner.invoke(app, ["auth", "status"])

        assert result.exit_code == 1

    @pytest.mark.unit
    def test_status_with_tokens(self) -> None:
        TokenStore(DEFAULT_TOKENS).save(
            TokenSet(access_token="a", refresh_token="r", expires_at=4102444800000)
        )

        result = runner.invoke(app, ["auth", "status"])

        assert result.exit_code == 0

    @pytest.mark.unit
    def test_logout_removes_tokens(self) -> None:
        TokenStore(DEFAULT_TOKENS).save(
            TokenSet(access_token="a", refresh_token="r", expires_at=1)
        )

        result = runner.invoke(app, ["auth", "logout"])

        assert result.exit_code == 0
        assert not DEFAULT_TOKENS.exists()


class TestBookmarkCommands:
    """Test cases for the ``bookmarks`` command group."""

    @pytest.fixture
    def populated(self) -> None:
        store = DuckDBBookmarkStore(DEFAULT_DATABASE)
        store.initialize()
        store.save_batch(
            [
                make_bookmark(1, title="First", last_update="2023-01-01T00:00:00Z"),
                make_bookmark(2, title="", last_update="2023-06-01T00:00:00Z"),
            ]
        )

    @pytest.mark.unit
    def test_count(self, populated: None) -> None:
        result = runner.invoke(app, ["bookmarks", "count"])

        assert result.exit_code == 0
        assert "default: 2 bookmark(s)" in result.stdout
        assert "Most recent update: 2023-06-01T00:00:00Z" in result.stdout

    @pytest.mark.unit
    def test_list(self, populated: None) -> None:
        result = runner.invoke(app, ["bookmarks", "list", "--limit", "1"])

        assert result.exit_code == 0
        assert "[2] Untitled - https://example2.com" in result.stdout
        assert "[1] First" not in result.stdout
        assert "... and 1 more" in result.stdout

    @pytest.mark.unit
    def test_count_requires_account_when_ambiguous(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        accounts_file = tmp_path / "accounts.yaml"
        accounts_file.write_text(
            "accounts:\n"
            "  - {id: one, clientId: a, clientSecret: b}\n"
            "  - {id: two, clientId: c, clientSecret: d}\n"
        )
        monkeypatch.setenv("RAINDROP_SYNC_SYNC__ACCOUNTS_FILE", str(accounts_file))

        result = runner.invoke(app, ["bookmarks", "count"])
        assert result.exit_code == 2

        result = runner.invoke(app, ["bookmarks", "count", "--account", "two"])
        assert result.exit_code == 0
        assert "two: 0 bookmark(s)" in result.stdout


class TestFindTarget:
    """Test cases for account selection."""

    @pytest.mark.unit
    def test_unknown_account(self) -> None:
        with pytest.raises(typer.BadParameter, match="Unknown account"):
            find_target([], "missing")
