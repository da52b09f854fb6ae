"""Tests for connect-with-retry and the startup sequence."""

from unittest.mock import MagicMock, patch

import mongomock
import pytest
from pymongo.errors import ServerSelectionTimeoutError

from config import Settings
from database import USERS, connect_with_retry, open_client
from errors import StartupError
from startup import bootstrap


class FlakyConnect:
    """Fails ``failures`` times, then hands out a mongomock client."""

    def __init__(self, failures):
        self.failures = failures
        self.attempts = 0
        self.client = mongomock.MongoClient()

    def __call__(self, url):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise ConnectionError(f"refused #{self.attempts}")
        return self.client


class TestOpenClient:
    def test_pings_server(self):
        with patch("database.MongoClient") as client_cls:
            client = open_client("mongodb://db:27017/shopdb", timeout_ms=500)
        client_cls.assert_called_once_with("mongodb://db:27017/shopdb", serverSelectionTimeoutMS=500)
        client.admin.command.assert_called_once_with("ping")
        client.close.assert_not_called()

    def test_failed_ping_closes_and_reraises(self):
        fake_client = MagicMock()
        fake_client.admin.command.side_effect = ServerSelectionTimeoutError("no servers")
        with patch("database.MongoClient", return_value=fake_client):
            with pytest.raises(ServerSelectionTimeoutError):
                open_client("mongodb://db:27017/shopdb")
        fake_client.close.assert_called_once()


class TestConnectWithRetry:
    def test_first_attempt_succeeds(self):
        connect = FlakyConnect(0)
        sleeps = []
        client = connect_with_retry("mongodb://x/db", 30, 2.0, connect=connect, sleep=sleeps.append)
        assert client is connect.client
        assert connect.attempts == 1
        assert sleeps == []

    def test_succeeds_on_third_attempt(self):
        connect = FlakyConnect(2)
        sleeps = []
        client = connect_with_retry("mongodb://x/db", 30, 2.0, connect=connect, sleep=sleeps.append)
        assert client is connect.client
        assert connect.attempts == 3
        assert sleeps == [2.0, 2.0]

    def test_exhausted_raises_startup_error(self):
        connect = FlakyConnect(10)
        sleeps = []
        with pytest.raises(StartupError) as exc_info:
            connect_with_retry("mongodb://x/db", 4, 0.5, connect=connect, sleep=sleeps.append)
        assert connect.attempts == 4
        assert sleeps == [0.5, 0.5, 0.5]
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_logs_each_failure(self, caplog):
        connect = FlakyConnect(2)
        with caplog.at_level("WARNING", logger="database"):
            connect_with_retry("mongodb://x/db", 5, 0, connect=connect, sleep=lambda _: None)
        messages = [r.getMessage() for r in caplog.records if r.levelname == "WARNING"]
        assert messages[0].startswith("Attempt 1/5")
        assert "refused #1" in messages[0]
        assert messages[1].startswith("Attempt 2/5")

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            connect_with_retry("mongodb://x/db", 0, 1.0, connect=FlakyConnect(0))


class TestBootstrap:
    def test_connects_then_seeds(self, settings):
        connect = FlakyConnect(1)
        client = bootstrap(settings, connect=connect, sleep=lambda _: None)
        assert client[settings.database_name][USERS].count_documents({}) == settings.seed_size

    def test_unreachable_store_aborts(self):
        settings = Settings(connect_max_attempts=3, connect_delay=0)
        with pytest.raises(StartupError):
            bootstrap(settings, connect=FlakyConnect(99), sleep=lambda _: None)

    def test_seeding_failure_aborts(self, settings):
        with patch("startup.seed_if_needed", side_effect=RuntimeError("disk full")):
            with pytest.raises(StartupError, match="disk full"):
                bootstrap(settings, connect=FlakyConnect(0), sleep=lambda _: None)


class TestMain:
    def test_exits_non_zero_when_startup_fails(self, monkeypatch):
        import main

        def failing_bootstrap(settings):
            raise StartupError("down")

        monkeypatch.setattr(main, "bootstrap", failing_bootstrap)
        monkeypatch.setattr(main, "setup_logging", lambda level: None)
        with pytest.raises(SystemExit) as exc_info:
            main.main()
        assert exc_info.value.code == 1
