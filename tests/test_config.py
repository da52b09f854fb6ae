import pytest

from config import DEFAULT_MONGO_URL, Settings


class TestSettingsFromEnv:
    def test_defaults(self):
        s = Settings.from_env({})
        assert s.mongo_url == DEFAULT_MONGO_URL
        assert s.seed_size == 20000
        assert s.port == 3000
        assert s.connect_max_attempts == 30
        assert s.connect_delay == 2.0
        assert s.database_name == "shopdb"

    def test_overrides(self):
        s = Settings.from_env(
            {
                "MONGO_URL": "mongodb://db:27017/other",
                "SEED_SIZE": "5",
                "PORT": "8080",
                "CONNECT_DELAY": "0.5",
                "LOG_LEVEL": "debug",
            }
        )
        assert s.seed_size == 5
        assert s.port == 8080
        assert s.connect_delay == 0.5
        assert s.log_level == "DEBUG"
        assert s.database_name == "other"

    def test_url_without_database_falls_back(self):
        assert Settings(mongo_url="mongodb://db:27017").database_name == "shopdb"

    def test_bad_integer_rejected(self):
        with pytest.raises(ValueError, match="SEED_SIZE"):
            Settings.from_env({"SEED_SIZE": "lots"})

    def test_negative_seed_size_rejected(self):
        with pytest.raises(ValueError):
            Settings.from_env({"SEED_SIZE": "-1"})
