"""
Unit tests for runtime configuration.

Validates defaults, env var loading, and SecretStr handling.
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError


class TestStoreSettings:
    """Test StoreSettings pydantic model."""

    def test_defaults(self):
        from associate.config import StoreSettings

        cfg = StoreSettings()
        assert cfg.backend == "falkordb"
        assert cfg.host == "localhost"
        assert cfg.port == 6379
        assert cfg.password is None
        assert cfg.graph_name == "associate"
        assert cfg.max_connections == 16

    def test_env_override(self):
        from associate.config import StoreSettings

        env = {
            "ASSOCIATE_STORE_BACKEND": "sqlite",
            "ASSOCIATE_STORE_HOST": "graphhost",
            "ASSOCIATE_STORE_PORT": "6380",
            "ASSOCIATE_STORE_PASSWORD": "s3cret",
            "ASSOCIATE_STORE_GRAPH_NAME": "custom_graph",
            "ASSOCIATE_STORE_SQLITE_PATH": "/tmp/graph.db",
        }

        with patch.dict(os.environ, env, clear=False):
            cfg = StoreSettings()

        assert cfg.backend == "sqlite"
        assert cfg.host == "graphhost"
        assert cfg.port == 6380
        assert cfg.password is not None
        assert cfg.password.get_secret_value() == "s3cret"
        assert cfg.graph_name == "custom_graph"
        assert cfg.sqlite_path == "/tmp/graph.db"

    def test_password_is_secretstr(self):
        """Password must not appear in repr/str."""
        from associate.config import StoreSettings

        with patch.dict(os.environ, {"ASSOCIATE_STORE_PASSWORD": "hunter2"}, clear=False):
            cfg = StoreSettings()

        assert "hunter2" not in repr(cfg)
        assert "hunter2" not in str(cfg)

    @pytest.mark.parametrize("port", ["0", "65536"])
    def test_port_out_of_range_rejected(self, port):
        from associate.config import StoreSettings

        with patch.dict(os.environ, {"ASSOCIATE_STORE_PORT": port}, clear=False):
            with pytest.raises(ValidationError):
                StoreSettings()

    def test_unknown_backend_rejected(self):
        from associate.config import StoreSettings

        with patch.dict(os.environ, {"ASSOCIATE_STORE_BACKEND": "neo4j"}, clear=False):
            with pytest.raises(ValidationError):
                StoreSettings()


class TestRetrySettings:
    def test_defaults(self):
        from associate.config import RetrySettings

        cfg = RetrySettings()
        assert cfg.max_attempts == 30
        assert cfg.initial_delay == 1.0
        assert cfg.max_delay == 10.0

    def test_env_override(self):
        from associate.config import RetrySettings

        env = {"ASSOCIATE_RETRY_MAX_ATTEMPTS": "3", "ASSOCIATE_RETRY_INITIAL_DELAY": "0.5"}
        with patch.dict(os.environ, env, clear=False):
            cfg = RetrySettings()

        assert cfg.max_attempts == 3
        assert cfg.initial_delay == 0.5


class TestServerSettings:
    def test_defaults(self):
        from associate.config import ServerSettings

        cfg = ServerSettings()
        assert cfg.transport == "stdio"
        assert cfg.port == 8000
        assert cfg.log_level == "INFO"
        assert cfg.default_zone_name == "Default"

    def test_settings_groups(self):
        from associate.config import RetrySettings, ServerSettings, Settings, StoreSettings

        cfg = Settings()
        assert isinstance(cfg.store, StoreSettings)
        assert isinstance(cfg.retry, RetrySettings)
        assert isinstance(cfg.server, ServerSettings)
