"""Unit tests for infrastructure config and logging."""

import pytest
import structlog
from structlog.testing import capture_logs

from perp_ledger.infrastructure.config import (
    DEFAULT_CONFIG,
    DEFAULT_REPORT_CONFIG,
    LedgerConfig,
    load_config,
)
from perp_ledger.infrastructure.log_config import setup_logging

ENV_VARS = [
    "HYPERLIQUID_INFO_URL",
    "TARGET_BUILDER",
    "TRACKED_USERS",
    "PRICE_CACHE_TTL_MS",
    "MAX_LEADERBOARD_SIZE",
    "REQUEST_TIMEOUT",
    "FILLS_PAGE_LIMIT",
    "PARALLEL_WORKERS",
    "DATASOURCE_TYPE",
]


@pytest.fixture
def clean_env(monkeypatch):
    # setenv first so variables loaded from a .env file are removed on undo
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


class TestLedgerConfig:
    """Tests for LedgerConfig defaults."""

    def test_defaults(self):
        assert DEFAULT_CONFIG.info_url == "https://api.hyperliquid.xyz/info"
        assert DEFAULT_CONFIG.target_builder is None
        assert DEFAULT_CONFIG.price_cache_ttl_ms == 5_000
        assert DEFAULT_CONFIG.max_leaderboard_size == 100
        assert DEFAULT_CONFIG.fills_page_limit == 2_000
        assert DEFAULT_CONFIG.datasource == "hyperliquid"
        assert DEFAULT_REPORT_CONFIG.output_formats == ("csv", "parquet")

    def test_frozen(self):
        with pytest.raises(AttributeError):
            DEFAULT_CONFIG.parallel_workers = 1


class TestLoadConfig:
    """Tests for environment loading."""

    def test_empty_env_gives_defaults(self, clean_env):
        assert load_config() == LedgerConfig()

    def test_reads_env(self, clean_env):
        clean_env.setenv("TARGET_BUILDER", "0x" + "AB" * 20)
        clean_env.setenv("TRACKED_USERS", " 0x1, ,0x2 ")
        clean_env.setenv("MAX_LEADERBOARD_SIZE", "25")
        clean_env.setenv("REQUEST_TIMEOUT", "2.5")
        clean_env.setenv("PARALLEL_WORKERS", "4")
        clean_env.setenv("FILLS_PAGE_LIMIT", "500")
        clean_env.setenv("DATASOURCE_TYPE", "memory")

        config = load_config()
        assert config.target_builder == "0x" + "ab" * 20
        assert config.tracked_users == ("0x1", "0x2")
        assert config.max_leaderboard_size == 25
        assert config.request_timeout == 2.5
        assert config.parallel_workers == 4
        assert config.fills_page_limit == 500
        assert config.datasource == "memory"

    def test_blank_builder_is_none(self, clean_env):
        clean_env.setenv("TARGET_BUILDER", "  ")
        assert load_config().target_builder is None

    def test_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("PRICE_CACHE_TTL_MS=1000\nDATASOURCE_TYPE=memory\n")
        config = load_config(env_file)
        assert config.price_cache_ttl_ms == 1000
        assert config.datasource == "memory"

    def test_bad_number(self, clean_env):
        clean_env.setenv("PARALLEL_WORKERS", "many")
        with pytest.raises(ValueError):
            load_config()


class TestSetupLogging:
    """Tests for structlog configuration."""

    def test_level_filters(self):
        setup_logging("WARNING")
        log = structlog.get_logger("test")
        with capture_logs() as logs:
            log.info("hidden")
            log.warning("shown", key="value")
        assert [e["event"] for e in logs] == ["shown"]
        assert logs[0]["key"] == "value"

    def test_json_output(self, capsys):
        setup_logging("INFO", json=True)
        structlog.get_logger("test").info("hello", n=1)
        err = capsys.readouterr().err
        assert '"event": "hello"' in err
        assert '"level": "info"' in err
