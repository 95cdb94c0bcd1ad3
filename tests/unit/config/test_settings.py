"""Tests for settings and logging configuration."""

import pytest
import structlog

from code_memory.config import Settings, configure_logging, get_logger, get_settings
from code_memory.embedding.config import LoadBalancingStrategy


@pytest.mark.unit
class TestSettings:
    """Tests for Settings."""

    def test_defaults(self, monkeypatch) -> None:
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        settings = Settings(_env_file=None)

        assert settings.is_development
        assert not settings.is_production
        assert [b.name for b in settings.embedding_backends] == ["gemini", "codestral"]
        assert settings.embedding_strategy == LoadBalancingStrategy.CONTENT_AWARE

    def test_environment_variables_override(self, monkeypatch) -> None:
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("EMBEDDING_STRATEGY", "round_robin")
        monkeypatch.setenv("EMBEDDING_TARGET_DIMENSION", "768")

        settings = Settings(_env_file=None)

        assert settings.is_production
        assert settings.embedding_strategy == LoadBalancingStrategy.ROUND_ROBIN
        assert settings.embedding_target_dimension == 768

    def test_builders_share_dimension(self) -> None:
        settings = Settings(
            _env_file=None,
            embedding_target_dimension=256,
            database_path="/tmp/x.db",
            vector_index="brute_force",
            retrieval_oversampling_multiplier=3,
            routing_rebalance_workload=True,
        )

        embedding = settings.embedding_config()
        storage = settings.storage_config()
        retrieval = settings.retrieval_config()

        assert embedding.target_dimension == storage.dimensions == 256
        assert embedding.routing.rebalance_workload is True
        assert embedding.routing.code_backend == "codestral"
        assert storage.database_path == "/tmp/x.db"
        assert storage.vector_index == "brute_force"
        assert retrieval.oversampling_multiplier == 3

    def test_get_settings_is_cached(self) -> None:
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()


@pytest.mark.unit
class TestLogging:
    """Tests for structlog configuration."""

    def test_configure_and_log(self, capsys) -> None:
        configure_logging(level="DEBUG", json=True)
        try:
            get_logger("tests").info("settings.loaded", answer=42)
        finally:
            structlog.reset_defaults()

        err = capsys.readouterr().err
        assert '"event": "settings.loaded"' in err
        assert '"answer": 42' in err
