"""Tests for configuration getters and defaults."""

import os
from unittest.mock import patch

import pytest

from swarm_indexer.config import IndexerConfig
from swarm_indexer.constants import get_embedding_model
from swarm_indexer.index.config import RavenDBConfig


class TestIndexerConfig:
    """Tests for IndexerConfig environment parsing."""

    def test_defaults_when_unset(self):
        """Test that unset variables fall back to the documented defaults."""
        with patch.dict(os.environ, {}, clear=True):
            assert IndexerConfig.get_workers() == 8
            assert IndexerConfig.get_batch_size() == 100
            assert IndexerConfig.get_rate_limit() == 60
            assert IndexerConfig.get_embedding_dimensions() == 768
            assert IndexerConfig.get_embedding_timeout() == 30.0
            assert IndexerConfig.get_embedding_service() == "gemini"
            assert IndexerConfig.get_gemini_api_key() is None

    def test_reads_integer_overrides(self):
        """Test that integer variables are parsed."""
        env = {"INDEXER_WORKERS": "3", "INDEXER_BATCH_SIZE": "25", "EMBEDDING_RATE_LIMIT": "120"}
        with patch.dict(os.environ, env, clear=True):
            assert IndexerConfig.get_workers() == 3
            assert IndexerConfig.get_batch_size() == 25
            assert IndexerConfig.get_rate_limit() == 120

    @pytest.mark.parametrize("value", ["0", "-4"])
    def test_non_positive_integer_is_rejected(self, value):
        """Test that zero or negative values raise a ValueError naming the variable."""
        with patch.dict(os.environ, {"INDEXER_WORKERS": value}, clear=True):
            with pytest.raises(ValueError, match="INDEXER_WORKERS"):
                IndexerConfig.get_workers()

    def test_non_integer_is_rejected(self):
        """Test that a non-numeric value raises a ValueError naming the variable."""
        with patch.dict(os.environ, {"INDEXER_BATCH_SIZE": "lots"}, clear=True):
            with pytest.raises(ValueError, match="INDEXER_BATCH_SIZE"):
                IndexerConfig.get_batch_size()

    def test_timeout_accepts_fractions(self):
        """Test that the embedding timeout may be fractional."""
        with patch.dict(os.environ, {"EMBEDDING_TIMEOUT": "2.5"}, clear=True):
            assert IndexerConfig.get_embedding_timeout() == 2.5

    def test_timeout_must_be_positive(self):
        """Test that a zero timeout is rejected."""
        with patch.dict(os.environ, {"EMBEDDING_TIMEOUT": "0"}, clear=True):
            with pytest.raises(ValueError, match="EMBEDDING_TIMEOUT"):
                IndexerConfig.get_embedding_timeout()


class TestRavenDBConfig:
    """Tests for RavenDBConfig defaults."""

    def test_defaults(self):
        """Test the default server URL and database name."""
        with patch.dict(os.environ, {}, clear=True):
            assert RavenDBConfig.get_url() == "http://localhost:8080"
            assert RavenDBConfig.get_database_name() == "swarm-index"

    def test_trailing_slash_is_stripped(self):
        """Test that URLs are normalized without a trailing slash."""
        with patch.dict(os.environ, {"RAVENDB_URL": "http://raven:8080/"}, clear=True):
            assert RavenDBConfig.get_url() == "http://raven:8080"


class TestGetEmbeddingModel:
    """Tests for get_embedding_model."""

    def test_env_override_wins(self):
        """Test that EMBEDDING_MODEL takes precedence over service defaults."""
        with patch.dict(os.environ, {"EMBEDDING_MODEL": "custom-model"}, clear=True):
            assert get_embedding_model("ollama") == "custom-model"

    def test_service_defaults(self):
        """Test per-service default models."""
        with patch.dict(os.environ, {}, clear=True):
            assert get_embedding_model("gemini") == "gemini-embedding-001"
            assert get_embedding_model("ollama") == "nomic-embed-text"

    def test_service_from_environment(self):
        """Test that EMBEDDING_SERVICE selects the default when no service is given."""
        with patch.dict(os.environ, {"EMBEDDING_SERVICE": "ollama"}, clear=True):
            assert get_embedding_model() == "nomic-embed-text"
