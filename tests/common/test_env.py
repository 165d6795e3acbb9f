"""Tests for environment configuration interface."""

from pathlib import Path

from common.env import Environment, env


class TestEnvironment:
    """Tests for Environment class."""

    def test_log_level_default(self, monkeypatch):
        """Test log_level returns default value."""
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        assert Environment.log_level() == "INFO"

    def test_log_level_from_env(self, monkeypatch):
        """Test log_level reads and normalizes the environment."""
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert Environment.log_level() == "DEBUG"

    def test_session_id_unset(self):
        """Test session_id is None when unset."""
        assert Environment.session_id() is None

    def test_session_id_blank_is_none(self, monkeypatch):
        """Test an empty session id counts as unset."""
        monkeypatch.setenv("STRUCTURED_GIT_SESSION", "   ")
        assert Environment.session_id() is None

    def test_session_id_from_env(self, monkeypatch):
        """Test session_id reads from environment."""
        monkeypatch.setenv("STRUCTURED_GIT_SESSION", "2025-02-08/passkey")
        assert Environment.session_id() == "2025-02-08/passkey"

    def test_trailer_index_path_default(self):
        """Test trailer_index_path defers to the git directory."""
        assert Environment.trailer_index_path() is None

    def test_trailer_index_path_from_env(self, monkeypatch):
        """Test trailer_index_path reads from environment."""
        monkeypatch.setenv("TRAILER_INDEX_PATH", "/tmp/index.json")
        assert Environment.trailer_index_path() == Path("/tmp/index.json")

    def test_rlm_enabled_default(self):
        """Test model-enhanced retrieval is off by default."""
        assert Environment.rlm_enabled() is False

    def test_rlm_enabled_from_env(self, monkeypatch):
        """Test rlm_enabled accepts truthy strings."""
        monkeypatch.setenv("RLM_ENABLED", "yes")
        assert Environment.rlm_enabled() is True

    def test_rlm_endpoint_default(self):
        """Test rlm_endpoint returns the local Ollama server."""
        assert Environment.rlm_endpoint() == "http://localhost:11434"

    def test_rlm_endpoint_strips_trailing_slash(self, monkeypatch):
        """Test rlm_endpoint normalizes the URL."""
        monkeypatch.setenv("RLM_ENDPOINT", "http://gpu-box:8080/")
        assert Environment.rlm_endpoint() == "http://gpu-box:8080"

    def test_rlm_model_default(self):
        """Test rlm_model returns default value."""
        assert Environment.rlm_model() == "llama3.2:3b"

    def test_rlm_timeout_ms_default(self):
        """Test rlm_timeout_ms returns default value."""
        assert Environment.rlm_timeout_ms() == 5000

    def test_rlm_timeout_ms_from_env(self, monkeypatch):
        """Test rlm_timeout_ms reads from environment."""
        monkeypatch.setenv("RLM_TIMEOUT_MS", "1500")
        assert Environment.rlm_timeout_ms() == 1500

    def test_rlm_max_tokens_default(self):
        """Test rlm_max_tokens returns default value."""
        assert Environment.rlm_max_tokens() == 512

    def test_unparseable_integers_use_defaults(self, monkeypatch):
        """Test non-integer limits fall back to their defaults."""
        monkeypatch.setenv("RLM_TIMEOUT_MS", "5s")
        monkeypatch.setenv("RLM_MAX_TOKENS", "lots")
        assert Environment.rlm_timeout_ms() == 5000
        assert Environment.rlm_max_tokens() == 512

    def test_trace_settings(self, monkeypatch, tmp_path):
        """Test trace settings read from environment."""
        monkeypatch.setenv("RLM_BENCH_TRACE", "1")
        monkeypatch.setenv("RLM_BENCH_TRACE_FILE", str(tmp_path / "trace.jsonl"))
        monkeypatch.setenv("RLM_BENCH_PROMPT_ID", "p-7")
        monkeypatch.setenv("RLM_BENCH_RUN_ID", "run-1")

        assert Environment.trace_enabled() is True
        assert Environment.trace_file() == tmp_path / "trace.jsonl"
        assert Environment.trace_prompt_id() == "p-7"
        assert Environment.trace_run_id() == "run-1"

    def test_index_miss_fallback_default(self):
        """Test index_miss_fallback returns default value."""
        assert Environment.index_miss_fallback() == "decided-against"

    def test_index_miss_fallback_from_env(self, monkeypatch):
        """Test index_miss_fallback reads from environment."""
        monkeypatch.setenv("GIT_MEMORY_INDEX_MISS_FALLBACK", "ALWAYS")
        assert Environment.index_miss_fallback() == "always"


class TestEnvSingleton:
    """Tests for env singleton instance."""

    def test_env_is_environment_instance(self):
        """Test that env is an instance of Environment."""
        assert isinstance(env, Environment)

    def test_env_singleton_methods_work(self, monkeypatch):
        """Test that env singleton methods work."""
        monkeypatch.setenv("RLM_MODEL", "qwen3:4b")
        assert env.rlm_model() == "qwen3:4b"
