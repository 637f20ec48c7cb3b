"""
Tests for configuration loading.
"""

import pytest
from pydantic import ValidationError

from finance_tracker.config import (
    AppSettings,
    GeminiSettings,
    InsightsProxySettings,
    PersistenceApiSettings,
    get_settings,
    validate_all_settings,
)


@pytest.fixture(autouse=True)
def clean_environment(tmp_path, monkeypatch):
    """Run each test away from any real .env file and with a fresh cache."""
    monkeypatch.chdir(tmp_path)
    for name in ("GEMINI_API_KEY", "STORAGE_BACKEND", "INSIGHTS_BASE_URL"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:

    def test_defaults(self):
        """Test defaults for the services that need no secrets."""
        assert InsightsProxySettings().base_url == "http://localhost:8000/api/openai"
        assert PersistenceApiSettings().user_id == "local"
        app = AppSettings()
        assert app.storage_backend == "memory"
        assert app.future_date_tolerance_days == 31

    def test_environment_overrides(self, monkeypatch):
        """Test prefixed environment variables are picked up."""
        monkeypatch.setenv("INSIGHTS_BASE_URL", "http://proxy.example/api/openai")
        assert InsightsProxySettings().base_url == "http://proxy.example/api/openai"

    def test_env_file(self, tmp_path):
        """Test the .env file in the working directory is read."""
        (tmp_path / ".env").write_text("GEMINI_API_KEY=from-file\nSTORAGE_BACKEND=http\n")
        assert GeminiSettings().api_key == "from-file"
        assert AppSettings().storage_backend == "http"

    def test_unknown_backend_rejected(self, monkeypatch):
        """Test only the known storage backends are accepted."""
        monkeypatch.setenv("STORAGE_BACKEND", "postgres")
        with pytest.raises(ValidationError):
            AppSettings()

    def test_missing_gemini_key(self):
        """Test the Gemini settings require an API key."""
        with pytest.raises(ValidationError):
            GeminiSettings()

    def test_validate_all_settings(self):
        """Test the report names the services that are not configured."""
        results = validate_all_settings()
        assert results["gemini"] is False
        assert "gemini_error" in results
        assert results["insights"] is True
        assert results["app"] is True
