"""Unit tests for settings."""
import pytest
from pydantic import ValidationError

from config import Settings, get_settings


class TestSettings:
    def test_defaults(self):
        settings = get_settings()

        assert settings.match_high_threshold == 0.8
        assert settings.match_medium_threshold == 0.5
        assert settings.match_shortlist_top_k == 10
        assert settings.get_review_config()["intervals_days"] == {"hard": 1, "medium": 3, "easy": 7}
        assert settings.has_ai_configured() is False

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("MATCH_HIGH_THRESHOLD", "0.9")
        get_settings.cache_clear()

        assert get_settings().match_high_threshold == 0.9

    def test_medium_must_be_below_high(self):
        with pytest.raises(ValidationError):
            Settings(match_high_threshold=0.6, match_medium_threshold=0.7)

    def test_matching_config_hides_nothing_sensitive(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "secret-key")
        get_settings.cache_clear()

        config = get_settings().get_matching_config()

        assert "secret-key" not in str(config)
        assert config["blend_weights"] == {"similarity": 0.6, "llm": 0.4}
