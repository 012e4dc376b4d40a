"""Tests for environment-driven settings."""

from osu_score_feed.config import Settings


def test_defaults():
    settings = Settings()
    assert settings.poll_interval == 5.0
    assert settings.recent_capacity == 50
    assert settings.backfill_pages == 5
    assert settings.suspicious_mod == "FL"
    assert settings.suspicious_pp == 100.0
    assert settings.search_time_budget == 25.0


def test_from_env_overrides():
    settings = Settings.from_env(
        {
            "OSU_CLIENT_ID": "123",
            "OSU_CLIENT_SECRET": "s3cret",
            "OSU_POLL_INTERVAL": "2.5",
            "OSU_BACKFILL_PAGES": "3",
            "OSU_TRACK_SUSPICIOUS": "false",
            "OSU_CACHE_TTL": "0",
        }
    )
    assert settings.client_id == "123"
    assert settings.client_secret == "s3cret"
    assert settings.poll_interval == 2.5
    assert settings.backfill_pages == 3
    assert settings.track_suspicious is False
    assert settings.cache_ttl is None


def test_from_env_ignores_blank_values():
    assert Settings.from_env({"OSU_PAGE_SIZE": ""}).page_size == 50
