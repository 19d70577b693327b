"""RuntimeSettings validation and environment loading."""

import pytest
from pydantic import ValidationError

from sponsorcast.config.runtime import BackoffStrategy, RuntimeSettings

from fakes import make_settings


def test_defaults_are_valid():
    settings = make_settings()
    assert settings.matching_threshold == 0.5
    assert settings.max_ads_per_episode == 3
    assert settings.backoff_strategy is BackoffStrategy.exponential
    assert settings.platform_fee == pytest.approx(0.05)


def test_weights_must_sum_to_one():
    with pytest.raises(ValidationError, match="weights must sum"):
        make_settings(audience_weight=0.5)


def test_rebalanced_weights_are_accepted():
    settings = make_settings(audience_weight=0.25, content_weight=0.25, brand_weight=0.25, quality_weight=0.25)
    assert settings.brand_weight == 0.25


def test_rejected_retention_has_a_floor():
    with pytest.raises(ValidationError):
        make_settings(rejected_retention_days=7)


def test_ad_duration_bounds_are_ordered():
    with pytest.raises(ValidationError):
        make_settings(min_ad_duration_seconds=90)


def test_creator_share_must_be_positive():
    with pytest.raises(ValidationError):
        make_settings(creator_share=0.0)


def test_environment_overrides(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("MATCHING_THRESHOLD", "0.65")
    monkeypatch.setenv("BACKOFF_STRATEGY", "linear")
    monkeypatch.setenv("GOOGLE_API_KEY", "test-key")
    settings = RuntimeSettings(_env_file=None)
    assert settings.matching_threshold == 0.65
    assert settings.backoff_strategy is BackoffStrategy.linear
    assert settings.gemini_api_key == "test-key"
