import pytest
from pydantic import ValidationError

from eventrec.config import CacheTTLs, RankingConfig, ScoringWeights, Settings


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_defaults_produce_value_objects():
    settings = _settings()

    assert settings.scoring_weights() == ScoringWeights(0.30, 0.25, 0.20, 0.15, 0.10)
    assert settings.scoring_weights().total == pytest.approx(1.0)
    assert settings.cache_ttls() == CacheTTLs(user=1800, trending=3600, similar=7200, category=1800)
    assert settings.ranking_config() == RankingConfig(
        default_page_size=20, max_page_size=100, default_radius_km=20.0, candidate_pool_size=100
    )
    assert settings.HTTP_CONNECT_TIMEOUT_S == 5.0
    assert settings.HTTP_READ_TIMEOUT_S == 60.0
    assert settings.HISTORY_ALGORITHM_VERSION == "v1.0"


def test_negative_weight_is_rejected():
    with pytest.raises(ValidationError):
        _settings(WEIGHT_GEO=-0.1)


def test_weights_not_summing_to_one_are_kept_as_is():
    settings = _settings(WEIGHT_GEO=0.5)
    assert settings.scoring_weights().geo == 0.5
    assert settings.scoring_weights().total == pytest.approx(1.2)


def test_default_page_size_cannot_exceed_max():
    with pytest.raises(ValidationError):
        _settings(PAGINATION_DEFAULT_SIZE=150, PAGINATION_MAX_SIZE=100)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ('["jazz", " art "]', ["jazz", "art"]),
        ("jazz, art,,food", ["jazz", "art", "food"]),
        (["sports"], ["sports"]),
    ],
)
def test_default_interests_parsing(monkeypatch, raw, expected):
    if isinstance(raw, str):
        monkeypatch.setenv("COLD_START_DEFAULT_INTERESTS", raw)
        settings = _settings()
    else:
        settings = _settings(COLD_START_DEFAULT_INTERESTS=raw)

    assert settings.COLD_START_DEFAULT_INTERESTS == expected


def test_environment_overrides_weights(monkeypatch):
    monkeypatch.setenv("WEIGHT_RECENCY", "0.05")
    monkeypatch.setenv("CACHE_TTL_TRENDING_S", "60")

    settings = _settings()

    assert settings.scoring_weights().recency == 0.05
    assert settings.cache_ttls().trending == 60


def test_development_pool_config_is_smaller():
    assert _settings(environment="development").get_db_pool_config()["min_size"] == 1
    assert _settings(environment="production", DB_POOL_MIN_SIZE=4).get_db_pool_config() == {
        "min_size": 4,
        "max_size": 10,
        "timeout": 30.0,
    }
