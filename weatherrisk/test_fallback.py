import random

from weatherrisk.cache import AssessmentCache
from weatherrisk.fallback import FallbackSynthesizer
from weatherrisk.sampler import sample


def test_synthetic_timeline_is_flagged_and_in_range(route):
    points = sample(route, point_count=6)
    samples = FallbackSynthesizer(random.Random(1)).timeline(points)

    assert len(samples) == 6
    for point, s in zip(points, samples):
        assert s.synthetic
        assert s.timestamp == point.estimated_time
        assert s.coordinate == point.coordinate
        assert -10 <= s.temperature <= 20
        assert 40 <= s.humidity <= 80
        assert 0 <= s.wind_speed <= 15
        assert 5000 <= s.visibility <= 15000
        assert s.description.endswith("(synthetic)")


def test_same_seed_same_weather(route):
    points = sample(route)
    a = FallbackSynthesizer(random.Random(42)).timeline(points)
    b = FallbackSynthesizer(random.Random(42)).timeline(points)
    assert a == b


def test_daily_forecast_shape():
    forecast = FallbackSynthesizer(random.Random(3)).daily_forecast(days=5)
    assert len(forecast) == 5
    assert all(f.synthetic for f in forecast)
    assert [(f.date - forecast[0].date).days for f in forecast] == [0, 1, 2, 3, 4]


def test_cache_invalidate_and_clear():
    cache = AssessmentCache(ttl_s=60, clock=lambda: 0.0)
    cache.put("a", "report-a")
    cache.put("b", "report-b")
    cache.invalidate("a")
    assert cache.get("a") is None
    assert cache.get("b") == "report-b"
    cache.clear()
    assert len(cache) == 0
