from fileforge.core.config import Settings, get_settings
from fileforge.main import RateLimiter


def test_rate_limiter_blocks_within_the_window():
    limiter = RateLimiter(2)
    assert limiter.hit("10.0.0.1", now=1000.0)
    assert limiter.hit("10.0.0.1", now=1001.0)
    assert not limiter.hit("10.0.0.1", now=1002.0)
    assert limiter.hit("10.0.0.2", now=1002.0)
    assert limiter.hit("10.0.0.1", now=1061.0)


def test_rate_limiter_forgets_idle_clients():
    limiter = RateLimiter(5)
    for index in range(50):
        limiter.hit(f"10.0.1.{index}", now=1000.0)
    assert len(limiter._hits) == 50

    limiter.hit("10.0.2.1", now=1100.0)

    assert list(limiter._hits) == ["10.0.2.1"]


def test_settings_come_from_the_environment():
    settings = get_settings()
    assert settings.rate_limit_per_minute == 10000
    assert settings.celery_task_always_eager is True
    assert settings.job_timeout_seconds == 900
    assert "environment" not in Settings.model_fields
