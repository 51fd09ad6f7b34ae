import pytest
from pydantic import ValidationError

from app.core.config import Settings
from app.core.exceptions import ValidationError as SocialValidationError
from app.utils.pagination import resolve_page, total_pages


def test_defaults():
    s = Settings(database_url='sqlite+aiosqlite://')
    assert s.default_page_size == 20
    assert s.feed_page_size == 10
    assert s.notification_dedup_window_hours == 24
    assert s.jwt_secret is None


def test_cors_origins_from_comma_string():
    s = Settings(database_url='sqlite+aiosqlite://', cors_origins='http://a.test, http://b.test')
    assert s.cors_origins == ['http://a.test', 'http://b.test']


@pytest.mark.parametrize('overrides', [
    {'database_url': 'sqlite:///./social.db'},
    {'max_page_size': 0},
    {'default_page_size': 500},
    {'request_timeout_seconds': 0},
    {'log_level': 'LOUD'},
    {'notification_dedup_window_hours': 0},
])
def test_invalid_settings(overrides):
    values = {'database_url': 'sqlite+aiosqlite://'}
    values.update(overrides)
    with pytest.raises(ValidationError):
        Settings(**values)


def test_resolve_page():
    assert resolve_page(None, None, 20, 100) == (1, 20)
    assert resolve_page(3, 50, 20, 100) == (3, 50)
    for page, size in [(0, 10), (1, 0), (1, 101)]:
        with pytest.raises(SocialValidationError):
            resolve_page(page, size, 20, 100)


def test_total_pages():
    assert total_pages(0, 10) == 0
    assert total_pages(10, 10) == 1
    assert total_pages(11, 10) == 2
