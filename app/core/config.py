import logging
from typing import List, Optional, Union
from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = Field(default='sqlite+aiosqlite:///./social.db')
    jwt_secret: Optional[SecretStr] = Field(default=None)
    jwt_algorithm: str = Field(default='HS256')
    cors_origins: Union[List[str], str] = Field(
        default=['http://localhost:3001']
    )
    default_page_size: int = Field(default=20)
    feed_page_size: int = Field(default=10)
    max_page_size: int = Field(default=100)
    suggestion_limit: int = Field(default=5)
    notification_dedup_window_hours: int = Field(default=24)
    request_timeout_seconds: float = Field(default=30.0)
    presence_queue_size: int = Field(default=100)
    log_level: str = Field(default='INFO')

    @field_validator('cors_origins', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',')]
        return v

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v):
        if '+aiosqlite' not in v and '+asyncpg' not in v:
            raise ValueError('Database URL must use an async driver (sqlite+aiosqlite:// or postgresql+asyncpg://)')
        return v

    @field_validator('max_page_size')
    @classmethod
    def validate_max_page_size(cls, v):
        if v < 1 or v > 1000:
            raise ValueError('Max page size must be between 1 and 1000')
        return v

    @field_validator('suggestion_limit', 'notification_dedup_window_hours', 'presence_queue_size')
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError('Value must be at least 1')
        return v

    @field_validator('request_timeout_seconds')
    @classmethod
    def validate_request_timeout(cls, v):
        if v <= 0:
            raise ValueError('Request timeout must be positive')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f'Unknown log level: {v}')
        return level

    @model_validator(mode='after')
    def check_page_sizes(self):
        for name in ('default_page_size', 'feed_page_size'):
            value = getattr(self, name)
            if value < 1 or value > self.max_page_size:
                raise ValueError(f'{name} must be between 1 and max_page_size ({self.max_page_size})')
        return self

    model_config = {
        'env_file': '.env',
        'case_sensitive': False,
        'extra': 'ignore',
        'json_schema_extra': {
            'fields': {
                'cors_origins': {
                    'description': 'Comma-separated list of allowed CORS origins'
                },
                'database_url': {
                    'description': 'Async SQLAlchemy database URL'
                },
                'notification_dedup_window_hours': {
                    'description': 'Lookback window for suppressing repeated notifications'
                }
            }
        }
    }


settings = Settings()
