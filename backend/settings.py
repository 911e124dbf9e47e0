"""
Configuration loaded from the environment (and a local .env file)
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

DEFAULT_ORIGINS = 'http://localhost:8000,http://127.0.0.1:8000'


@dataclass
class Settings:
    api_url: str = 'http://localhost:5002/api'
    store_path: Optional[str] = None
    port: int = 5002
    secret_key: str = 'dev-secret-key-change-in-production'
    cors_origins: List[str] = field(default_factory=lambda: DEFAULT_ORIGINS.split(','))
    request_timeout: float = 10.0
    sync_workers: int = 8
    log_level: str = 'INFO'


def load_settings() -> Settings:
    """Build settings from environment variables, reading .env first"""
    load_dotenv()
    origins = os.environ.get('CORS_ORIGINS') or os.environ.get('FRONTEND_URL') or DEFAULT_ORIGINS
    return Settings(
        api_url=os.environ.get('CALENDAR_API_URL', 'http://localhost:5002/api'),
        store_path=os.environ.get('CALENDAR_STORE_PATH') or None,
        port=int(os.environ.get('PORT', 5002)),
        secret_key=os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production'),
        cors_origins=[o.strip() for o in origins.split(',') if o.strip()],
        request_timeout=float(os.environ.get('CALENDAR_REQUEST_TIMEOUT', 10)),
        sync_workers=int(os.environ.get('CALENDAR_SYNC_WORKERS', 8)),
        log_level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
    )


def configure_logging(level: str = 'INFO') -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
