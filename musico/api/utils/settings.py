# -*- coding: utf-8 -*-
"""
Paramètres d'exécution de Musico, lus depuis l'environnement (.env supporté).
"""
import os
from dotenv import load_dotenv

load_dotenv()

currentdir = os.path.dirname(os.path.realpath(__file__))
projectdir = os.path.abspath(os.path.join(currentdir, '..', '..', '..'))

DEFAULT_CORS_ORIGINS = [
    "http://localhost:8081",  # Expo web
    "http://localhost:8082",
    "http://127.0.0.1:8081",
]


def get_redis_url() -> str:
    return os.getenv('REDIS_URL', 'redis://localhost:6379/0')


def get_queue_key_prefix() -> str:
    return os.getenv('QUEUE_KEY_PREFIX', 'queue:')


def get_queue_ttl_seconds() -> int:
    """Durée de vie glissante d'une file de lecture (24h par défaut)."""
    try:
        return int(os.getenv('QUEUE_TTL_SECONDS', str(24 * 60 * 60)))
    except ValueError:
        return 24 * 60 * 60


def get_log_level() -> str:
    return os.getenv('LOG_LEVEL', 'INFO').upper()


def get_log_dir() -> str:
    return os.getenv('LOG_DIR', os.path.join(projectdir, 'logs'))


def get_cors_origins() -> list[str]:
    raw = os.getenv('CORS_ORIGINS')
    if not raw:
        return list(DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in raw.split(',') if origin.strip()]


def get_api_host() -> str:
    return os.getenv('API_HOST', '0.0.0.0')


def get_api_port() -> int:
    return int(os.getenv('API_PORT', '8001'))
