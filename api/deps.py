"""
Shared FastAPI dependencies.
"""

from services.config import AppConfig, default_config
from services.database.db import Database, get_db


def get_config() -> AppConfig:
    return default_config


def get_database() -> Database:
    return get_db(str(default_config.database.path))
