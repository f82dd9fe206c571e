from __future__ import annotations
import os
from pathlib import Path

class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    BASE_DIR = Path(__file__).resolve().parent
    # SQLite file in project directory
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'oficina.db'}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    SHOP_TIMEZONE = os.getenv("SHOP_TIMEZONE", "America/Sao_Paulo")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    # load the projection lazily on the first request
    AGENDA_AUTOLOAD = True

class DevConfig(BaseConfig):
    DEBUG = True

class TestConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_LEVEL = "WARNING"

class ProdConfig(BaseConfig):
    DEBUG = False

config_map = {
    "dev": DevConfig,
    "test": TestConfig,
    "prod": ProdConfig,
    "default": DevConfig,
}
