#!filepath: textlasso/config/app_config.py
import os

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel

from .log_config import LogConfig
from .data_config import DataConfig
from .tuning_config import TuningConfig


def project_root() -> str:
    """
    Project root derived from this file's location:
    textlasso/config/app_config.py -> textlasso/config -> textlasso -> project_root
    """
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "../../"))


def default_config_path() -> str:
    return os.path.join(os.path.dirname(__file__), "base.yml")


class AppConfig(BaseModel):
    log: LogConfig = LogConfig()
    data: DataConfig = DataConfig()
    tuning: TuningConfig = TuningConfig()

    @classmethod
    def load(cls, path: str | None = None) -> "AppConfig":
        """
        Load YAML config (+ .env)

        Resolution order for the config file:
        - explicit `path`
        - TEXTLASSO_CONFIG (environment or <project_root>/.env)
        - textlasso/config/base.yml
        """
        load_dotenv(os.path.join(project_root(), ".env"))

        if path is None:
            path = os.getenv("TEXTLASSO_CONFIG") or default_config_path()

        if not os.path.exists(path):
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        return cls(**raw)
