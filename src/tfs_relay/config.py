from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings
from sanic.log import logger


class Config(BaseSettings):
    ROOT_URL: str = "http://localhost:8000/"

    JOBS_FILE: str | None = None

    # seconds, used when the request does not specify a delay
    QUIET_PERIOD: float = 0.0

    IGNORE_UNKNOWN_FIELDS: bool = True

    OVERRIDE_LOGGING: Literal[
        "CRITICAL",
        "FATAL",
        "ERROR",
        "WARNING",
        "WARN",
        "INFO",
        "DEBUG",
        "NOTSET",
    ] = "INFO"

    STERILE: bool = False

    @field_validator("ROOT_URL")
    @classmethod
    def _ensure_trailing_slash(cls, value: str) -> str:
        if not value.endswith("/"):
            value += "/"
        return value

    def print_config(self):
        """Print configuration values"""
        logger.info("=== TFS Relay Configuration ===")
        for field_name, field_value in self.model_dump().items():
            logger.info(f"{field_name}: {field_value}")
        logger.info("================================")
