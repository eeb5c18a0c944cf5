import os
from dataclasses import dataclass
from typing import Optional

import structlog
from botocore.config import Config as BotocoreConfig
from dotenv import load_dotenv

logger = structlog.get_logger(__name__)

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _int_from_env(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name, "")
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {raw!r}. Expected an integer.")
    if value < minimum:
        raise ValueError(f"Invalid value for {name}: {value}. Must be >= {minimum}.")
    return value


@dataclass
class IdentityConfig:
    """Runtime configuration for role identities, read from environment variables.

    Environment variables:
        - AWS_REGION: Region for STS and Secrets Manager clients (default: us-east-1)
        - STS_ENDPOINT_URL: Optional STS endpoint override (e.g. a VPC endpoint)
        - STS_MAX_ATTEMPTS: botocore retry attempts, standard mode (default: 3)
        - STS_CONNECT_TIMEOUT: Connect timeout in seconds (default: 5)
        - STS_READ_TIMEOUT: Read timeout in seconds (default: 10)
        - EXPIRY_WINDOW_SECONDS: Treat credentials as expired this many seconds early (default: 0)
        - SESSION_NAME_PREFIX: Prefix for generated session names (default: aws-role-identity)
        - LOG_LEVEL: Logging level (default: INFO)
        - APP_ENV: Application environment; "production" enables JSON logs (default: development)
    """

    aws_region: str = ""
    sts_endpoint_url: str = ""
    sts_max_attempts: int = 3
    sts_connect_timeout: int = 5
    sts_read_timeout: int = 10
    expiry_window_seconds: int = 0
    session_name_prefix: str = ""
    log_level: str = ""
    app_env: str = ""

    def __post_init__(self):
        self.aws_region = os.getenv("AWS_REGION", os.getenv("AWS_DEFAULT_REGION", "us-east-1"))
        self.sts_endpoint_url = os.getenv("STS_ENDPOINT_URL", "")

        self.sts_max_attempts = _int_from_env("STS_MAX_ATTEMPTS", 3, minimum=1)
        self.sts_connect_timeout = _int_from_env("STS_CONNECT_TIMEOUT", 5, minimum=1)
        self.sts_read_timeout = _int_from_env("STS_READ_TIMEOUT", 10, minimum=1)
        self.expiry_window_seconds = _int_from_env("EXPIRY_WINDOW_SECONDS", 0)

        self.session_name_prefix = os.getenv("SESSION_NAME_PREFIX", "aws-role-identity")

        self.app_env = os.getenv("APP_ENV", os.getenv("ENVIRONMENT", "development"))
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid LOG_LEVEL: {self.log_level}. Must be one of {VALID_LOG_LEVELS}")

    @property
    def json_logs(self) -> bool:
        return self.app_env.lower() == "production"

    def botocore_config(self) -> BotocoreConfig:
        """botocore client config shared by the STS and Secrets Manager clients."""
        return BotocoreConfig(
            retries={"max_attempts": self.sts_max_attempts, "mode": "standard"},
            connect_timeout=self.sts_connect_timeout,
            read_timeout=self.sts_read_timeout,
        )

    def sts_client_kwargs(self) -> dict:
        kwargs = {"region_name": self.aws_region, "config": self.botocore_config()}
        if self.sts_endpoint_url:
            kwargs["endpoint_url"] = self.sts_endpoint_url
        return kwargs


def get_config(env_file: Optional[str] = None) -> IdentityConfig:
    """Load a .env file (if present) and build the configuration from the environment."""
    load_dotenv(env_file)
    config = IdentityConfig()
    logger.debug(
        "Identity configuration loaded",
        aws_region=config.aws_region,
        has_sts_endpoint=bool(config.sts_endpoint_url),
        sts_max_attempts=config.sts_max_attempts,
    )
    return config
