import os
import logging
from dataclasses import dataclass

from botocore.config import Config
from dotenv import load_dotenv

DEFAULT_REGION = "us-east-1"

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'


@dataclass(frozen=True)
class AppConfig:
    """Settings for the Bedrock client and the HTTP server, read once at startup."""

    region: str = DEFAULT_REGION
    read_timeout: int = 300
    connect_timeout: int = 60
    max_attempts: int = 3
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "AppConfig":
        """Build the configuration from environment variables.

        Args:
            dotenv (bool, optional): Load a .env file first. Defaults to True.

        Returns:
            AppConfig: The loaded configuration
        """
        if dotenv:
            load_dotenv()

        return cls(
            region=os.getenv('AWS_REGION') or os.getenv('APP_AWS_REGION') or DEFAULT_REGION,
            read_timeout=int(os.getenv('BEDROCK_READ_TIMEOUT', '300')),
            connect_timeout=int(os.getenv('BEDROCK_CONNECT_TIMEOUT', '60')),
            max_attempts=int(os.getenv('BEDROCK_MAX_ATTEMPTS', '3')),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
            host=os.getenv('HOST', '0.0.0.0'),
            port=int(os.getenv('PORT', '8000')),
        )

    def botocore_config(self) -> Config:
        return Config(
            read_timeout=self.read_timeout,
            connect_timeout=self.connect_timeout,
            retries={"max_attempts": self.max_attempts, "mode": "standard"},
        )


def configure_logging(config: AppConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT
    )
