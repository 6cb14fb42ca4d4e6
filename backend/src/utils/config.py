"""
Traffic Counts - Configuration Management
Handles environment configuration with AWS SSM Parameter Store for production
and python-dotenv for local development.
"""

import os
import logging
from typing import Optional
from dotenv import load_dotenv

# Load .env file for local development
load_dotenv()


class Config:
    """
    Configuration manager with dual-mode operation:
    - Local: Reads from .env file via python-dotenv
    - Production: Reads from AWS SSM Parameter Store
    """

    def __init__(self):
        self.environment = os.getenv('ENVIRONMENT', 'local')
        self._ssm_client = None

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Fetch configuration value from SSM (production) or environment (local).

        Args:
            key: Configuration key name
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        if self.environment == 'production':
            return self._get_from_ssm(key, default)
        return os.getenv(key, default)

    def _get_from_ssm(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Fetch configuration from AWS SSM Parameter Store.

        Raises:
            ConfigurationError: If parameter not found and no default provided,
                               or if AWS credentials/permissions are invalid
        """
        ssm_prefix = os.getenv('AWS_SSM_PREFIX', '/trafficcounts')
        parameter_name = f"{ssm_prefix}/{key}"
        try:
            if self._ssm_client is None:
                import boto3
                self._ssm_client = boto3.client(
                    'ssm',
                    region_name=os.getenv('AWS_REGION', 'us-east-1')
                )

            response = self._ssm_client.get_parameter(
                Name=parameter_name,
                WithDecryption=True
            )
            return response['Parameter']['Value']

        except Exception as e:
            error_type = type(e).__name__
            if default is not None:
                logging.warning(
                    f"Failed to fetch SSM parameter '{key}': {error_type}: {e}. "
                    f"Using default value."
                )
                return default
            raise ConfigurationError(
                f"Failed to fetch parameter '{key}' from SSM at '{parameter_name}': {error_type}: {e}"
            ) from e

    def get_int(self, key: str, default: int) -> int:
        """
        Get configuration value as integer.

        Falls back to the default (with a warning) when the value does not parse.
        """
        value = self.get(key, str(default))
        try:
            return int(value)
        except (ValueError, TypeError) as e:
            logging.warning(
                f"Invalid integer for config key '{key}': '{value}'. "
                f"Using default={default}. Error: {e}"
            )
            return default

    def get_bool(self, key: str, default: bool) -> bool:
        """Get configuration value as boolean."""
        value = self.get(key, str(default))
        if value is None:
            return default
        return value.lower() in ('true', '1', 'yes', 'on')

    @property
    def is_production(self) -> bool:
        return self.environment == 'production'

    @property
    def is_local(self) -> bool:
        return self.environment == 'local'


class ConfigurationError(Exception):
    """Raised when configuration cannot be loaded."""
    pass


# Global configuration instance
config = Config()


# Database configuration
# DATABASE_URL takes precedence (any SQLAlchemy URL, e.g. sqlite for local runs)
DATABASE_URL = config.get('DATABASE_URL', '')
DB_HOST = config.get('DB_HOST', 'localhost')
DB_PORT = config.get_int('DB_PORT', 3306)
DB_NAME = config.get('DB_NAME', 'traffic_counts_dev')
DB_USER = config.get('DB_USER', 'root')
DB_PASSWORD = config.get('DB_PASSWORD', '')

# Logging configuration
LOG_LEVEL = config.get('LOG_LEVEL', 'INFO')

# AADV runs
AADV_MAX_WORKERS = config.get_int('AADV_MAX_WORKERS', 4)
AADV_DEFAULT_CLIENT = config.get('AADV_DEFAULT_CLIENT', '') or None

# Database connection pool settings
DB_POOL_SIZE = config.get_int('DB_POOL_SIZE', 5)
DB_POOL_MAX_OVERFLOW = config.get_int('DB_POOL_MAX_OVERFLOW', 5)
DB_POOL_RECYCLE = 3600  # Recycle connections after 1 hour
DB_POOL_PRE_PING = True
