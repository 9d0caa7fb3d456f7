"""
Configuration management for the deal room core.

Loads settings from environment variables with sensible defaults.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / '.env'
if _env_file.exists():
    load_dotenv(_env_file)


class Config:
    """Configuration settings loaded from environment."""

    # Logging
    LOG_LEVEL: str = os.getenv('DEALROOM_LOG_LEVEL', 'INFO')
    LOG_JSON: bool = os.getenv('DEALROOM_LOG_JSON', 'false').lower() in ('1', 'true', 'yes')

    # Route guard destinations
    SIGN_IN_PATH: str = os.getenv('DEALROOM_SIGN_IN_PATH', '/login')
    HOME_PATH: str = os.getenv('DEALROOM_HOME_PATH', '/')

    # Catalog
    DEFAULT_SORT: str = os.getenv('DEALROOM_DEFAULT_SORT', 'createdAt-desc')

    @classmethod
    def validate(cls) -> list[str]:
        """
        Validate configuration values.

        Returns:
            List of human-readable problems (empty when valid)
        """
        problems = []
        if not cls.SIGN_IN_PATH.startswith('/'):
            problems.append('DEALROOM_SIGN_IN_PATH must be an absolute path')
        if not cls.HOME_PATH.startswith('/'):
            problems.append('DEALROOM_HOME_PATH must be an absolute path')
        field, _, direction = cls.DEFAULT_SORT.rpartition('-')
        if not field or direction not in ('asc', 'desc'):
            problems.append('DEALROOM_DEFAULT_SORT must look like <field>-asc or <field>-desc')
        return problems


# Singleton config instance
config = Config()
