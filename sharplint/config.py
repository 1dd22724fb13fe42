"""Configuration management for sharplint.

Loads environment variables (optionally from a ``.env`` file) and provides
centralized config access.
"""
import os
from pathlib import Path
from typing import List, Optional
from dotenv import load_dotenv

__version__ = "1.0.0"


def _split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(',') if item.strip()]


class Config:
    """Configuration loader with environment variable support."""

    def __init__(self, env_path: Optional[Path] = None):
        """Initialize config by loading a .env file.

        Args:
            env_path: .env file to load (defaults to ./.env in the working directory)
        """
        env_path = Path(env_path) if env_path else Path.cwd() / ".env"
        load_dotenv(env_path)

        self._validate()

    def _validate(self):
        """Validate values that must be well-formed.

        Raises:
            ValueError: If a path variable points at something that is not a file
        """
        for variable, path in (("SHARPLINT_POLICY_PATH", self.policy_path),
                               ("SHARPLINT_CATALOG_PATH", self.catalog_path)):
            if path is not None and path.exists() and not path.is_file():
                raise ValueError(f"{variable} must point to a JSON file, got directory: {path}")

    @property
    def policy_path(self) -> Optional[Path]:
        """Custom exclusion policy JSON, or None for the bundled default."""
        value = os.getenv("SHARPLINT_POLICY_PATH")
        return Path(value) if value else None

    @property
    def catalog_path(self) -> Optional[Path]:
        """Custom external API catalog JSON, or None for the bundled catalog."""
        value = os.getenv("SHARPLINT_CATALOG_PATH")
        return Path(value) if value else None

    @property
    def cache_dir(self) -> str:
        """Cache directory name, created under the analyzed project root.

        Returns:
            Directory name (default ``.sharplint_cache``)
        """
        return os.getenv("SHARPLINT_CACHE_DIR", ".sharplint_cache")

    @property
    def disabled_rules(self) -> List[str]:
        return _split_list(os.getenv("SHARPLINT_DISABLED_RULES"))

    @property
    def enabled_rules(self) -> List[str]:
        """Rules to turn on in addition to those enabled by default."""
        return _split_list(os.getenv("SHARPLINT_ENABLED_RULES"))

    @property
    def excluded_dirs(self) -> List[str]:
        """Extra directory names skipped by source discovery."""
        return _split_list(os.getenv("SHARPLINT_EXCLUDED_DIRS"))


# Singleton instance
_config = None


def get_config() -> Config:
    """Get or create singleton Config instance.

    Returns:
        Config instance
    """
    global _config
    if _config is None:
        _config = Config()
    return _config
