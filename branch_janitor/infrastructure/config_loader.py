"""Cleanup configuration sourced from environment variables."""

import logging
import os
from typing import Iterable, List, Mapping, Optional

from branch_janitor.domain.config import DEFAULT_DAYS_OLD, DEFAULT_PROTECTED_BRANCHES, CleanupConfig
from branch_janitor.domain.ports import ConfigLoader

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Raised when a configuration value cannot be used."""
    pass


def parse_protected_branches(value: str) -> List[str]:
    """Split a comma separated branch list, trimming blanks."""
    return [branch.strip() for branch in value.split(",") if branch.strip()]


def get_setting(name: str, default: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """
    Look up a setting by its plain name, then as a GitHub Actions input.

    ``days_old`` is read from DAYS_OLD and then INPUT_DAYS-OLD, which is how
    the Actions runner exposes an input named ``days-old``.
    """
    env = os.environ if environ is None else environ
    plain = name.upper()
    action_input = "INPUT_" + plain.replace("_", "-")

    for key in (plain, action_input):
        value = env.get(key)
        if value is not None and value.strip() != "":
            return value.strip()
    return default


class EnvConfigLoader(ConfigLoader):
    """Loads CleanupConfig from environment variables."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        """
        Initialize the loader.

        Args:
            environ: Mapping to read from. If None, uses os.environ.
        """
        self.environ = environ

    def _get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return get_setting(name, default, self.environ)

    def load(self) -> CleanupConfig:
        raw_days = self._get("days_old", str(DEFAULT_DAYS_OLD))
        try:
            days_old = int(raw_days)
        except ValueError as e:
            raise ConfigurationError(f"days-old must be an integer, got {raw_days!r}") from e
        if days_old < 0:
            raise ConfigurationError(f"days-old must be non-negative, got {days_old}")

        # Only the literal "true" enables dry run, like the Actions toolkit inputs
        dry_run = (self._get("dry_run", "false") or "").lower() == "true"

        raw_protected = self._get("protected_branches")
        protected: Iterable[str] = (
            parse_protected_branches(raw_protected) if raw_protected is not None else DEFAULT_PROTECTED_BRANCHES
        )

        exclude_pattern = self._get("exclude_pattern")

        config = CleanupConfig(
            days_old=days_old,
            dry_run=dry_run,
            protected_branches=frozenset(protected),
            exclude_pattern=exclude_pattern,
        )
        logger.debug(f"Loaded configuration: {config}")
        return config
