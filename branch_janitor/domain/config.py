"""Cleanup configuration value object."""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional

DEFAULT_DAYS_OLD = 14
DEFAULT_PROTECTED_BRANCHES = frozenset({"main", "master", "develop", "staging", "production"})


@dataclass(frozen=True)
class CleanupConfig:
    """Immutable settings for one cleanup run."""

    days_old: int = DEFAULT_DAYS_OLD
    dry_run: bool = False
    protected_branches: FrozenSet[str] = field(default_factory=lambda: DEFAULT_PROTECTED_BRANCHES)
    exclude_pattern: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.days_old, bool) or not isinstance(self.days_old, int):
            raise ValueError(f"days_old must be an integer, got {self.days_old!r}")
        if self.days_old < 0:
            raise ValueError(f"days_old must be non-negative, got {self.days_old}")
        # Accept any iterable of names but always store a frozenset
        object.__setattr__(self, "protected_branches", frozenset(self.protected_branches))
        if self.exclude_pattern == "":
            object.__setattr__(self, "exclude_pattern", None)
