import pytest

from branch_janitor.domain.config import DEFAULT_PROTECTED_BRANCHES, CleanupConfig
from branch_janitor.infrastructure.config_loader import (
    ConfigurationError,
    EnvConfigLoader,
    get_setting,
    parse_protected_branches,
)


def test_defaults_when_environment_is_empty():
    config = EnvConfigLoader({}).load()

    assert config.days_old == 14
    assert config.dry_run is False
    assert config.protected_branches == frozenset({"main", "master", "develop", "staging", "production"})
    assert config.exclude_pattern is None


def test_plain_environment_variables():
    config = EnvConfigLoader(
        {
            "DAYS_OLD": "30",
            "DRY_RUN": "TRUE",
            "PROTECTED_BRANCHES": " main , release ,, ",
            "EXCLUDE_PATTERN": "^dependabot/",
        }
    ).load()

    assert config.days_old == 30
    assert config.dry_run is True
    assert config.protected_branches == frozenset({"main", "release"})
    assert config.exclude_pattern == "^dependabot/"


def test_action_inputs_are_read_when_plain_names_are_missing():
    config = EnvConfigLoader(
        {
            "INPUT_DAYS-OLD": "7",
            "INPUT_DRY-RUN": "true",
            "INPUT_PROTECTED-BRANCHES": "trunk",
            "INPUT_EXCLUDE-PATTERN": "",
        }
    ).load()

    assert config.days_old == 7
    assert config.dry_run is True
    assert config.protected_branches == frozenset({"trunk"})
    assert config.exclude_pattern is None


def test_plain_name_takes_precedence_over_action_input():
    assert get_setting("days_old", environ={"DAYS_OLD": "1", "INPUT_DAYS-OLD": "2"}) == "1"


@pytest.mark.parametrize("value", ["yes", "1", "false", ""])
def test_only_literal_true_enables_dry_run(value):
    assert EnvConfigLoader({"DRY_RUN": value}).load().dry_run is False


@pytest.mark.parametrize("value", ["abc", "-1", "1.5"])
def test_invalid_days_old(value):
    with pytest.raises(ConfigurationError):
        EnvConfigLoader({"DAYS_OLD": value}).load()


def test_parse_protected_branches():
    assert parse_protected_branches("a, b,,c ") == ["a", "b", "c"]


def test_cleanup_config_rejects_negative_days():
    with pytest.raises(ValueError):
        CleanupConfig(days_old=-1)


def test_cleanup_config_normalizes_fields():
    config = CleanupConfig(protected_branches=["main", "main"], exclude_pattern="")

    assert config.protected_branches == frozenset({"main"})
    assert config.exclude_pattern is None
    assert CleanupConfig().protected_branches == DEFAULT_PROTECTED_BRANCHES
