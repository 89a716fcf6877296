"""Pytest configuration and in-memory collaborators."""
import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from branch_janitor.domain.branch import BranchRecord
from branch_janitor.domain.ports import BranchSource, BranchSourceError, ReportSink


NOW = datetime(2024, 6, 30, 12, 0, 0, tzinfo=timezone.utc)


class FakeBranchSource(BranchSource):
    """In-memory branch source that counts every call."""

    def __init__(self, branches, default_branch="main", failing_lookups=(), failing_deletes=(),
                 fail_default=False, fail_listing=False, forbidden_lookups=()):
        # branches: ordered mapping of name -> last commit datetime
        self.branches = dict(branches)
        self.default_branch = default_branch
        self.failing_lookups = set(failing_lookups)
        self.failing_deletes = set(failing_deletes)
        self.forbidden_lookups = set(forbidden_lookups)
        self.fail_default = fail_default
        self.fail_listing = fail_listing
        self.lookups = []
        self.deletions = []

    @property
    def repository(self):
        return "octo/repo"

    def get_default_branch_name(self):
        if self.fail_default:
            raise BranchSourceError("Failed to get default branch: boom")
        return self.default_branch

    def list_all_branches(self):
        if self.fail_listing:
            raise BranchSourceError("Failed to fetch branches: boom")
        return [BranchRecord(name=name) for name in self.branches]

    def get_last_commit_timestamp(self, branch_name):
        if branch_name in self.forbidden_lookups:
            raise AssertionError(f"commit date of {branch_name} must not be fetched")
        self.lookups.append(branch_name)
        if branch_name in self.failing_lookups:
            raise BranchSourceError(f"Failed to get last commit date for branch {branch_name}")
        return self.branches[branch_name]

    def delete_branch(self, branch_name):
        self.deletions.append(branch_name)
        if branch_name in self.failing_deletes:
            return False
        del self.branches[branch_name]
        return True


class RecordingSink(ReportSink):
    def __init__(self):
        self.reports = []

    def emit(self, report):
        self.reports.append(report)


def days_before(days, hours=0):
    return NOW - timedelta(days=days, hours=hours)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def scenario_source():
    return FakeBranchSource(
        {
            "main": days_before(1),
            "feature/a": days_before(20),
            "release/1.0": days_before(5),
        }
    )
