"""Unit tests for devbox_docker.utils.envdiff module."""

from __future__ import annotations

import pytest

from devbox_docker.config import DEFAULT_ENV_DENYLIST
from devbox_docker.utils.envdiff import (
    EnvironmentSnapshot,
    diff_snapshots,
    filter_denied,
    path_additions,
    reconcile_snapshots,
)


class TestEnvironmentSnapshot:
    """Tests for EnvironmentSnapshot."""

    def test_parse_nul_separated(self):
        """Test parsing env -0 output, including values with newlines."""
        snap = EnvironmentSnapshot.parse("A=1\0B=two\nlines\0C=\0")
        assert dict(snap) == {"A": "1", "B": "two\nlines", "C": ""}

    def test_parse_newline_separated(self):
        """Test parsing plain env output."""
        snap = EnvironmentSnapshot.parse("A=1\nB=x=y\n")
        assert dict(snap) == {"A": "1", "B": "x=y"}

    def test_parse_newline_continuation(self):
        """Test that a line without NAME= continues the previous value."""
        snap = EnvironmentSnapshot.parse("MSG=hello\nworld\nNEXT=1")
        assert snap["MSG"] == "hello\nworld"
        assert snap["NEXT"] == "1"

    def test_parse_skips_invalid_entries(self):
        """Test that entries without a valid name are ignored."""
        snap = EnvironmentSnapshot.parse("noise\0=x\0OK=1\0")
        assert dict(snap) == {"OK": "1"}

    def test_parse_empty(self):
        """Test that empty output gives an empty snapshot."""
        assert len(EnvironmentSnapshot.parse("")) == 0

    def test_is_immutable(self):
        """Test that snapshots cannot be modified."""
        snap = EnvironmentSnapshot.from_mapping({"A": "1"})
        with pytest.raises(TypeError):
            snap["A"] = "2"  # type: ignore[index]

    def test_copies_source_mapping(self):
        """Test that later changes to the source do not leak in."""
        source = {"A": "1"}
        snap = EnvironmentSnapshot.from_mapping(source)
        source["A"] = "2"
        assert snap["A"] == "1"


class TestDiffSnapshots:
    """Tests for diff_snapshots function."""

    def test_new_and_changed_variables(self):
        """Test that new and changed variables are reported in after order."""
        before = {"A": "1", "B": "2"}
        after = {"C": "3", "A": "1", "B": "changed"}
        assert diff_snapshots(before, after) == [("C", "3"), ("B", "changed")]

    def test_removed_variables_ignored(self):
        """Test that variables only present before are not reported."""
        assert diff_snapshots({"GONE": "1"}, {}) == []

    def test_path_excluded(self):
        """Test that PATH is never part of the diff."""
        assert diff_snapshots({"PATH": "/bin"}, {"PATH": "/x:/bin"}) == []


class TestFilterDenied:
    """Tests for filter_denied function."""

    def test_full_match_only(self):
        """Test that patterns must match the whole name."""
        pairs = [("SHLVL", "2"), ("MY_SHLVL", "1")]
        assert filter_denied(pairs, ["SHLVL"]) == [("MY_SHLVL", "1")]

    def test_default_denylist(self):
        """Test that devbox bookkeeping and hash markers are dropped."""
        pairs = [
            ("DEVBOX_PROJECT_ROOT", "/p"),
            ("__DEVBOX_SHELLENV_HASH_abc123", "x"),
            ("__ETC_PROFILE_NIX_SOURCED", "1"),
            ("NIX_HASH", "y"),
            ("_", "/usr/bin/env"),
            ("GREETING", "hi"),
        ]
        assert filter_denied(pairs, DEFAULT_ENV_DENYLIST) == [("GREETING", "hi")]

    def test_invalid_pattern(self):
        """Test that an invalid regex raises ValueError."""
        with pytest.raises(ValueError, match="Invalid denylist pattern"):
            filter_denied([("A", "1")], ["("])


class TestPathAdditions:
    """Tests for path_additions function."""

    def test_prepended_directory(self):
        """Test a single prepended directory."""
        before = {"PATH": "/usr/bin:/bin"}
        after = {"PATH": "/opt/x:/usr/bin:/bin"}
        assert path_additions(before, after) == ["/opt/x"]

    def test_keeps_after_order_and_dedups(self):
        """Test ordering and de-duplication of added components."""
        before = {"PATH": "/bin"}
        after = {"PATH": "/b:/bin:/a:/b::/a"}
        assert path_additions(before, after) == ["/b", "/a"]

    def test_missing_path(self):
        """Test snapshots without PATH."""
        assert path_additions({}, {"PATH": "/x"}) == ["/x"]
        assert path_additions({"PATH": "/x"}, {}) == []


class TestReconcileSnapshots:
    """Tests for reconcile_snapshots function."""

    def test_greeting_scenario(self):
        """Test exported variable plus PATH prefix."""
        before = {"HOME": "/root", "PATH": "/usr/bin:/bin", "SHLVL": "1"}
        after = {
            "HOME": "/root",
            "PATH": "/opt/x:/usr/bin:/bin",
            "SHLVL": "2",
            "GREETING": "hi",
        }
        result = reconcile_snapshots(before, after, DEFAULT_ENV_DENYLIST)
        assert result == ["GREETING=hi", "PATH_ADDITIONS=/opt/x"]

    def test_no_changes(self):
        """Test identical snapshots."""
        env = {"A": "1", "PATH": "/bin"}
        assert reconcile_snapshots(env, env) == []

    def test_no_path_additions_entry_when_path_unchanged(self):
        """Test that PATH_ADDITIONS only appears when PATH grew."""
        result = reconcile_snapshots({"PATH": "/bin"}, {"PATH": "/bin", "FOO": "bar"})
        assert result == ["FOO=bar"]

    def test_lines_trimmed_and_names_deduplicated(self):
        """Test line trimming and first-wins de-duplication."""
        after = {"FOO ": "one ", "FOO": "two"}
        assert reconcile_snapshots({}, after) == ["FOO=one"]

    def test_leading_whitespace_in_value_kept(self):
        """Test that only the assignment line is trimmed, not the value."""
        result = reconcile_snapshots({"PATH": "/bin"}, {"PATH": "/bin", "INDENT": "  x"})
        assert result == ["INDENT=  x"]

    def test_hook_defined_path_additions_replaced(self):
        """Test that only the derived PATH_ADDITIONS entry is emitted."""
        before = {"PATH": "/bin"}
        after = {"PATH_ADDITIONS": "/bogus", "PATH": "/new:/bin"}
        assert reconcile_snapshots(before, after) == ["PATH_ADDITIONS=/new"]
