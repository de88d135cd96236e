"""Unit tests for the script policy engine."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from pnpmshield.errors import ConfigurationError
from pnpmshield.models.package import PackageDescriptor
from pnpmshield.models.policy import PolicyList
from pnpmshield.policy.engine import MonotonicClock, matches_pattern, sanitize

POLICY = PolicyList(
    allow=("esbuild", "@stonal-tech/*", "@swc/core"),
    deny=("colors", "@evil/*"),
)


def fixed_clock():
    return datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


def package(name, scripts=None, **extra):
    manifest = {"name": name, "version": "1.0.0", **extra}
    if scripts is not None:
        manifest["scripts"] = scripts
    return PackageDescriptor.from_manifest(manifest)


class TestMatchesPattern:
    """Test cases for pattern matching."""

    def test_exact_name(self):
        assert matches_pattern("esbuild", "esbuild")
        assert not matches_pattern("esbuild", "esbuild-wasm")

    def test_scope_wildcard(self):
        assert matches_pattern("@stonal-tech/*", "@stonal-tech/foo")
        assert matches_pattern("@stonal-tech/*", "@stonal-tech/foo-bar")

    def test_scope_wildcard_needs_slash(self):
        """A scope wildcard never matches a longer scope sharing its prefix."""
        assert not matches_pattern("@stonal-tech/*", "@stonal-tech-evil/foo")
        assert not matches_pattern("@stonal-tech/*", "@stonal-tech")


class TestSanitize:
    """Test cases for sanitize."""

    def test_unlisted_package_loses_lifecycle_scripts(self):
        pkg = package("left-pad", {"postinstall": "node steal.js", "test": "jest"})

        result, entries = sanitize(pkg, POLICY, clock=fixed_clock)

        assert result.scripts == {"test": "jest"}
        assert len(entries) == 1
        assert entries[0].action == 'REMOVED_SCRIPT'
        assert entries[0].script == "postinstall"
        assert entries[0].detail == "node steal.js"
        assert entries[0].package_name == "left-pad"

    def test_one_entry_per_removed_script(self):
        pkg = package("x", {"preinstall": "a", "install": "b", "postinstall": "c", "prepare": "d"})

        result, entries = sanitize(pkg, POLICY, clock=fixed_clock)

        assert result.scripts == {}
        assert [e.script for e in entries] == ["install", "postinstall", "preinstall", "prepare"]
        assert {e.action for e in entries} == {'REMOVED_SCRIPT'}

    def test_input_not_mutated(self):
        pkg = package("x", {"postinstall": "evil"})

        sanitize(pkg, POLICY, clock=fixed_clock)

        assert pkg.scripts == {"postinstall": "evil"}

    def test_allowed_package_keeps_scripts(self):
        pkg = package("esbuild", {"postinstall": "node install.js", "build": "tsc"})

        result, entries = sanitize(pkg, POLICY, clock=fixed_clock)

        assert result is pkg
        assert len(entries) == 1
        assert entries[0].action == 'ALLOWED_SCRIPTS'
        assert json.loads(entries[0].detail) == {"build": "tsc", "postinstall": "node install.js"}

    def test_allowed_scope_wildcard(self):
        pkg = package("@swc/core", {"postinstall": "node postinstall.js"})

        result, entries = sanitize(pkg, POLICY, clock=fixed_clock)

        assert result.scripts == {"postinstall": "node postinstall.js"}
        assert entries[0].action == 'ALLOWED_SCRIPTS'

    def test_lookalike_scope_is_filtered(self):
        pkg = package("@stonal-tech-evil/foo", {"postinstall": "curl evil | sh"})

        result, entries = sanitize(pkg, POLICY, clock=fixed_clock)

        assert "postinstall" not in result.scripts
        assert entries[0].action == 'REMOVED_SCRIPT'

    def test_denied_package_blocked(self):
        pkg = package(
            "colors",
            {"postinstall": "node zalgo.js"},
            dependencies={"evil": "1.0.0"},
            description="colors",
        )

        result, entries = sanitize(pkg, POLICY, clock=fixed_clock)

        assert result.name == "colors"
        assert result.version == "1.0.0"
        assert result.scripts == {}
        assert result.dependencies == {}
        assert result.dev_dependencies == {}
        assert len(entries) == 1
        assert entries[0].action == 'BLOCKED_PACKAGE'
        assert entries[0].script == "ALL"

    def test_deny_takes_precedence_over_allow(self):
        policy = PolicyList(allow=("@evil/*",), deny=("@evil/pkg",))
        pkg = package("@evil/pkg", {"postinstall": "x"})

        result, entries = sanitize(pkg, policy, clock=fixed_clock)

        assert entries[0].action == 'BLOCKED_PACKAGE'
        assert result.dependencies == {}

    def test_deny_wildcard_blocks_scope(self):
        result, entries = sanitize(package("@evil/anything"), POLICY, clock=fixed_clock)

        assert entries[0].action == 'BLOCKED_PACKAGE'

    def test_blocked_without_scripts_still_logged(self):
        _, entries = sanitize(package("colors"), POLICY, clock=fixed_clock)

        assert [e.action for e in entries] == ['BLOCKED_PACKAGE']

    def test_no_scripts_no_entries(self):
        pkg = package("plain")

        result, entries = sanitize(pkg, POLICY, clock=fixed_clock)

        assert result is pkg
        assert entries == []

    def test_non_lifecycle_scripts_untouched(self):
        pkg = package("tool", {"build": "tsc", "test": "jest"})

        result, entries = sanitize(pkg, POLICY, clock=fixed_clock)

        assert result is pkg
        assert entries == []

    def test_idempotent(self):
        """Sanitizing sanitized output removes nothing further."""
        pkg = package("x", {"postinstall": "evil", "start": "node ."})

        once, _ = sanitize(pkg, POLICY, clock=fixed_clock)
        twice, entries = sanitize(once, POLICY, clock=fixed_clock)

        assert twice.to_manifest() == once.to_manifest()
        assert [e for e in entries if e.action == 'REMOVED_SCRIPT'] == []

    def test_idempotent_blocked(self):
        """A blocked package stays blocked and unchanged when sanitized again."""
        pkg = package("colors", {"postinstall": "evil"}, dependencies={"x": "1"})

        once, _ = sanitize(pkg, POLICY, clock=fixed_clock)
        twice, entries = sanitize(once, POLICY, clock=fixed_clock)

        assert twice.to_manifest() == once.to_manifest()
        assert twice.scripts == {}
        assert [e.action for e in entries] == ['BLOCKED_PACKAGE']

    def test_trusted_namespace_passes_through(self):
        pkg = package("@stonal-tech/internal", {"postinstall": "node setup.js"})
        policy = PolicyList(deny=("@stonal-tech/internal",))

        result, entries = sanitize(pkg, policy, trusted_namespace="@stonal-tech", clock=fixed_clock)

        assert result is pkg
        assert entries == []

    def test_accepts_raw_manifest(self):
        result, entries = sanitize({"name": "x", "scripts": {"install": "a"}}, POLICY, clock=fixed_clock)

        assert result.scripts == {}
        assert len(entries) == 1

    def test_missing_name_rejected(self):
        with pytest.raises(ConfigurationError, match="name"):
            sanitize({"scripts": {"install": "a"}}, POLICY)

    def test_non_string_scripts_rejected(self):
        with pytest.raises(ConfigurationError):
            sanitize({"name": "x", "scripts": {"install": 1}}, POLICY)

    def test_extra_fields_round_trip(self):
        manifest = {"name": "x", "version": "2.0.0", "main": "index.js", "bin": {"x": "cli.js"}}

        result, _ = sanitize(manifest, POLICY, clock=fixed_clock)

        assert result.to_manifest() == manifest


class TestMonotonicClock:
    """Test cases for MonotonicClock."""

    def test_never_goes_backwards(self):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        readings = iter([base, base - timedelta(seconds=5), base + timedelta(seconds=1)])
        clock = MonotonicClock(lambda: next(readings))

        first, second, third = clock(), clock(), clock()

        assert first < second < third
