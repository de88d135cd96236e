"""Unit tests for policy loading and the installer hook."""

import json

import pytest

from pnpmshield.config import DEFAULT_ALLOW_PATTERNS, DEFAULT_DENY_PATTERNS
from pnpmshield.errors import ConfigurationError
from pnpmshield.models.policy import AuditLogEntry, PolicyList
from pnpmshield.policy.hook import ScriptPolicyHook
from pnpmshield.policy.loader import load_policy, load_policy_file, write_policy_file
from pnpmshield.storage.journal import Journal


class TestLoadPolicy:
    """Test cases for policy loading."""

    def test_load_file(self, tmp_path):
        path = tmp_path / "policy.json"
        path.write_text(json.dumps({"allow": ["esbuild"], "deny": ["colors"]}))

        policy = load_policy_file(path)

        assert policy == PolicyList(allow=("esbuild",), deny=("colors",))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_policy_file(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "policy.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            load_policy_file(path)

    def test_bad_entry(self, tmp_path):
        path = tmp_path / "policy.json"
        path.write_text(json.dumps({"allow": ["ok", ""]}))

        with pytest.raises(ConfigurationError):
            load_policy_file(path)

    def test_defaults_from_settings(self, settings):
        policy = load_policy(settings=settings)

        assert policy.allow == tuple(DEFAULT_ALLOW_PATTERNS)
        assert policy.deny == tuple(DEFAULT_DENY_PATTERNS)

    def test_settings_policy_file(self, settings, tmp_path):
        path = tmp_path / "policy.json"
        path.write_text(json.dumps({"deny": ["rc"]}))
        settings.policy_file = path

        assert load_policy(settings=settings) == PolicyList(deny=("rc",))

    def test_explicit_path_wins(self, settings, tmp_path):
        path = tmp_path / "explicit.json"
        path.write_text(json.dumps({"allow": ["sharp"]}))

        assert load_policy(path, settings=settings).allow == ("sharp",)

    def test_write_then_load(self, tmp_path):
        policy = PolicyList(allow=("@swc/*",), deny=("coa",))
        path = tmp_path / "out.json"

        write_policy_file(policy, path)

        assert load_policy_file(path) == policy


class TestScriptPolicyHook:
    """Test cases for the installer hook."""

    def test_read_package_logs_decisions(self, tmp_path):
        journal = Journal(tmp_path / "pnpmfile-actions.log")
        hook = ScriptPolicyHook(PolicyList(deny=("colors",)), journal)

        result = hook.read_package({"name": "left-pad", "scripts": {"postinstall": "x", "test": "y"}})

        assert result == {"name": "left-pad", "scripts": {"test": "y"}}
        entries = [AuditLogEntry.from_line(line) for line in journal.read_lines()]
        assert [(e.action, e.package_name, e.script) for e in entries] == [
            ('REMOVED_SCRIPT', "left-pad", "postinstall"),
        ]

    def test_clean_package_writes_nothing(self, tmp_path):
        journal = Journal(tmp_path / "pnpmfile-actions.log")
        hook = ScriptPolicyHook(PolicyList(), journal)

        hook.read_package({"name": "plain", "version": "1.0.0"})

        assert not journal.path.exists()

    def test_log_is_appended_across_packages(self, tmp_path):
        journal = Journal(tmp_path / "pnpmfile-actions.log")
        hook = ScriptPolicyHook(PolicyList(deny=("colors",)), journal)

        hook.read_package({"name": "colors"})
        hook.read_package({"name": "a", "scripts": {"install": "x"}})
        hook.after_all_resolved()

        actions = [AuditLogEntry.from_line(line).action for line in journal.read_lines()]
        assert actions == ['BLOCKED_PACKAGE', 'REMOVED_SCRIPT', 'COMPLETED']

    def test_timestamps_non_decreasing(self, tmp_path):
        journal = Journal(tmp_path / "pnpmfile-actions.log")
        hook = ScriptPolicyHook(PolicyList(), journal)

        for index in range(5):
            hook.read_package({"name": f"p{index}", "scripts": {"preinstall": "x", "install": "y"}})

        stamps = [AuditLogEntry.from_line(line).timestamp for line in journal.read_lines()]
        assert stamps == sorted(stamps)

    def test_malformed_manifest(self, tmp_path):
        hook = ScriptPolicyHook(PolicyList(), Journal(tmp_path / "log"))

        with pytest.raises(ConfigurationError):
            hook.read_package({"version": "1.0.0"})
