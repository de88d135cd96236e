"""Unit tests for signal collection."""

import json

import pytest

from conftest import FakeRunner, write_package
from pnpmshield.adapters.pnpm import VulnerabilityScanner
from pnpmshield.audit.collector import (
    SignalCollector,
    detect_package_manager,
    find_lifecycle_scripts,
    find_risk_packages,
)
from pnpmshield.errors import ClassificationInputMissing, CollaboratorFailure


class TestHelpers:
    """Test cases for manifest inspection helpers."""

    def test_lifecycle_scripts(self):
        manifest = {"scripts": {
            "preinstall": "a", "install": "b", "postinstall": "c",
            "prepare": "d", "build": "e", "reinstall-deps": "f",
        }}

        assert find_lifecycle_scripts(manifest) == [
            "preinstall: a", "install: b", "postinstall: c", "prepare: d",
        ]

    def test_lifecycle_scripts_missing(self):
        assert find_lifecycle_scripts({}) == []
        assert find_lifecycle_scripts({"scripts": "oops"}) == []

    def test_risk_packages(self):
        manifest = {"dependencies": {"chalk": "^4"}, "devDependencies": {"colors": "1.4.0", "jest": "29"}}

        assert find_risk_packages(manifest, ["qix", "colors", "chalk"]) == ["colors", "chalk"]

    @pytest.mark.parametrize(
        "files, manager",
        [
            (["pnpm-lock.yaml", "package-lock.json"], 'pnpm'),
            (["package-lock.json", "yarn.lock"], 'npm'),
            (["yarn.lock"], 'yarn'),
            ([], 'unknown'),
        ],
    )
    def test_detect_package_manager(self, tmp_path, files, manager):
        for name in files:
            (tmp_path / name).write_text("")

        assert detect_package_manager(tmp_path) == manager


class TestVulnerabilityScanner:
    """Test cases for vulnerability counting."""

    def test_npm_counts_vulnerabilities(self, tmp_path, settings):
        (tmp_path / "package-lock.json").write_text("{}")
        runner = FakeRunner()
        runner.script(["npm", "audit"], returncode=1, stdout=json.dumps({"vulnerabilities": {"a": {}, "b": {}}}))

        assert VulnerabilityScanner(runner, settings).count(tmp_path, 'npm') == 2

    def test_npm_without_lock_file(self, tmp_path, settings, runner):
        assert VulnerabilityScanner(runner, settings).count(tmp_path, 'npm') == 0
        assert runner.calls == []

    def test_pnpm_counts_advisories(self, tmp_path, settings):
        runner = FakeRunner()
        runner.script(["pnpm", "audit"], stdout=json.dumps({"advisories": {"1": {}, "2": {}, "3": {}}}))

        assert VulnerabilityScanner(runner, settings).count(tmp_path, 'pnpm') == 3

    def test_yarn_exit_status(self, tmp_path, settings):
        runner = FakeRunner()
        runner.script(["yarn", "audit"], returncode=4)

        assert VulnerabilityScanner(runner, settings).count(tmp_path, 'yarn') == 1

    def test_unknown_manager(self, tmp_path, settings, runner):
        assert VulnerabilityScanner(runner, settings).count(tmp_path, 'unknown') == 0

    def test_unreadable_output(self, tmp_path, settings):
        (tmp_path / "package-lock.json").write_text("{}")
        runner = FakeRunner()
        runner.script(["npm", "audit"], stdout="npm ERR! something")

        with pytest.raises(CollaboratorFailure, match="unreadable"):
            VulnerabilityScanner(runner, settings).count(tmp_path, 'npm')


class TestSignalCollector:
    """Test cases for SignalCollector."""

    def test_collect(self, settings):
        repo = settings.repository_path("api")
        write_package(repo, {
            "name": "api",
            "scripts": {"postinstall": "node x.js"},
            "dependencies": {"lodash": "4.17.21"},
        })
        (repo / "package-lock.json").write_text("{}")
        runner = FakeRunner()
        runner.script(["npm", "audit"], stdout=json.dumps({"vulnerabilities": {"x": {}}}))

        signals = SignalCollector(VulnerabilityScanner(runner, settings), settings).collect("api")

        assert signals.has_lifecycle_scripts
        assert signals.has_risk_package
        assert signals.vulnerability_count == 1
        assert signals.package_manager == 'npm'
        assert signals.lifecycle_scripts == ("postinstall: node x.js",)
        assert signals.risk_packages == ("lodash",)

    def test_missing_manifest(self, settings, runner):
        settings.repository_path("empty").mkdir(parents=True)
        collector = SignalCollector(VulnerabilityScanner(runner, settings), settings)

        with pytest.raises(ClassificationInputMissing) as excinfo:
            collector.collect("empty")

        assert excinfo.value.repository == "empty"
        assert "no package.json" in excinfo.value.reason

    def test_scanner_failure(self, settings):
        repo = settings.repository_path("api")
        write_package(repo, {"name": "api"})
        (repo / "pnpm-lock.yaml").write_text("")
        runner = FakeRunner()
        runner.script(["pnpm", "audit"], stdout="")

        collector = SignalCollector(VulnerabilityScanner(runner, settings), settings)

        with pytest.raises(ClassificationInputMissing, match="vulnerability scan failed"):
            collector.collect("api")
