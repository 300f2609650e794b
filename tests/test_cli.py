import json
from pathlib import Path

import pytest

from dependency_audit import cli
from dependency_audit.auditor import DependencyAuditor
from dependency_audit.models import AuditConfig, RegistryMetadata, VulnerabilityRecord
from dependency_audit.time_utils import months_ago


class FakeRegistry:
    def __init__(self, index):
        self.index = index
        self.requested = []

    def fetch_package_metadata(self, package_name, version=None):
        return self.index.get(package_name)

    def fetch_multiple_packages(self, packages):
        self.requested = list(packages)
        return {name: self.index[name] for name, _ in self.requested if name in self.index}


class FakeVulnerabilities:
    def __init__(self, records):
        self.records = records

    def get_vulnerabilities(self):
        return self.records


def _project(tmp_path: Path) -> Path:
    (tmp_path / "package.json").write_text(json.dumps({
        "dependencies": {"a": "^1.0.0", "y": "2.0.0"},
        "devDependencies": {"b": "3.0.0"},
    }), encoding="utf-8")
    return tmp_path


def _sources(severity="moderate"):
    registry = FakeRegistry({
        "a": RegistryMetadata(name="a", version="1.0.0",
                              last_published=months_ago(1),
                              weekly_downloads=50000),
        "y": RegistryMetadata(name="y", version="2.0.0",
                              last_published=months_ago(1),
                              weekly_downloads=50000),
    })
    vulns = FakeVulnerabilities({"y": VulnerabilityRecord(name="y", severity=severity, title="Bad")})
    return registry, vulns


def test_auditor_end_to_end(tmp_path: Path):
    registry, vulns = _sources()
    auditor = DependencyAuditor(
        AuditConfig(),
        project_root=_project(tmp_path),
        metadata_source=registry,
        vulnerability_source=vulns,
    )

    results = auditor.audit()

    assert registry.requested == [("a", "1.0.0"), ("y", "2.0.0"), ("b", "3.0.0")]
    assert [result.package.name for result in results] == ["a", "y", "b"]
    assert results[0].risks == []
    assert [(r.type, r.severity) for r in results[1].risks] == [("security", "medium")]
    assert [(r.type, r.severity) for r in results[2].risks] == [("low-usage", "medium")]


def _patch_auditor(monkeypatch, severity="moderate"):
    registry, vulns = _sources(severity)
    original_init = DependencyAuditor.__init__

    def fake_init(self, config, project_root=Path("."), metadata_source=None, vulnerability_source=None):
        original_init(self, config, project_root, registry, vulns)

    monkeypatch.setattr(DependencyAuditor, "__init__", fake_init)


def test_cli_json_output(monkeypatch, tmp_path: Path, capsys):
    _patch_auditor(monkeypatch)

    code = cli.main(["--project-root", str(_project(tmp_path)), "--output", "json", "--skip-dev"])

    assert code == 0
    report = json.loads(capsys.readouterr().out)
    assert report["summary"]["total"] == 2
    assert report["summary"]["flagged"] == 1


def test_cli_fail_on_risk(monkeypatch, tmp_path: Path):
    _patch_auditor(monkeypatch)

    code = cli.main(["--project-root", str(_project(tmp_path)), "--fail-on-risk"])

    assert code == 1


def test_cli_fail_on_high_ignores_medium_risks(monkeypatch, tmp_path: Path):
    _patch_auditor(monkeypatch, severity="moderate")

    code = cli.main(["--project-root", str(_project(tmp_path)), "--fail-on-high"])

    assert code == 0


def test_cli_fail_on_high(monkeypatch, tmp_path: Path):
    _patch_auditor(monkeypatch, severity="critical")

    code = cli.main(["--project-root", str(_project(tmp_path)), "--fail-on-high"])

    assert code == 1


def test_cli_exports(monkeypatch, tmp_path: Path):
    _patch_auditor(monkeypatch)
    export_dir = tmp_path / "exports"

    code = cli.main(["--project-root", str(_project(tmp_path)), "--export-dir", str(export_dir)])

    assert code == 0
    assert (export_dir / "audit_results.csv").exists()
    assert (export_dir / "audit_results.xlsx").exists()


def test_cli_missing_manifest(monkeypatch, tmp_path: Path, capsys):
    _patch_auditor(monkeypatch)

    code = cli.main(["--project-root", str(tmp_path)])

    assert code == 1
    assert "package.json" in capsys.readouterr().err


@pytest.mark.parametrize("args", [
    ["--stale-months", "-1"],
    ["--min-downloads", "lots"],
    ["--output", "xml"],
])
def test_cli_rejects_bad_arguments(args):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(args)

    assert excinfo.value.code == 2
