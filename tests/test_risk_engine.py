"""Tests for risk assessment."""

from datetime import datetime, timezone

import pytest

from dependency_audit.models import (
    AuditConfig,
    PackageRecord,
    RegistryMetadata,
    VulnerabilityRecord,
)
from dependency_audit.risk_engine import RiskEngine, assess, map_advisory_severity
from dependency_audit.time_utils import months_ago


NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)
CONFIG = AuditConfig(stale_months=12, min_downloads=1000)


def _package(name="pkg"):
    return PackageRecord(name=name, version="1.0.0", is_direct=True, is_dev=False)


def _metadata(name="pkg", months=1.0, downloads=50000):
    return RegistryMetadata(
        name=name,
        version="1.0.0",
        last_published=months_ago(months, NOW) if months is not None else None,
        weekly_downloads=downloads,
    )


def _risks(metadata, vulnerability=None, config=CONFIG):
    engine = RiskEngine(config, now=NOW)
    return engine.assess_package(_package(), metadata, vulnerability)


def test_healthy_package_has_no_risks():
    results = assess([_package()], {"pkg": _metadata()}, {}, CONFIG, now=NOW)

    assert len(results) == 1
    assert results[0].risks == []
    assert results[0].has_risks is False
    assert results[0].highest_severity is None


def test_unknown_package_short_circuits():
    vuln = VulnerabilityRecord(name="pkg", severity="critical", title="RCE")

    risks = _risks(None, vuln)

    assert len(risks) == 1
    assert risks[0].type == "low-usage"
    assert risks[0].severity == "medium"
    assert "not found" in risks[0].reason


def test_stale_package_scenario():
    risks = _risks(_metadata(months=48, downloads=5000))

    assert len(risks) == 1
    assert risks[0].type == "stale"
    assert risks[0].severity == "high"
    assert risks[0].reason == "Last published 48.0 months ago (threshold: 12 months)"
    assert risks[0].metadata["months_since_publish"] == 48.0


@pytest.mark.parametrize("months,flagged", [(12.01, True), (11.99, False)])
def test_staleness_boundary_is_strict(months, flagged):
    risks = _risks(_metadata(months=months))

    assert any(risk.type == "stale" for risk in risks) is flagged


@pytest.mark.parametrize("months,severity", [
    (13, "low"),
    (17.9, "low"),
    (18.5, "medium"),
    (23.9, "medium"),
    (24.5, "high"),
])
def test_staleness_severity(months, severity):
    risks = _risks(_metadata(months=months))

    assert [risk.severity for risk in risks if risk.type == "stale"] == [severity]


def test_future_publish_date_is_not_stale():
    risks = _risks(_metadata(months=-30))

    assert risks == []


def test_missing_publish_date_skips_staleness():
    risks = _risks(_metadata(months=None))

    assert risks == []


@pytest.mark.parametrize("downloads,severity", [
    (0, "high"),
    (99, "high"),
    (100, "medium"),
    (499, "medium"),
    (500, "low"),
    (999, "low"),
])
def test_low_download_severity(downloads, severity):
    risks = _risks(_metadata(downloads=downloads))

    assert len(risks) == 1
    assert risks[0].type == "low-usage"
    assert risks[0].severity == severity
    assert risks[0].reason == f"Low weekly downloads: {downloads} (threshold: 1000)"
    assert risks[0].metadata == {"weekly_downloads": downloads}


def test_downloads_at_threshold_are_not_flagged():
    assert _risks(_metadata(downloads=1000)) == []


def test_missing_download_count_is_low_severity():
    risks = _risks(_metadata(downloads=None))

    assert len(risks) == 1
    assert risks[0].type == "low-usage"
    assert risks[0].severity == "low"
    assert "Download statistics unavailable" in risks[0].reason


def test_moderate_vulnerability_is_medium():
    vuln = VulnerabilityRecord(name="pkg", severity="moderate", title="Prototype pollution")

    risks = _risks(_metadata(), vuln)

    assert len(risks) == 1
    assert risks[0].type == "security"
    assert risks[0].severity == "medium"
    assert risks[0].reason == "Security vulnerability: Prototype pollution"
    assert risks[0].metadata["vulnerability"]["title"] == "Prototype pollution"


def test_vulnerability_without_title():
    vuln = VulnerabilityRecord(name="pkg", severity="HIGH", title="")

    risks = _risks(_metadata(), vuln)

    assert risks[0].severity == "high"
    assert risks[0].reason == "Security vulnerability: Unknown vulnerability"
    assert risks[0].metadata["vulnerability"] == {"id": "pkg", "title": "Unknown", "severity": "HIGH"}


@pytest.mark.parametrize("advisory,expected", [
    ("critical", "high"),
    ("High", "high"),
    ("moderate", "medium"),
    ("MEDIUM", "medium"),
    ("low", "low"),
    ("info", "low"),
    ("catastrophic", "medium"),
    ("", "medium"),
    (None, "medium"),
])
def test_map_advisory_severity(advisory, expected):
    assert map_advisory_severity(advisory) == expected


def test_flags_follow_axis_order():
    vuln = VulnerabilityRecord(name="pkg", severity="low", title="ReDoS")

    risks = _risks(_metadata(months=30, downloads=10), vuln)

    assert [risk.type for risk in risks] == ["stale", "low-usage", "security"]
    assert [risk.severity for risk in risks] == ["high", "high", "low"]


def test_one_result_per_package_in_order():
    packages = [_package("b"), _package("a"), _package("c")]
    registry = {"a": _metadata("a"), "b": _metadata("b", downloads=10)}

    results = assess(packages, registry, {}, CONFIG, now=NOW)

    assert [result.package.name for result in results] == ["b", "a", "c"]
    assert results[0].highest_severity == "high"
    assert results[1].risks == []
    assert results[2].registry_metadata is None
    assert results[2].risk_of_type("low-usage").severity == "medium"
