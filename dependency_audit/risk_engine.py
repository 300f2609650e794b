"""
Risk assessment for resolved packages.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Mapping, Optional

from .models import (
    RISK_LOW_USAGE,
    RISK_SECURITY,
    RISK_STALE,
    SEVERITY_HIGH,
    SEVERITY_LOW,
    SEVERITY_MEDIUM,
    AuditConfig,
    AuditResult,
    PackageRecord,
    RegistryMetadata,
    RiskFlag,
    VulnerabilityRecord,
)
from .time_utils import ensure_utc, months_since, utc_now


_ADVISORY_SEVERITY = {
    "critical": SEVERITY_HIGH,
    "high": SEVERITY_HIGH,
    "moderate": SEVERITY_MEDIUM,
    "medium": SEVERITY_MEDIUM,
    "low": SEVERITY_LOW,
    "info": SEVERITY_LOW,
}


def map_advisory_severity(severity: Optional[str]) -> str:
    """Map an advisory severity onto a risk severity; unknown values are medium."""
    return _ADVISORY_SEVERITY.get((severity or "").strip().lower(), SEVERITY_MEDIUM)


def staleness_severity(months: float) -> str:
    if months > 24:
        return SEVERITY_HIGH
    if months > 18:
        return SEVERITY_MEDIUM
    return SEVERITY_LOW


def download_severity(weekly_downloads: int) -> str:
    if weekly_downloads < 100:
        return SEVERITY_HIGH
    if weekly_downloads < 500:
        return SEVERITY_MEDIUM
    return SEVERITY_LOW


class RiskEngine:
    """Evaluate packages against the configured thresholds."""

    def __init__(self, config: AuditConfig, now: Optional[datetime] = None) -> None:
        """Initialize the engine.

        Args:
            config: Audit thresholds
            now: Reference instant for staleness; defaults to the current UTC time
        """
        self.config = config
        self.now = ensure_utc(now) if now is not None else utc_now()

    def assess(
        self,
        packages: Iterable[PackageRecord],
        registry_index: Mapping[str, RegistryMetadata],
        vulnerability_index: Mapping[str, VulnerabilityRecord],
    ) -> List[AuditResult]:
        """Produce one result per package, in input order."""
        results = []
        for package in packages:
            metadata = registry_index.get(package.name)
            risks = self.assess_package(
                package, metadata, vulnerability_index.get(package.name)
            )
            results.append(AuditResult(package=package, registry_metadata=metadata, risks=risks))
        return results

    def assess_package(
        self,
        package: PackageRecord,
        metadata: Optional[RegistryMetadata],
        vulnerability: Optional[VulnerabilityRecord],
    ) -> List[RiskFlag]:
        if metadata is None:
            return [RiskFlag(
                type=RISK_LOW_USAGE,
                severity=SEVERITY_MEDIUM,
                reason="Package not found in npm registry",
            )]

        risks = []
        for flag in (
            self._check_staleness(metadata),
            self._check_adoption(metadata),
            self._check_vulnerability(package, vulnerability),
        ):
            if flag is not None:
                risks.append(flag)
        return risks

    def _check_staleness(self, metadata: RegistryMetadata) -> Optional[RiskFlag]:
        if metadata.last_published is None:
            return None
        months = months_since(metadata.last_published, self.now)
        if months <= self.config.stale_months:
            return None
        return RiskFlag(
            type=RISK_STALE,
            severity=staleness_severity(months),
            reason=(
                f"Last published {months:.1f} months ago "
                f"(threshold: {self.config.stale_months} months)"
            ),
            metadata={
                "last_published": metadata.last_published,
                "months_since_publish": round(months, 1),
            },
        )

    def _check_adoption(self, metadata: RegistryMetadata) -> Optional[RiskFlag]:
        downloads = metadata.weekly_downloads
        if downloads is None:
            return RiskFlag(
                type=RISK_LOW_USAGE,
                severity=SEVERITY_LOW,
                reason="Download statistics unavailable - package may have very low usage",
            )
        if downloads >= self.config.min_downloads:
            return None
        return RiskFlag(
            type=RISK_LOW_USAGE,
            severity=download_severity(downloads),
            reason=f"Low weekly downloads: {downloads} (threshold: {self.config.min_downloads})",
            metadata={"weekly_downloads": downloads},
        )

    def _check_vulnerability(
        self, package: PackageRecord, vulnerability: Optional[VulnerabilityRecord]
    ) -> Optional[RiskFlag]:
        if vulnerability is None:
            return None
        return RiskFlag(
            type=RISK_SECURITY,
            severity=map_advisory_severity(vulnerability.severity),
            reason=f"Security vulnerability: {vulnerability.title or 'Unknown vulnerability'}",
            metadata={
                "vulnerability": {
                    "id": vulnerability.advisory_id or package.name,
                    "title": vulnerability.title or "Unknown",
                    "severity": vulnerability.severity,
                },
            },
        )


def assess(
    packages: Iterable[PackageRecord],
    registry_index: Mapping[str, RegistryMetadata],
    vulnerability_index: Mapping[str, VulnerabilityRecord],
    config: AuditConfig,
    now: Optional[datetime] = None,
) -> List[AuditResult]:
    """Assess packages with a one-off engine."""
    return RiskEngine(config, now=now).assess(packages, registry_index, vulnerability_index)
