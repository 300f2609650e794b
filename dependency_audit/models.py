"""
Core data models for dependency auditing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


RISK_STALE = "stale"
RISK_LOW_USAGE = "low-usage"
RISK_SECURITY = "security"
RISK_TYPES = (RISK_SECURITY, RISK_STALE, RISK_LOW_USAGE)

SEVERITY_LOW = "low"
SEVERITY_MEDIUM = "medium"
SEVERITY_HIGH = "high"
SEVERITY_RANK = {SEVERITY_LOW: 1, SEVERITY_MEDIUM: 2, SEVERITY_HIGH: 3}


@dataclass(frozen=True)
class PackageRecord:
    """A resolved package with its provenance."""

    name: str
    version: str
    is_direct: bool
    is_dev: bool


@dataclass(frozen=True)
class RegistryMetadata:
    """Registry facts about a package version."""

    name: str
    version: Optional[str] = None
    last_published: Optional[datetime] = None
    weekly_downloads: Optional[int] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class VulnerabilityRecord:
    """Known advisory for a package, as reported by the vulnerability feed."""

    name: str
    severity: str
    title: str = ""
    advisory_id: Optional[str] = None


@dataclass(frozen=True)
class RiskFlag:
    """A typed, severity-ranked finding attached to one package."""

    type: str
    severity: str
    reason: str
    metadata: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class AuditConfig:
    """Thresholds and switches for an audit run."""

    stale_months: float = 12
    min_downloads: int = 1000
    skip_dev: bool = False
    output_format: str = "text"
    fail_on_risk: bool = False


@dataclass(frozen=True)
class AuditResult:
    """One resolved package with its metadata and risk flags."""

    package: PackageRecord
    registry_metadata: Optional[RegistryMetadata]
    risks: List[RiskFlag] = field(default_factory=list)

    @property
    def has_risks(self) -> bool:
        return bool(self.risks)

    @property
    def highest_severity(self) -> Optional[str]:
        if not self.risks:
            return None
        return max((risk.severity for risk in self.risks), key=SEVERITY_RANK.__getitem__)

    def risk_of_type(self, risk_type: str) -> Optional[RiskFlag]:
        for risk in self.risks:
            if risk.type == risk_type:
                return risk
        return None
