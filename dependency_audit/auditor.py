"""
End-to-end audit of a project directory.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .interfaces import MetadataSource, VulnerabilitySource
from .models import AuditConfig, AuditResult
from .npm_audit import NpmAuditService
from .project_files import load_packages
from .registry import NpmRegistryClient, RegistryCache
from .risk_engine import RiskEngine


logger = logging.getLogger(__name__)


class DependencyAuditor:
    """Resolve, enrich and assess the dependencies of one project."""

    def __init__(
        self,
        config: AuditConfig,
        project_root: Path = Path("."),
        metadata_source: Optional[MetadataSource] = None,
        vulnerability_source: Optional[VulnerabilitySource] = None,
    ):
        """Initialize the auditor.

        Args:
            config: Audit thresholds and switches
            project_root: Directory holding package.json
            metadata_source: Registry client; a fresh npm client per run by default
            vulnerability_source: Vulnerability feed; `npm audit` in project_root by default
        """
        self.config = config
        self.project_root = Path(project_root)
        self.metadata_source = metadata_source or NpmRegistryClient(cache=RegistryCache())
        self.vulnerability_source = vulnerability_source or NpmAuditService(self.project_root)

    def audit(self, now: Optional[datetime] = None) -> List[AuditResult]:
        logger.info("Parsing dependencies in %s", self.project_root)
        packages = load_packages(self.project_root, skip_dev=self.config.skip_dev)
        logger.info("Found %d packages to audit", len(packages))

        registry_index = self.metadata_source.fetch_multiple_packages(
            [(pkg.name, pkg.version) for pkg in packages]
        )
        logger.info("Fetched metadata for %d packages", len(registry_index))

        vulnerability_index = self.vulnerability_source.get_vulnerabilities()

        engine = RiskEngine(self.config, now=now)
        return engine.assess(packages, registry_index, vulnerability_index)
