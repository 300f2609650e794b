"""
Vulnerability data from `npm audit`.
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .interfaces import VulnerabilitySource
from .models import VulnerabilityRecord


logger = logging.getLogger(__name__)


def parse_audit_report(report: Mapping[str, Any]) -> Dict[str, VulnerabilityRecord]:
    """Convert `npm audit --json` output into records keyed by package name.

    Entries in an advisory's `via` list are either advisory objects or plain
    package names pointing at another vulnerable package; the first advisory
    object supplies the title and id.
    """
    vulnerabilities = report.get("vulnerabilities") if isinstance(report, Mapping) else None
    if not isinstance(vulnerabilities, Mapping):
        return {}

    records: Dict[str, VulnerabilityRecord] = {}
    for key, entry in vulnerabilities.items():
        if not isinstance(entry, Mapping):
            continue
        name = entry.get("name") or _strip_version(key)
        advisory = _first_advisory(entry.get("via"))
        records[name] = VulnerabilityRecord(
            name=name,
            severity=str(entry.get("severity") or ""),
            title=str(advisory.get("title") or ""),
            advisory_id=_advisory_id(advisory),
        )
    return records


def _strip_version(key: str) -> str:
    # Scoped names start with "@", so look for a version separator after it.
    at = key.find("@", 1)
    return key if at == -1 else key[:at]


def _first_advisory(via: Any) -> Mapping[str, Any]:
    if isinstance(via, list):
        for item in via:
            if isinstance(item, Mapping):
                return item
    return {}


def _advisory_id(advisory: Mapping[str, Any]) -> Optional[str]:
    for key in ("url", "source", "name"):
        value = advisory.get(key)
        if value:
            return str(value)
    return None


class NpmAuditService(VulnerabilitySource):
    """Run `npm audit` in a project directory."""

    def __init__(self, project_root: Path, timeout: float = 120) -> None:
        self.project_root = Path(project_root)
        self.timeout = timeout

    def get_vulnerabilities(self) -> Dict[str, VulnerabilityRecord]:
        """Return known vulnerabilities, or an empty map if npm audit is unavailable."""
        cmd = ["npm", "audit", "--json"]
        try:
            # npm audit exits non-zero when it finds vulnerabilities.
            result = subprocess.run(
                cmd,
                cwd=self.project_root,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (subprocess.TimeoutExpired, FileNotFoundError) as e:
            logger.warning("npm audit failed: %s", e)
            return {}

        output = result.stdout.strip()
        if not output:
            logger.warning("npm audit produced no output (exit code %s)", result.returncode)
            return {}
        try:
            report = json.loads(output)
        except json.JSONDecodeError as e:
            logger.warning("Could not parse npm audit output: %s", e)
            return {}

        records = parse_audit_report(report)
        logger.info("npm audit reported %d vulnerable packages", len(records))
        return records
