#!/usr/bin/env python3
"""
Example script showing how to use the dependency-audit tool.
"""

from datetime import datetime, timezone
from pathlib import Path

from dependency_audit.auditor import DependencyAuditor
from dependency_audit.models import AuditConfig, RegistryMetadata, VulnerabilityRecord
from dependency_audit.reporting import generate_text_report
from dependency_audit.resolver import resolve
from dependency_audit.risk_engine import assess


def example_offline_assessment():
    """Example: Resolve and assess in memory, without network access."""
    print("="*60)
    print("Example 1: Offline Assessment")
    print("="*60)

    manifest = {
        "dependencies": {"left-pad": "^1.3.0", "lodash": "^4.17.0"},
        "devDependencies": {"mocha": "~10.0.0"},
    }
    lock_file = {
        "dependencies": {
            "lodash": {"version": "4.17.20"},
            "mocha": {
                "version": "10.0.0",
                "dev": True,
                "dependencies": {"minimatch": {"version": "5.0.1"}},
            },
        },
    }
    packages = resolve(manifest, lock_file, skip_dev=False)

    registry_index = {
        "left-pad": RegistryMetadata(
            name="left-pad",
            version="1.3.0",
            last_published=datetime(2018, 4, 9, tzinfo=timezone.utc),
            weekly_downloads=3_000_000,
        ),
        "lodash": RegistryMetadata(
            name="lodash",
            version="4.17.20",
            last_published=datetime(2020, 8, 13, tzinfo=timezone.utc),
            weekly_downloads=40_000_000,
        ),
        "mocha": RegistryMetadata(name="mocha", version="10.0.0", weekly_downloads=8_000_000),
    }
    vulnerability_index = {
        "lodash": VulnerabilityRecord(
            name="lodash", severity="high", title="Command Injection in lodash"
        ),
    }

    results = assess(packages, registry_index, vulnerability_index, AuditConfig())
    print(generate_text_report(results))


def example_project_audit(project_root: Path):
    """Example: Audit a project directory against the live npm registry."""
    print("\n" + "="*60)
    print("Example 2: Project Audit")
    print("="*60)

    config = AuditConfig(stale_months=18, min_downloads=500, skip_dev=True)
    auditor = DependencyAuditor(config, project_root=project_root)

    results = auditor.audit()
    print(generate_text_report(results))


if __name__ == "__main__":
    import sys

    print("Dependency Audit - Example Usage")
    print("="*60)

    example_offline_assessment()

    if len(sys.argv) > 1:
        print("\nNOTE: This example requires network access and the npm CLI.")
        example_project_audit(Path(sys.argv[1]))
