"""
Reporting and export utilities.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .models import (
    RISK_LOW_USAGE,
    RISK_SECURITY,
    RISK_STALE,
    RISK_TYPES,
    SEVERITY_HIGH,
    AuditResult,
    RiskFlag,
)
from .time_utils import ensure_utc, months_since, utc_now


logger = logging.getLogger(__name__)

_SECTION_TITLES = {
    RISK_SECURITY: "SECURITY VULNERABILITIES",
    RISK_STALE: "STALE PACKAGES",
    RISK_LOW_USAGE: "LOW USAGE PACKAGES",
}

RESULT_COLUMNS = [
    "name",
    "version",
    "is_direct",
    "is_dev",
    "last_published",
    "weekly_downloads",
    "risk_type",
    "risk_severity",
    "risk_reason",
]


def _group_by_type(results: Sequence[AuditResult]) -> Dict[str, List[AuditResult]]:
    groups: Dict[str, List[AuditResult]] = {risk_type: [] for risk_type in RISK_TYPES}
    for result in results:
        for risk_type in {risk.type for risk in result.risks}:
            groups.setdefault(risk_type, []).append(result)
    return groups


def _format_package(result: AuditResult, risk: Optional[RiskFlag], now: datetime) -> str:
    pkg = result.package
    meta = result.registry_metadata

    line = f"\n{pkg.name}@{pkg.version}"
    if pkg.is_direct:
        line += " (direct)"
    if pkg.is_dev:
        line += " [dev]"
    lines = [line]

    if risk is not None:
        lines.append(f"  Risk: {risk.type.upper()} - {risk.severity.upper()} severity")
        lines.append(f"  Reason: {risk.reason}")

    if meta is not None:
        if meta.last_published is not None:
            lines.append(f"  Last published: {round(months_since(meta.last_published, now))} months ago")
        if meta.weekly_downloads is not None:
            lines.append(f"  Weekly downloads: {meta.weekly_downloads:,}")
        if meta.description:
            suffix = "..." if len(meta.description) > 80 else ""
            lines.append(f"  Description: {meta.description[:80]}{suffix}")

    return "\n".join(lines) + "\n"


def generate_text_report(results: Sequence[AuditResult], now: Optional[datetime] = None) -> str:
    """Render a human-readable report grouped by risk type."""
    now = ensure_utc(now) if now is not None else utc_now()
    flagged = [result for result in results if result.has_risks]
    if not flagged:
        return "\nNo risks found! All dependencies look healthy.\n"

    groups = _group_by_type(flagged)
    output = "\nDependency Risk Report\n" + "=" * 60 + "\n\n"

    for risk_type in RISK_TYPES:
        if not groups[risk_type]:
            continue
        output += _SECTION_TITLES[risk_type] + "\n" + "-" * 60 + "\n"
        for result in groups[risk_type]:
            output += _format_package(result, result.risk_of_type(risk_type), now)
        output += "\n"

    output += "Summary\n" + "-" * 60 + "\n"
    output += f"Total packages audited: {len(results)}\n"
    output += f"Packages with risks: {len(flagged)}\n"
    output += f"  - Security: {len(groups[RISK_SECURITY])}\n"
    output += f"  - Stale: {len(groups[RISK_STALE])}\n"
    output += f"  - Low usage: {len(groups[RISK_LOW_USAGE])}\n"
    return output


def build_json_report(results: Sequence[AuditResult], now: Optional[datetime] = None) -> Dict:
    now = ensure_utc(now) if now is not None else utc_now()
    flagged = [result for result in results if result.has_risks]
    groups = _group_by_type(results)

    packages = []
    for result in flagged:
        meta = result.registry_metadata
        packages.append({
            "name": result.package.name,
            "version": result.package.version,
            "is_direct": result.package.is_direct,
            "is_dev": result.package.is_dev,
            "metadata": {
                "last_published": meta.last_published.isoformat() if meta.last_published else None,
                "weekly_downloads": meta.weekly_downloads,
                "description": meta.description,
            } if meta is not None else None,
            "risks": [
                {
                    "type": risk.type,
                    "severity": risk.severity,
                    "reason": risk.reason,
                    "vulnerability": (risk.metadata or {}).get("vulnerability"),
                }
                for risk in result.risks
            ],
        })

    return {
        "timestamp": now.isoformat(),
        "summary": {
            "total": len(results),
            "flagged": len(flagged),
            "by_type": {risk_type: len(groups[risk_type]) for risk_type in RISK_TYPES},
        },
        "packages": packages,
    }


def generate_json_report(results: Sequence[AuditResult], now: Optional[datetime] = None) -> str:
    return json.dumps(build_json_report(results, now), indent=2, default=str)


def has_high_severity_risks(results: Sequence[AuditResult]) -> bool:
    return any(risk.severity == SEVERITY_HIGH for result in results for risk in result.risks)


def results_to_dataframe(results: Sequence[AuditResult]) -> pd.DataFrame:
    """Flatten results into one row per risk flag; clean packages get one empty row."""
    rows = []
    for result in results:
        pkg = result.package
        meta = result.registry_metadata
        last_published = None
        if meta is not None and meta.last_published is not None:
            last_published = ensure_utc(meta.last_published).replace(tzinfo=None)
        base = {
            "name": pkg.name,
            "version": pkg.version,
            "is_direct": pkg.is_direct,
            "is_dev": pkg.is_dev,
            "last_published": last_published,
            "weekly_downloads": meta.weekly_downloads if meta is not None else None,
        }
        if not result.risks:
            rows.append({**base, "risk_type": None, "risk_severity": None, "risk_reason": None})
        for risk in result.risks:
            rows.append({
                **base,
                "risk_type": risk.type,
                "risk_severity": risk.severity,
                "risk_reason": risk.reason,
            })
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)


def export_results_csv(results: Sequence[AuditResult], output_dir: Path) -> Path:
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    csv_file = output_dir / "audit_results.csv"
    results_to_dataframe(results).to_csv(csv_file, index=False)
    logger.info("Results saved to %s", csv_file)
    return csv_file


def export_worksheets(results: Sequence[AuditResult], output_dir: Path) -> Path:
    """Write an Excel workbook with an `all` sheet and one sheet per risk type."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    excel_file = output_dir / "audit_results.xlsx"
    df = results_to_dataframe(results)
    with pd.ExcelWriter(excel_file, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name="all", index=False)
        for risk_type in RISK_TYPES:
            subset = df[df["risk_type"] == risk_type]
            if len(subset) > 0:
                subset.to_excel(writer, sheet_name=risk_type[:31], index=False)
    logger.info("Worksheets saved to %s", excel_file)
    return excel_file
