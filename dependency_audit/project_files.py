"""
Read project manifest and lock files from disk.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import PackageRecord
from .resolver import ManifestError, resolve


logger = logging.getLogger(__name__)

MANIFEST_FILE = "package.json"
LOCK_FILE = "package-lock.json"
YARN_LOCK_FILE = "yarn.lock"


def read_manifest(project_root: Path) -> Dict[str, Any]:
    """Load package.json; any failure is fatal."""
    manifest_path = Path(project_root) / MANIFEST_FILE
    try:
        with open(manifest_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ManifestError(f"Failed to read {MANIFEST_FILE}: {e}") from e


def read_lock_file(project_root: Path) -> Optional[Dict[str, Any]]:
    """Load package-lock.json, or None when it is missing or unreadable."""
    root = Path(project_root)
    lock_path = root / LOCK_FILE
    if lock_path.exists():
        try:
            with open(lock_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not parse %s: %s", lock_path, e)

    if (root / YARN_LOCK_FILE).exists():
        logger.warning(
            "%s detected but not parsed, using %s only", YARN_LOCK_FILE, MANIFEST_FILE
        )
    return None


def load_packages(project_root: Path, skip_dev: bool = False) -> List[PackageRecord]:
    """Read the project files and resolve its package set."""
    manifest = read_manifest(project_root)
    lock_file = read_lock_file(project_root)
    return resolve(manifest, lock_file, skip_dev=skip_dev)
