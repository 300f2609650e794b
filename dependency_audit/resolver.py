"""
Merge manifest declarations with the lock-file dependency tree.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterator, List, Mapping, Optional, Set, Tuple

from .models import PackageRecord


logger = logging.getLogger(__name__)

_RANGE_PREFIX = re.compile(r"^[\^~>=<]+")


class ManifestError(ValueError):
    """The project manifest is missing or malformed."""


def normalize_version(version: str) -> str:
    """Strip leading range operators, leaving the bare version token."""
    return _RANGE_PREFIX.sub("", version.strip()).strip()


def resolve(
    manifest: Optional[Mapping[str, Any]],
    lock_file: Optional[Mapping[str, Any]] = None,
    skip_dev: bool = False,
) -> List[PackageRecord]:
    """Build the deduplicated package set for a project.

    Direct dependencies come first in manifest order (runtime, then dev),
    followed by transitive-only packages in the order the lock tree first
    reaches them. A lock entry whose version differs from the recorded one
    replaces it; the last one visited wins.

    Args:
        manifest: Parsed package.json content
        lock_file: Parsed package-lock.json content, if any
        skip_dev: Leave out development dependencies

    Returns:
        Resolved package records, at most one per name

    Raises:
        ManifestError: If the manifest is absent or malformed
    """
    if manifest is None:
        raise ManifestError("No manifest supplied")
    if not isinstance(manifest, Mapping):
        raise ManifestError("Manifest must be a JSON object")

    runtime_deps = _dependency_section(manifest, "dependencies")
    dev_deps = _dependency_section(manifest, "devDependencies")

    direct = {**runtime_deps, **({} if skip_dev else dev_deps)}
    packages: Dict[str, PackageRecord] = {}
    for name, constraint in direct.items():
        packages[name] = PackageRecord(
            name=name,
            version=normalize_version(constraint),
            is_direct=True,
            is_dev=name in dev_deps,
        )
    logger.debug("Manifest declares %d direct dependencies", len(packages))

    tree = _lock_tree(lock_file)
    if tree is not None:
        manifest_dev = {name: name in dev_deps for name in direct}
        _merge_lock_tree(tree, packages, manifest_dev, skip_dev)

    return list(packages.values())


def _dependency_section(manifest: Mapping[str, Any], key: str) -> Dict[str, str]:
    section = manifest.get(key)
    if section is None:
        return {}
    if not isinstance(section, Mapping):
        raise ManifestError(f"Manifest field '{key}' must be an object")
    for name, constraint in section.items():
        if not isinstance(constraint, str):
            raise ManifestError(
                f"Manifest field '{key}' has a non-string version for {name}"
            )
    return dict(section)


def _lock_tree(lock_file: Optional[Mapping[str, Any]]) -> Optional[Mapping[str, Any]]:
    if lock_file is None:
        logger.info("No lock file, using direct dependencies only")
        return None
    if not isinstance(lock_file, Mapping):
        logger.warning("Lock file is not a JSON object, using direct dependencies only")
        return None
    tree = lock_file.get("dependencies")
    if tree is None:
        logger.info("Lock file has no dependency tree, using direct dependencies only")
        return None
    if not isinstance(tree, Mapping):
        logger.warning("Lock file dependency tree is malformed, using direct dependencies only")
        return None
    return tree


def _merge_lock_tree(
    tree: Mapping[str, Any],
    packages: Dict[str, PackageRecord],
    manifest_dev: Mapping[str, bool],
    skip_dev: bool,
) -> None:
    # Pre-order depth-first walk; each frame holds the sibling iterator and
    # the dev context inherited from the parent.
    visited: Set[Tuple[str, str]] = set()
    stack: List[Tuple[Iterator[Tuple[str, Any]], bool]] = [(iter(tree.items()), False)]

    while stack:
        siblings, dev_context = stack[-1]
        entry = next(siblings, None)
        if entry is None:
            stack.pop()
            continue

        name, node = entry
        version = node.get("version") if isinstance(node, Mapping) else None
        if not isinstance(version, str):
            logger.debug("Skipping lock entry %s without a version", name)
            continue

        key = (name, version)
        if key in visited:
            continue
        visited.add(key)

        is_dev = dev_context or node.get("dev") is True
        if not (skip_dev and is_dev):
            current = packages.get(name)
            if current is None or current.version != version:
                packages[name] = PackageRecord(
                    name=name,
                    version=version,
                    is_direct=False,
                    is_dev=manifest_dev.get(name, is_dev),
                )

        children = node.get("dependencies")
        if isinstance(children, Mapping) and children:
            stack.append((iter(children.items()), is_dev))
