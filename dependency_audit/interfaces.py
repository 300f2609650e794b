"""
Interfaces for registry and vulnerability sources.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional, Protocol, Tuple

from .models import RegistryMetadata, VulnerabilityRecord


class MetadataSource(Protocol):
    """Provide registry metadata for packages."""

    def fetch_package_metadata(
        self, package_name: str, version: Optional[str] = None
    ) -> Optional[RegistryMetadata]:
        ...

    def fetch_multiple_packages(
        self, packages: Iterable[Tuple[str, Optional[str]]]
    ) -> Dict[str, RegistryMetadata]:
        ...


class VulnerabilitySource(Protocol):
    """Provide known vulnerabilities keyed by package name."""

    def get_vulnerabilities(self) -> Dict[str, VulnerabilityRecord]:
        ...
