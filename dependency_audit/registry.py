"""
npm registry client.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, Iterable, Optional, Tuple

import requests
from packaging import version as pkg_version
from tqdm import tqdm

from .interfaces import MetadataSource
from .models import RegistryMetadata
from .time_utils import parse_timestamp, utc_now


logger = logging.getLogger(__name__)


@dataclass
class RegistryCache:
    """In-memory caches scoped to a single audit run."""

    metadata_cache: Dict[Tuple[str, str], Optional[RegistryMetadata]] = field(default_factory=dict)
    downloads_cache: Dict[str, Optional[int]] = field(default_factory=dict)
    session: requests.Session = field(default_factory=requests.Session)


class NpmRegistryClient(MetadataSource):
    """Fetch package metadata and download counts from npm."""

    REGISTRY_URL = "https://registry.npmjs.org"
    DOWNLOADS_URL = "https://api.npmjs.org/downloads"

    def __init__(
        self,
        cache: Optional[RegistryCache] = None,
        registry_url: Optional[str] = None,
        downloads_url: Optional[str] = None,
        request_delay: float = 0.1,
        timeout: float = 30,
    ) -> None:
        self.cache = cache if cache is not None else RegistryCache()
        self.registry_url = (registry_url or self.REGISTRY_URL).rstrip("/")
        self.downloads_url = (downloads_url or self.DOWNLOADS_URL).rstrip("/")
        self.request_delay = request_delay
        self.timeout = timeout

    def fetch_package_metadata(
        self, package_name: str, version: Optional[str] = None
    ) -> Optional[RegistryMetadata]:
        """Fetch metadata for one package version.

        Args:
            package_name: Name of the package
            version: Version to describe; defaults to the latest release

        Returns:
            Registry metadata, or None if the package or version is unknown
            or the registry could not be reached
        """
        cache_key = (package_name, version or "latest")
        if cache_key in self.cache.metadata_cache:
            logger.debug("Cache hit: metadata %s@%s", *cache_key)
            return self.cache.metadata_cache[cache_key]

        try:
            data = self._get_registry_document(package_name)
            metadata = None
            if data is not None:
                metadata = self._build_metadata(package_name, version, data)
        except (requests.RequestException, ValueError, AttributeError, TypeError) as e:
            logger.warning("Failed to fetch metadata for %s: %s", package_name, e)
            return None

        self.cache.metadata_cache[cache_key] = metadata
        return metadata

    def fetch_download_stats(self, package_name: str) -> Optional[int]:
        """Sum the last seven days of downloads, or None when unavailable."""
        if package_name in self.cache.downloads_cache:
            logger.debug("Cache hit: downloads %s", package_name)
            return self.cache.downloads_cache[package_name]

        end = utc_now().date()
        start = end - timedelta(days=7)
        url = f"{self.downloads_url}/range/{start.isoformat()}:{end.isoformat()}/{package_name}"

        downloads = None
        try:
            with self.cache.session.get(url, timeout=self.timeout) as response:
                if response.ok:
                    days = response.json().get("downloads")
                    entries = [day for day in days if isinstance(day, dict)] if isinstance(days, list) else []
                    if entries:
                        downloads = sum(day.get("downloads") or 0 for day in entries)
        except (requests.RequestException, ValueError, AttributeError, TypeError) as e:
            logger.debug("Download stats unavailable for %s: %s", package_name, e)

        self.cache.downloads_cache[package_name] = downloads
        return downloads

    def fetch_multiple_packages(
        self, packages: Iterable[Tuple[str, Optional[str]]]
    ) -> Dict[str, RegistryMetadata]:
        """Fetch metadata for many packages; unknown packages are left out."""
        results: Dict[str, RegistryMetadata] = {}
        for name, version in tqdm(list(packages), desc="Fetching registry metadata", unit="pkg"):
            metadata = self.fetch_package_metadata(name, version)
            if metadata is not None:
                results[name] = metadata
        return results

    def _get_registry_document(self, package_name: str) -> Optional[Dict]:
        if self.request_delay > 0:
            time.sleep(self.request_delay)

        url = f"{self.registry_url}/{package_name}"
        logger.info("Fetching metadata for %s", package_name)
        with self.cache.session.get(url, timeout=self.timeout) as response:
            if response.status_code == 404:
                logger.info("Package %s not found in registry", package_name)
                return None
            response.raise_for_status()
            return response.json()

    def _build_metadata(
        self, package_name: str, version: Optional[str], data: Dict
    ) -> Optional[RegistryMetadata]:
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected registry document for {package_name}")
        versions = data.get("versions") or {}
        target = version or (data.get("dist-tags") or {}).get("latest") or latest_version(versions)
        if target is None or target not in versions:
            logger.info("Version %s of %s not found in registry", target, package_name)
            return None

        times = data.get("time") or {}
        last_published = (
            parse_timestamp(times.get(target))
            or parse_timestamp(times.get("modified"))
            or parse_timestamp(times.get("created"))
        )

        return RegistryMetadata(
            name=package_name,
            version=target,
            last_published=last_published,
            weekly_downloads=self.fetch_download_stats(package_name),
            description=data.get("description"),
        )


def latest_version(versions: Iterable[str]) -> Optional[str]:
    """Highest version that parses; None if none do."""
    parsed = []
    for ver in versions:
        try:
            parsed.append((pkg_version.parse(ver), ver))
        except pkg_version.InvalidVersion:
            continue
    if not parsed:
        return None
    parsed.sort(key=lambda item: item[0])
    return parsed[-1][1]
