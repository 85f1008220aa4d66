"""Discovery of Tauri signature sidecar files in a bundle directory."""

import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Any, Iterable, Iterator, List, Mapping, Optional, Tuple

from .log import get_logger
from .platforms import (
    PLATFORM_CATEGORIES,
    SIGNATURE_SUFFIX,
    parse_platforms,
    sanitize_name,
)

logger = get_logger("collector")


class BundleNotFoundError(Exception):
    """Bundle root directory is missing."""
    pass


@dataclass(frozen=True)
class SignatureRecord:
    """One signature sidecar file found in the bundle."""

    content: str  # trimmed file text, never empty
    content_hash: str  # sha256 hex of content
    source_file: str  # sidecar name as found on disk
    bundle_category: str  # bundle subdirectory, e.g. "msi"
    discovered_at: str  # ISO-8601 UTC
    path: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON form used in outputs and secret values."""
        return {
            "content": self.content,
            "hash": self.content_hash,
            "file": self.source_file,
            "category": self.bundle_category,
            "timestamp": self.discovered_at,
            "path": self.path,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignatureRecord":
        """Create from dictionary."""
        return cls(
            content=data["content"],
            content_hash=data["hash"],
            source_file=data["file"],
            bundle_category=data["category"],
            discovered_at=data["timestamp"],
            path=data.get("path", ""),
        )


PlatformCatalog = Mapping[str, SignatureRecord]


@dataclass(frozen=True)
class SignatureSet:
    """All signatures found in one run, grouped by platform."""

    platforms: Mapping[str, PlatformCatalog] = field(
        default_factory=lambda: MappingProxyType({})
    )
    total_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.total_count == 0 or not any(self.platforms.values())

    @property
    def platform_names(self) -> List[str]:
        return list(self.platforms)

    def records(self) -> Iterator[Tuple[str, str, SignatureRecord]]:
        """Yield (platform, catalog key, record) in insertion order."""
        for platform, catalog in self.platforms.items():
            for key, record in catalog.items():
                yield platform, key, record

    def to_dict(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        """Catalog as plain JSON-serialisable data: platform -> key -> record."""
        return {
            platform: {key: record.to_dict() for key, record in catalog.items()}
            for platform, catalog in self.platforms.items()
        }


def content_digest(content: str) -> str:
    """SHA-256 hex digest of signature text."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def catalog_key(category: str, file_name: str) -> Optional[str]:
    """
    Build the catalog key for a sidecar file.

    Args:
        category: Bundle category directory name
        file_name: Sidecar file name including the .sig suffix

    Returns:
        "{category}-{sanitized basename}", or None if nothing is left of
        the basename
    """
    base = file_name[: -len(SIGNATURE_SUFFIX)] if file_name.endswith(SIGNATURE_SUFFIX) else file_name
    sanitized = sanitize_name(base)
    if not sanitized:
        return None
    return f"{category}-{sanitized}"


def _read_signature(path: Path) -> Optional[str]:
    try:
        content = path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Error reading {path}: {e}")
        return None

    if not content:
        logger.warning(f"Empty signature file: {path}")
        return None
    return content


def _collect_platform(
    bundle_root: Path,
    platform: str,
    categories: Iterable[str],
    timestamp: str,
) -> Tuple[Dict[str, SignatureRecord], int]:
    catalog: Dict[str, SignatureRecord] = {}
    extracted = 0

    for category in categories:
        category_dir = bundle_root / category
        if not category_dir.is_dir():
            logger.info(f"Not found: {category_dir}")
            continue

        try:
            names = sorted(entry.name for entry in category_dir.iterdir())
        except OSError as e:
            logger.warning(f"Error processing {platform}/{category}: {e}")
            continue

        candidates = [name for name in names if name.endswith(SIGNATURE_SUFFIX)]
        logger.debug(f"Signature files in {category_dir}: {', '.join(candidates)}")

        for name in candidates:
            sig_path = category_dir / name
            content = _read_signature(sig_path)
            if content is None:
                continue

            key = catalog_key(category, name)
            if key is None:
                logger.warning(f"Invalid filename: {name}")
                continue

            catalog[key] = SignatureRecord(
                content=content,
                content_hash=content_digest(content),
                source_file=name,
                bundle_category=category,
                discovered_at=timestamp,
                path=str(sig_path),
            )
            extracted += 1
            logger.info(f"Extracted: {platform}/{key}")

    return catalog, extracted


def collect_signatures(
    bundle_root,
    platforms=None,
    category_map: Optional[Mapping[str, List[str]]] = None,
    now: Optional[datetime] = None,
) -> SignatureSet:
    """
    Scan a bundle directory for signature sidecar files.

    Args:
        bundle_root: Tauri bundle directory (str or Path)
        platforms: Platform names, list or comma-separated string
            (default: every platform in ``category_map``)
        category_map: Platform -> ordered category directories
            (default: PLATFORM_CATEGORIES)
        now: Extraction time stamped on every record (default: current UTC)

    Returns:
        SignatureSet with the records found; empty when nothing matched

    Raises:
        BundleNotFoundError: If bundle_root is not an existing directory
    """
    if category_map is None:
        category_map = PLATFORM_CATEGORIES
    if platforms is None:
        platforms = list(category_map)

    root = Path(bundle_root).resolve()
    logger.info(f"Bundle path: {root}")
    if not root.is_dir():
        raise BundleNotFoundError(f"Bundle directory not found: {root}")

    timestamp = (now or datetime.now(timezone.utc)).isoformat()

    catalogs: Dict[str, PlatformCatalog] = {}
    total = 0

    for platform in parse_platforms(platforms):
        if platform not in category_map:
            logger.warning(f"Unknown platform: {platform}")
            continue

        logger.info(f"Processing platform: {platform}")
        catalog, extracted = _collect_platform(
            root, platform, category_map[platform], timestamp
        )
        total += extracted

        if catalog:
            catalogs[platform] = MappingProxyType(catalog)
            logger.info(f"Found {len(catalog)} signatures for {platform}")
        else:
            logger.info(f"No signatures found for {platform}")

    logger.info(
        f"Total: {total} signature files across {len(catalogs)} platforms"
    )
    return SignatureSet(platforms=MappingProxyType(catalogs), total_count=total)
