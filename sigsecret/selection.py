"""Choice of the single signature stored in single-key mode."""

from typing import Mapping, Optional, Tuple

from .collector import SignatureRecord, SignatureSet
from .log import get_logger
from .platforms import SELECTION_RULES, SelectionRule

logger = get_logger("selection")


class NoMainSignatureError(Exception):
    """No signature is available to represent the build."""
    pass


def select_main_signature(
    signature_set: SignatureSet,
    rules: Optional[Mapping[str, SelectionRule]] = None,
) -> Tuple[str, SignatureRecord]:
    """
    Pick the signature that represents the build.

    Platforms and their records are scanned in insertion order and the first
    record satisfying its platform's rule wins (MSI on Windows, DMG or app
    tarball on macOS, DEB on Linux). Without a match, the first record of
    the first non-empty platform is used.

    Args:
        signature_set: Collected signatures
        rules: Platform -> SelectionRule (default: SELECTION_RULES)

    Returns:
        Tuple of (platform, record)

    Raises:
        NoMainSignatureError: If the set holds no records
    """
    if rules is None:
        rules = SELECTION_RULES

    for platform, _key, record in signature_set.records():
        rule = rules.get(platform)
        if rule is not None and rule.matches(record.source_file):
            logger.debug(f"Main signature matched {platform} rule: {record.source_file}")
            return platform, record

    for platform, catalog in signature_set.platforms.items():
        for record in catalog.values():
            logger.info(f"Using fallback signature: {record.source_file}")
            return platform, record

    raise NoMainSignatureError("No suitable signature found to store")
