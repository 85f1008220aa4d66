"""Platform layout of a Tauri bundle directory and main-signature rules."""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

SIGNATURE_SUFFIX = ".sig"

# Bundle subdirectories written by `tauri build`, per target OS, in scan order
PLATFORM_CATEGORIES: Dict[str, List[str]] = {
    "windows": ["msi", "nsis"],
    "macos": ["macos", "dmg"],
    "linux": ["deb", "rpm", "appimage"],
}

DEFAULT_PLATFORMS: List[str] = list(PLATFORM_CATEGORIES)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


@dataclass(frozen=True)
class SelectionRule:
    """Preference for the signature that represents a platform."""

    platform: str
    any_of: Tuple[str, ...]  # file name must contain one of these
    none_of: Tuple[str, ...] = field(default_factory=tuple)  # ...and none of these

    def matches(self, file_name: str) -> bool:
        """
        Check whether a sidecar file name satisfies this rule.

        Args:
            file_name: Sidecar file name (e.g. "App_x64_en-US.msi.sig")

        Returns:
            True if the file is the preferred signature for the platform
        """
        if not file_name:
            return False
        if any(marker in file_name for marker in self.none_of):
            return False
        return any(marker in file_name for marker in self.any_of)


SELECTION_RULES: Dict[str, SelectionRule] = {
    "windows": SelectionRule("windows", any_of=(".msi.sig",), none_of=(".zip.sig",)),
    "macos": SelectionRule("macos", any_of=(".dmg.sig", ".app.tar.gz.sig")),
    "linux": SelectionRule("linux", any_of=(".deb.sig",)),
}


def sanitize_name(name: str, placeholder: str = "_") -> str:
    """Replace every character outside [A-Za-z0-9._-] with ``placeholder``."""
    return _UNSAFE_CHARS.sub(placeholder, name)


def parse_platforms(value) -> List[str]:
    """
    Normalise a platform list.

    Accepts a comma-separated string or a list. Names are trimmed, blanks
    dropped and duplicates removed keeping the first occurrence. Unknown
    names are kept; the collector reports them.
    """
    if value is None:
        return list(DEFAULT_PLATFORMS)
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = [str(item) for item in value]

    platforms: List[str] = []
    for item in items:
        name = item.strip()
        if name and name not in platforms:
            platforms.append(name)
    return platforms
