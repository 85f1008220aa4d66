"""Writes cluster credentials for kubectl."""

import os
import tempfile
from pathlib import Path
from typing import Optional

from .config import ConfigError
from .log import get_logger

logger = get_logger("kubeconfig")

HOME_VARIABLES = ("HOME", "USERPROFILE", "HOMEPATH")


def resolve_home() -> Path:
    """
    Find the user's home directory.

    Falls back to HOME, USERPROFILE and HOMEPATH, then the system temp
    directory when Python cannot determine it.
    """
    try:
        return Path.home()
    except (RuntimeError, KeyError):
        pass

    for variable in HOME_VARIABLES:
        value = os.environ.get(variable)
        if value:
            logger.warning(f"Using fallback home directory from {variable}: {value}")
            return Path(value)

    fallback = Path(tempfile.gettempdir())
    logger.warning(f"Using fallback home directory: {fallback}")
    return fallback


def write_kubeconfig(content: str, home: Optional[Path] = None) -> Path:
    """
    Write kubeconfig content to ``<home>/.kube/config``.

    Args:
        content: Complete kubeconfig document
        home: Home directory (default: resolve_home())

    Returns:
        Path of the written file

    Raises:
        ConfigError: If content is empty
    """
    if not content or not content.strip():
        raise ConfigError("kubernetes-config input is empty")

    home_dir = Path(home) if home is not None else resolve_home()
    kubeconfig_path = home_dir / ".kube" / "config"
    kubeconfig_path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(kubeconfig_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(content)

    # O_CREAT's mode does not apply to a file that already existed
    if os.name != "nt":
        try:
            kubeconfig_path.chmod(0o600)
        except OSError as e:
            logger.warning(f"Could not set kubeconfig permissions: {e}")

    logger.info(f"Kubeconfig written to {kubeconfig_path}")
    return kubeconfig_path
