"""Configuration loading and validation."""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, List, Mapping
from .payload import PayloadMode
from .platforms import PLATFORM_CATEGORIES, parse_platforms
from .reconciler import DEFAULT_CHUNK_SIZE, UpdateStrategy
from .kubectl import DEFAULT_TIMEOUT

CONFIG_DIR = ".tauri-sig"
CONFIG_FILE = "config.yaml"

DEFAULTS: Dict[str, Any] = {
    "bundle_path": "src-tauri/target/release/bundle",
    "namespace": "default",
    "key_prefix": "tauri-sig",
    "platforms": "windows,macos,linux",
    "mode": PayloadMode.SINGLE_KEY.value,
    "update_strategy": UpdateStrategy.PATCH.value,
    "kubectl_timeout": DEFAULT_TIMEOUT,
    "chunk_size": DEFAULT_CHUNK_SIZE,
}

# GitHub Actions exposes `with:` inputs as INPUT_<NAME> (upper-cased, hyphens kept)
ACTION_INPUTS: Dict[str, str] = {
    "INPUT_TAURI-BUNDLE-PATH": "bundle_path",
    "INPUT_KUBERNETES-CONFIG": "kube_config",
    "INPUT_KUBERNETES-NAMESPACE": "namespace",
    "INPUT_SECRET-NAME": "secret_name",
    "INPUT_SECRET-KEY-PREFIX": "key_prefix",
    "INPUT_PLATFORMS": "platforms",
    "INPUT_SECRET-MODE": "mode",
    "INPUT_UPDATE-STRATEGY": "update_strategy",
    "INPUT_KUBECTL-TIMEOUT": "kubectl_timeout",
}

_STRING_KEYS = ("bundle_path", "kube_config", "namespace", "secret_name", "key_prefix")


class ConfigError(Exception):
    """Configuration validation error."""
    pass


class ActionConfig:
    """Settings for one signature-to-secret run."""

    def __init__(self, data: Dict[str, Any]):
        """
        Initialize configuration from dictionary.

        Args:
            data: Configuration dictionary (YAML file, action inputs, CLI)
        """
        self.data = data
        self._validate()

    def _validate(self) -> None:
        """Validate configuration schema."""
        for key in _STRING_KEYS:
            if key in self.data and self.data[key] is not None:
                if not isinstance(self.data[key], str):
                    raise ConfigError(f"{key} must be a string")

        if "platforms" in self.data:
            platforms = self.data["platforms"]
            if not isinstance(platforms, (str, list)):
                raise ConfigError("platforms must be a list or comma-separated string")

        if "mode" in self.data:
            try:
                PayloadMode(self.data["mode"])
            except ValueError:
                choices = ", ".join(m.value for m in PayloadMode)
                raise ConfigError(f"mode must be one of: {choices}")

        if "update_strategy" in self.data:
            try:
                UpdateStrategy(self.data["update_strategy"])
            except ValueError:
                choices = ", ".join(s.value for s in UpdateStrategy)
                raise ConfigError(f"update_strategy must be one of: {choices}")

        if "kubectl_timeout" in self.data:
            timeout = self.data["kubectl_timeout"]
            try:
                timeout = float(timeout)
            except (TypeError, ValueError):
                raise ConfigError("kubectl_timeout must be a number")
            if timeout <= 0:
                raise ConfigError("kubectl_timeout must be positive")

        if "chunk_size" in self.data:
            chunk_size = self.data["chunk_size"]
            if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size < 1:
                raise ConfigError("chunk_size must be a positive integer")

        if "categories" in self.data:
            categories = self.data["categories"]
            if not isinstance(categories, dict):
                raise ConfigError("categories must be a dictionary")

            for platform, dirs in categories.items():
                if not isinstance(dirs, list) or not all(isinstance(d, str) for d in dirs):
                    raise ConfigError(f"categories.{platform} must be a list of strings")

    def get(self, key: str) -> Any:
        """Get a setting, falling back to its default."""
        value = self.data.get(key)
        if value is None:
            return DEFAULTS.get(key)
        return value

    @property
    def bundle_path(self) -> str:
        return self.get("bundle_path")

    @property
    def kube_config(self) -> Optional[str]:
        return self.get("kube_config")

    @property
    def namespace(self) -> str:
        return self.get("namespace")

    @property
    def secret_name(self) -> Optional[str]:
        return self.get("secret_name")

    @property
    def key_prefix(self) -> str:
        return self.get("key_prefix")

    @property
    def platforms(self) -> List[str]:
        return parse_platforms(self.get("platforms"))

    @property
    def mode(self) -> PayloadMode:
        return PayloadMode(self.get("mode"))

    @property
    def update_strategy(self) -> UpdateStrategy:
        return UpdateStrategy(self.get("update_strategy"))

    @property
    def kubectl_timeout(self) -> float:
        return float(self.get("kubectl_timeout"))

    @property
    def chunk_size(self) -> int:
        return self.get("chunk_size")

    def get_category_map(self) -> Dict[str, List[str]]:
        """
        Get platform -> category directories, with configured overrides.

        Returns:
            Category map; overrides replace a platform's list or add a platform
        """
        category_map = {k: list(v) for k, v in PLATFORM_CATEGORIES.items()}
        for platform, dirs in (self.data.get("categories") or {}).items():
            category_map[platform] = list(dirs)
        return category_map

    def require_cluster_settings(self) -> None:
        """
        Check settings needed before touching the cluster.

        Raises:
            ConfigError: If secret_name or kube_config is missing or blank
        """
        if not (self.secret_name or "").strip():
            raise ConfigError("secret-name input is required")
        if not (self.kube_config or "").strip():
            raise ConfigError("kubernetes-config input is required")

    def merge_with_cli_args(self, **overrides: Any) -> "ActionConfig":
        """
        Merge configuration with CLI arguments.
        CLI arguments take precedence; None values are ignored.

        Returns:
            New ActionConfig with merged values
        """
        merged = dict(self.data)
        for key, value in overrides.items():
            if value is not None:
                merged[key] = value
        return ActionConfig(merged)

    def apply_environment_overrides(
        self, environ: Optional[Mapping[str, str]] = None
    ) -> "ActionConfig":
        """
        Apply GitHub Action inputs from the environment.

        Empty inputs are ignored, so action defaults don't mask the
        config file.

        Args:
            environ: Environment to read (default: os.environ)

        Returns:
            New ActionConfig with environment overrides applied
        """
        env = os.environ if environ is None else environ
        merged = dict(self.data)

        for variable, key in ACTION_INPUTS.items():
            value = env.get(variable)
            if value is None or not value.strip():
                continue
            # Keep kubeconfig content verbatim, trim everything else
            merged[key] = value if key == "kube_config" else value.strip()

        return ActionConfig(merged)


def load_config(config_path: str) -> ActionConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        ActionConfig instance

    Raises:
        ConfigError: If config file is invalid
        FileNotFoundError: If config file doesn't exist
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("Config file must contain a mapping")

    # Accept the action's hyphenated spelling too (secret-name, key-prefix...)
    return ActionConfig({str(k).replace("-", "_"): v for k, v in data.items()})


def find_default_config() -> Optional[Path]:
    """
    Find default configuration file.

    Searches for .tauri-sig/config.yaml in:
    1. Current directory
    2. Parent directories up to git root
    3. Home directory

    Returns:
        Path to config file, or None if not found
    """
    current = Path.cwd()
    while True:
        config_path = current / CONFIG_DIR / CONFIG_FILE
        if config_path.exists():
            return config_path

        if (current / ".git").exists():
            break

        parent = current.parent
        if parent == current:  # Reached filesystem root
            break
        current = parent

    try:
        home_config = Path.home() / CONFIG_DIR / CONFIG_FILE
    except RuntimeError:
        return None
    if home_config.exists():
        return home_config

    return None


def load_default_config() -> Optional[ActionConfig]:
    """
    Load configuration from default location.

    Returns:
        ActionConfig if found, None otherwise
    """
    config_path = find_default_config()
    if config_path:
        return load_config(str(config_path))
    return None
