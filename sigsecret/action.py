"""End-to-end run: collect signatures and store them in the cluster."""

import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from .collector import SignatureSet, collect_signatures
from .config import ActionConfig
from .kubeconfig import write_kubeconfig
from .kubectl import KubectlClient, KubectlError
from .log import get_logger
from .outputs import build_outputs
from .reconciler import ReconcileError, ReconcileOutcome, SecretReconciler

logger = get_logger("action")


@dataclass
class ActionResult:
    """What one run did."""

    signature_set: SignatureSet
    outcome: ReconcileOutcome

    @property
    def signatures_found(self) -> int:
        return self.signature_set.total_count

    @property
    def secret_updated(self) -> bool:
        return self.outcome.modified

    def outputs(self) -> Dict[str, str]:
        return build_outputs(self.signature_set, self.secret_updated)


def run_action(
    config: ActionConfig,
    client: Optional[KubectlClient] = None,
    home: Optional[Path] = None,
) -> ActionResult:
    """
    Collect signatures and reconcile them into the configured secret.

    Args:
        config: Run settings
        client: kubectl client (default: one using the written kubeconfig)
        home: Home directory for the kubeconfig file (default: resolved)

    Returns:
        ActionResult with the collected set and what happened to the secret

    Raises:
        ConfigError: If required settings are missing
        BundleNotFoundError: If the bundle directory does not exist
        NoMainSignatureError: If single-key mode has nothing to select
        ReconcileError: If kubectl is unusable or the secret can't be written
    """
    config.require_cluster_settings()

    logger.info("Starting Tauri signature extraction...")
    logger.info(f"Runner platform: {platform.system()}, working directory: {Path.cwd()}")
    logger.info(f"Target secret: {config.secret_name} in namespace: {config.namespace}")
    logger.info(f"Key prefix: {config.key_prefix} ({config.mode.value})")
    logger.info(f"Platforms: {', '.join(config.platforms)}")

    kubeconfig_path = write_kubeconfig(config.kube_config, home=home)

    signature_set = collect_signatures(
        config.bundle_path,
        config.platforms,
        category_map=config.get_category_map(),
    )

    if signature_set.is_empty:
        logger.warning("No signature files found. Skipping Kubernetes secret update.")
        return ActionResult(signature_set, ReconcileOutcome.SKIPPED)

    if client is None:
        client = KubectlClient(
            kubeconfig=str(kubeconfig_path), timeout=config.kubectl_timeout
        )

    try:
        version = client.client_version()
    except KubectlError as e:
        raise ReconcileError(f"Failed to configure kubectl: {e}") from e
    logger.info(f"kubectl configured successfully ({version})")

    reconciler = SecretReconciler(
        client,
        config.secret_name,
        namespace=config.namespace,
        key_prefix=config.key_prefix,
        mode=config.mode,
        strategy=config.update_strategy,
        chunk_size=config.chunk_size,
    )
    outcome = reconciler.reconcile(signature_set)
    logger.info(f"Secret {config.secret_name} {outcome.value}")

    return ActionResult(signature_set, outcome)
