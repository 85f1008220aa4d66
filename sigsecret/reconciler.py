"""Reconciles collected signatures into a Kubernetes Secret."""

from enum import Enum
from typing import List

from .collector import SignatureSet
from .kubectl import KubectlClient, KubectlError, KubectlTimeoutError, build_secret_manifest
from .log import get_logger
from .payload import PayloadMode, SecretPayload, build_payload, chunk_payload

logger = get_logger("reconciler")

DEFAULT_CHUNK_SIZE = 5


class ReconcileError(Exception):
    """The secret could not be brought up to date."""
    pass


class ReconcileOutcome(str, Enum):
    CREATED = "created"
    REPLACED = "replaced"
    PATCHED = "patched"
    SKIPPED = "skipped"

    @property
    def modified(self) -> bool:
        return self is not ReconcileOutcome.SKIPPED


class UpdateStrategy(str, Enum):
    """What to do when the secret already exists."""

    PATCH = "patch"  # merge-patch payload keys, recreate if the body is rejected
    RECREATE = "recreate"  # delete, then create from scratch


class SecretReconciler:
    """Creates or updates one secret from a SignatureSet."""

    def __init__(
        self,
        client: KubectlClient,
        secret_name: str,
        namespace: str = "default",
        key_prefix: str = "tauri-sig",
        mode: PayloadMode = PayloadMode.SINGLE_KEY,
        strategy: UpdateStrategy = UpdateStrategy.PATCH,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """
        Initialize reconciler.

        Args:
            client: kubectl wrapper used for every cluster call
            secret_name: Target secret
            namespace: Target namespace
            key_prefix: Secret key (single-key) or key prefix (full-metadata)
            mode: Payload layout
            strategy: Update strategy for an existing secret
            chunk_size: Keys per patch call in the chunked create fallback
        """
        self.client = client
        self.secret_name = secret_name
        self.namespace = namespace
        self.key_prefix = key_prefix
        self.mode = PayloadMode(mode)
        self.strategy = UpdateStrategy(strategy)
        self.chunk_size = chunk_size

    def reconcile(self, signature_set: SignatureSet) -> ReconcileOutcome:
        """
        Write the signatures into the secret.

        Args:
            signature_set: Output of collect_signatures()

        Returns:
            What happened to the secret

        Raises:
            NoMainSignatureError: If single-key mode has nothing to select
            ReconcileError: If the secret could not be written
        """
        if signature_set.is_empty:
            logger.warning("No signature files found. Skipping Kubernetes secret update.")
            return ReconcileOutcome.SKIPPED

        payload = build_payload(signature_set, self.mode, self.key_prefix)
        logger.info(
            f"Payload keys for {self.namespace}/{self.secret_name}: {', '.join(payload)}"
        )

        if not self.client.secret_exists(self.secret_name, self.namespace):
            logger.info(f"Secret {self.secret_name} not found, creating it")
            self._create(payload)
            return ReconcileOutcome.CREATED

        if self.strategy is UpdateStrategy.PATCH:
            try:
                self.client.patch_secret(self.secret_name, self.namespace, payload)
                logger.info(f"Patched {len(payload)} keys in secret {self.secret_name}")
                return ReconcileOutcome.PATCHED
            except KubectlError as e:
                # Only a malformed-body rejection justifies dropping the secret
                if isinstance(e, KubectlTimeoutError) or not e.rejected:
                    raise ReconcileError(f"Failed to patch secret: {e}") from e
                logger.warning(f"Patch rejected, recreating secret instead: {e}")

        self._delete()
        self._create(payload)
        return ReconcileOutcome.REPLACED

    def _delete(self) -> None:
        try:
            self.client.delete_secret(self.secret_name, self.namespace)
            logger.info(f"Deleted secret {self.secret_name}")
        except KubectlError as e:
            logger.warning(f"Could not delete secret {self.secret_name}: {e}")

    def _create(self, payload: SecretPayload) -> None:
        manifest = build_secret_manifest(self.secret_name, self.namespace, payload)
        try:
            self.client.create_secret(manifest)
            logger.info(f"Created secret {self.secret_name} with {len(payload)} keys")
            return
        except KubectlTimeoutError as e:
            raise ReconcileError(f"Failed to create secret: {e}") from e
        except KubectlError as e:
            logger.warning(f"Manifest create failed, falling back to chunked patches: {e}")

        self._create_chunked(payload)

    def _create_chunked(self, payload: SecretPayload) -> None:
        try:
            self.client.create_secret_from_literals(self.secret_name, self.namespace)
        except KubectlError as e:
            raise ReconcileError(f"Failed to create secret: {e}") from e

        failed: List[int] = []
        chunks = list(chunk_payload(payload, self.chunk_size))
        for index, chunk in enumerate(chunks, start=1):
            try:
                self.client.patch_secret(self.secret_name, self.namespace, chunk)
                logger.debug(f"Applied chunk {index}/{len(chunks)}: {', '.join(chunk)}")
            except KubectlError as e:
                logger.error(f"Chunk {index}/{len(chunks)} failed: {e}")
                failed.append(index)

        if failed:
            raise ReconcileError(
                f"Failed to write {len(failed)} of {len(chunks)} payload chunks "
                f"to secret {self.secret_name}"
            )
        logger.info(
            f"Created secret {self.secret_name} with {len(payload)} keys "
            f"in {len(chunks)} patches"
        )
