"""Thin wrapper around the kubectl command line for Secret operations."""

import json
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, Any, List, Optional

import yaml

from .log import get_logger

logger = get_logger("kubectl")

MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
MANAGED_BY = "tauri-sig-secret"
DEFAULT_TIMEOUT = 60.0

# API server responses that mean the request body itself was refused
REJECTION_MARKERS = (
    "(Invalid)",
    "(BadRequest)",
    "(UnprocessableEntity)",
    "is invalid",
    "Invalid value",
    "cannot be handled",
)


class KubectlError(Exception):
    """kubectl exited with an error or could not be started."""

    def __init__(self, message: str, command: Optional[List[str]] = None,
                 returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.command = command or []
        self.returncode = returncode
        self.stderr = stderr

    @property
    def rejected(self) -> bool:
        """True if the API server refused the request body as malformed."""
        return any(marker in self.stderr for marker in REJECTION_MARKERS)


class KubectlTimeoutError(KubectlError):
    """kubectl did not finish within the configured timeout."""
    pass


def build_secret_manifest(
    name: str, namespace: str, data: Dict[str, str]
) -> Dict[str, Any]:
    """
    Build a v1 Secret manifest.

    Args:
        name: Secret name
        namespace: Target namespace
        data: Key -> base64 value

    Returns:
        Manifest dictionary ready for serialisation
    """
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "labels": {MANAGED_BY_LABEL: MANAGED_BY},
        },
        "type": "Opaque",
        "data": dict(data),
    }


class KubectlClient:
    """Runs kubectl with a bounded timeout per call."""

    def __init__(
        self,
        kubectl: str = "kubectl",
        kubeconfig: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize client.

        Args:
            kubectl: kubectl executable
            kubeconfig: Explicit kubeconfig path (default: kubectl's own lookup)
            timeout: Seconds allowed per kubectl invocation
        """
        self.kubectl = kubectl
        self.kubeconfig = kubeconfig
        self.timeout = timeout

    def _base_command(self) -> List[str]:
        cmd = [self.kubectl]
        if self.kubeconfig:
            cmd.extend(["--kubeconfig", str(self.kubeconfig)])
        return cmd

    def run(self, args: List[str], input_text: Optional[str] = None) -> subprocess.CompletedProcess:
        """
        Run kubectl with arguments.

        Args:
            args: Arguments after the executable
            input_text: Text passed on stdin

        Returns:
            Completed process (exit status 0)

        Raises:
            KubectlTimeoutError: If the call exceeds the timeout
            KubectlError: If kubectl is missing or exits non-zero
        """
        cmd = self._base_command() + list(args)
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                input=input_text,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            raise KubectlTimeoutError(
                f"kubectl {args[0]} timed out after {self.timeout}s", command=cmd
            )
        except OSError as e:
            raise KubectlError(f"Failed to run {self.kubectl}: {e}", command=cmd)

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise KubectlError(
                f"kubectl {' '.join(args[:2])} failed (exit {result.returncode}): {stderr}",
                command=cmd,
                returncode=result.returncode,
                stderr=stderr,
            )
        return result

    def client_version(self) -> str:
        """Return the client version report, checking kubectl is usable."""
        result = self.run(["version", "--client", "--output=json"])
        try:
            info = json.loads(result.stdout)
            return info.get("clientVersion", {}).get("gitVersion", "") or result.stdout.strip()
        except ValueError:
            return result.stdout.strip()

    def secret_exists(self, name: str, namespace: str) -> bool:
        """
        Check whether a secret exists.

        Any failure counts as "does not exist": kubectl reports a missing
        secret and an unreachable cluster with the same non-zero exit.
        """
        try:
            self.run(["get", "secret", name, "-n", namespace, "-o", "name"])
        except KubectlError as e:
            logger.debug(f"Secret lookup failed, treating as absent: {e}")
            return False
        return True

    def create_secret(self, manifest: Dict[str, Any]) -> None:
        """Create a secret from a manifest passed on stdin."""
        document = yaml.safe_dump(manifest, sort_keys=False)
        self.run(["create", "-f", "-"], input_text=document)

    def create_secret_from_literals(
        self, name: str, namespace: str, literals: Optional[Dict[str, str]] = None
    ) -> None:
        """Create a generic secret from plain key/value literals (may be empty)."""
        args = ["create", "secret", "generic", name, "-n", namespace]
        for key, value in (literals or {}).items():
            args.append(f"--from-literal={key}={value}")
        self.run(args)

    def delete_secret(self, name: str, namespace: str) -> None:
        self.run(["delete", "secret", name, "-n", namespace])

    def patch_secret(self, name: str, namespace: str, data: Dict[str, str]) -> None:
        """
        Merge-patch ``data`` keys into an existing secret.

        The patch document goes through a temporary file so payload size is
        not bound by the command-line length limit.
        """
        patch = json.dumps({"data": data})

        with tempfile.NamedTemporaryFile(
            mode="w", delete=False, suffix=".json", encoding="utf-8"
        ) as f:
            patch_path = f.name
            f.write(patch)

        try:
            self.run(
                [
                    "patch",
                    "secret",
                    name,
                    "-n",
                    namespace,
                    "--type",
                    "merge",
                    "--patch-file",
                    patch_path,
                ]
            )
        finally:
            Path(patch_path).unlink(missing_ok=True)
