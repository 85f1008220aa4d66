"""Shared pytest fixtures for all tests."""

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock

import pytest

from sigsecret.collector import collect_signatures


def write_signature(bundle_root: Path, category: str, name: str, content: str) -> Path:
    """Create ``bundle_root/category/name`` with content."""
    directory = bundle_root / category
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(content)
    return path


@pytest.fixture
def bundle_root(tmp_path):
    """Create an empty Tauri bundle directory."""
    root = tmp_path / "bundle"
    root.mkdir()
    return root


@pytest.fixture
def write_sig(bundle_root):
    """Write a sidecar file into bundle_root: write_sig(category, name, content)."""

    def _write(category, name, content):
        return write_signature(bundle_root, category, name, content)

    return _write


@pytest.fixture
def full_bundle(bundle_root):
    """Bundle with artifacts for all three platforms, as `tauri build` leaves them."""
    write_signature(bundle_root, "msi", "App_1.0.0_x64_en-US.msi.zip.sig", "msi-zip-sig\n")
    write_signature(bundle_root, "msi", "App_1.0.0_x64_en-US.msi.sig", "msi-sig\n")
    (bundle_root / "msi" / "App_1.0.0_x64_en-US.msi").write_bytes(b"MZ")
    write_signature(bundle_root, "nsis", "App_1.0.0_x64-setup.exe.sig", "nsis-sig")
    write_signature(bundle_root, "macos", "App.app.tar.gz.sig", "app-tarball-sig")
    write_signature(bundle_root, "deb", "app_1.0.0_amd64.deb.sig", "  deb-sig  ")
    write_signature(bundle_root, "appimage", "app_1.0.0_amd64.AppImage.tar.gz.sig", "appimage-sig")
    return bundle_root


@pytest.fixture
def fixed_now():
    return datetime(2025, 11, 13, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def signature_set(full_bundle, fixed_now):
    """SignatureSet collected from full_bundle."""
    return collect_signatures(full_bundle, "windows,macos,linux", now=fixed_now)


@pytest.fixture
def mock_client():
    """Mock KubectlClient where every call succeeds and the secret is absent."""
    client = Mock()
    client.secret_exists.return_value = False
    client.client_version.return_value = "v1.31.0"
    return client


@pytest.fixture
def kubeconfig_content():
    return """apiVersion: v1
kind: Config
clusters:
- cluster:
    server: https://kubernetes.example.com
  name: ci
contexts:
- context:
    cluster: ci
    user: deployer
  name: ci
current-context: ci
users:
- name: deployer
  user:
    token: test-token
"""


@pytest.fixture
def fake_kubectl(mocker):
    """
    Mock subprocess.run for kubectl.

    Records every command in ``calls`` together with stdin and, for
    ``--patch-file``, the patch document. Set ``existing`` to make
    ``kubectl get`` succeed and ``failures`` to a list of verbs that
    should exit non-zero, or ``reject`` to a predicate on the
    command (without --kubeconfig) for finer control. ``stderr`` maps a
    verb to the error text returned when it fails.
    """

    class FakeKubectl:
        def __init__(self):
            self.calls = []
            self.existing = False
            self.failures = []
            self.reject = None
            self.stderr = {}

        def verbs(self):
            return [call["verb"] for call in self.calls]

        def __call__(self, cmd, **kwargs):
            args = list(cmd)
            if "--kubeconfig" in args:
                idx = args.index("--kubeconfig")
                del args[idx : idx + 2]
            verb = args[1]

            call = {"cmd": list(cmd), "verb": verb, "input": kwargs.get("input")}
            if "--patch-file" in args:
                patch_path = args[args.index("--patch-file") + 1]
                call["patch"] = Path(patch_path).read_text()
            self.calls.append(call)

            result = Mock()
            result.returncode = 0
            result.stdout = ""
            result.stderr = ""

            if verb in self.failures or (self.reject and self.reject(args)):
                result.returncode = 1
                result.stderr = self.stderr.get(verb, f"error: {verb} failed")
            elif verb == "get" and not self.existing:
                result.returncode = 1
                result.stderr = 'Error from server (NotFound): secrets "x" not found'
            elif verb == "version":
                result.stdout = '{"clientVersion": {"gitVersion": "v1.31.0"}}'
            return result

    fake = FakeKubectl()
    mocker.patch("sigsecret.kubectl.subprocess.run", side_effect=fake)
    return fake


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch):
    """Reset environment variables before each test."""
    original_env = dict(os.environ)

    # Tests must not pick up the runner's own action settings
    for name in list(os.environ):
        if name.startswith("INPUT_") or name in ("GITHUB_OUTPUT", "GITHUB_ACTIONS"):
            monkeypatch.delenv(name, raising=False)

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo configure_logging() so caplog sees sigsecret records."""
    logger = logging.getLogger("sigsecret")
    yield
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
