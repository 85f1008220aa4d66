"""
Tauri signature to Kubernetes secret synchronisation.

This package collects the detached ``.sig`` files produced by ``tauri build``
and stores them in a Kubernetes Secret from a CI workflow, using ``kubectl``
for all cluster access.
"""

__version__ = "0.1.0"
