"""Publishing of action outputs."""

import json
import os
import uuid
from typing import Dict, Optional

import click

from .collector import SignatureSet


def build_outputs(signature_set: Optional[SignatureSet], secret_updated: bool) -> Dict[str, str]:
    """
    Build the action's output values.

    Args:
        signature_set: Collected signatures, or None when nothing was collected
        secret_updated: Whether the secret was modified

    Returns:
        Output name -> text value
    """
    found = signature_set is not None and not signature_set.is_empty
    return {
        "signatures-found": str(signature_set.total_count) if found else "0",
        "secret-updated": "true" if secret_updated else "false",
        "signature-hashes": json.dumps(signature_set.to_dict()) if found else "{}",
    }


def write_outputs(outputs: Dict[str, str], output_file: Optional[str] = None) -> None:
    """
    Write outputs for later workflow steps.

    Uses the file named by GITHUB_OUTPUT with the heredoc syntax, so values
    may span lines. Outside of GitHub Actions, echoes ``name=value`` lines.

    Args:
        outputs: Output name -> value
        output_file: Override for the GITHUB_OUTPUT path
    """
    path = output_file or os.getenv("GITHUB_OUTPUT")
    if not path:
        for name, value in outputs.items():
            click.echo(f"{name}={value}")
        return

    with open(path, "a", encoding="utf-8") as f:
        for name, value in outputs.items():
            delimiter = f"ghadelimiter_{uuid.uuid4()}"
            f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
