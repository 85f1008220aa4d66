"""Secret payload construction from collected signatures."""

import base64
import json
import os
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Iterator, List, Optional

from .collector import SignatureSet
from .platforms import sanitize_name
from .selection import select_main_signature

SecretPayload = Dict[str, str]

UNKNOWN = "unknown"


class PayloadMode(str, Enum):
    """How signatures are laid out in the secret."""

    SINGLE_KEY = "single-key"  # main signature under the bare prefix
    FULL_METADATA = "full-metadata"  # every record plus a summary key


def encode_value(value: str) -> str:
    """Base64-encode text for a Secret ``data`` field."""
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def decode_value(value: str) -> str:
    """Inverse of encode_value."""
    return base64.b64decode(value).decode("utf-8")


def build_provenance(environ: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """
    Build provenance of the current workflow run.

    Args:
        environ: Environment to read (default: os.environ)

    Returns:
        {"git_ref": ..., "git_sha": ...}, "unknown" where unset
    """
    env = os.environ if environ is None else environ
    return {
        "git_ref": env.get("GITHUB_REF") or UNKNOWN,
        "git_sha": env.get("GITHUB_SHA") or UNKNOWN,
    }


def record_secret_key(key_prefix: str, platform: str, key: str) -> str:
    """Secret key for one record in full-metadata mode."""
    return sanitize_name(f"{key_prefix}-{platform}-{key}")


def metadata_secret_key(key_prefix: str) -> str:
    return sanitize_name(f"{key_prefix}-metadata")


def build_single_key_payload(signature_set: SignatureSet, key_prefix: str) -> SecretPayload:
    """
    Payload holding only the main signature.

    Raises:
        NoMainSignatureError: If there is nothing to select
    """
    _platform, record = select_main_signature(signature_set)
    return {key_prefix: encode_value(record.content)}


def build_summary(
    signature_set: SignatureSet,
    now: Optional[datetime] = None,
    environ: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Summary stored under the ``{prefix}-metadata`` key."""
    summary: Dict[str, Any] = {
        "platforms": signature_set.platform_names,
        "total_signatures": signature_set.total_count,
        "extracted_at": (now or datetime.now(timezone.utc)).isoformat(),
    }
    summary.update(build_provenance(environ))
    return summary


def build_full_metadata_payload(
    signature_set: SignatureSet,
    key_prefix: str,
    now: Optional[datetime] = None,
    environ: Optional[Dict[str, str]] = None,
) -> SecretPayload:
    """
    Payload with one JSON document per record plus a summary.

    Args:
        signature_set: Collected signatures
        key_prefix: Prefix for every secret key
        now: Summary timestamp (default: current UTC)
        environ: Environment for provenance fields (default: os.environ)

    Returns:
        Secret key -> base64(JSON) mapping
    """
    payload: SecretPayload = {}
    for platform, key, record in signature_set.records():
        payload[record_secret_key(key_prefix, platform, key)] = encode_value(
            json.dumps(record.to_dict())
        )

    summary = build_summary(signature_set, now=now, environ=environ)
    payload[metadata_secret_key(key_prefix)] = encode_value(json.dumps(summary))
    return payload


def build_payload(
    signature_set: SignatureSet,
    mode: PayloadMode,
    key_prefix: str,
    environ: Optional[Dict[str, str]] = None,
) -> SecretPayload:
    """Build the payload for the configured mode."""
    if PayloadMode(mode) is PayloadMode.FULL_METADATA:
        return build_full_metadata_payload(signature_set, key_prefix, environ=environ)
    return build_single_key_payload(signature_set, key_prefix)


def chunk_payload(payload: SecretPayload, chunk_size: int) -> Iterator[SecretPayload]:
    """
    Split a payload into dictionaries of at most ``chunk_size`` keys.

    Raises:
        ValueError: If chunk_size is not positive
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    items: List = list(payload.items())
    for start in range(0, len(items), chunk_size):
        yield dict(items[start : start + chunk_size])
