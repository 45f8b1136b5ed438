# sqltutor/core/integrity_layer.py
# Integrity helpers: SHA-256 content digests and canonical JSON.
#
# DETERMINISM GUARANTEES:
#   DET-01  No stochastic operations. No uuid, no random.
#   DET-02  All inputs passed explicitly. No module-level mutable reads.
#   DET-03  hash_file() and digest_inputs() read files -- the only IO in
#           this module. All other functions are pure.
#   DET-04  All hashing is SHA-256 over the exact bytes given.
#
# Used by the ladder converter (raw_sha256 of source assets), the
# idempotency verifier (output digests) and the checksum gate (input
# digests, policy-only checksum).

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from hashlib import sha256
from pathlib import Path
from typing import Any, Dict, Mapping, Union

_SHA256_HEX_RE = re.compile(r"^[0-9a-f]{64}$")

_CHUNK_SIZE: int = 8192


# =============================================================================
# SECTION 1: HASH RESULT
# =============================================================================

@dataclass(frozen=True)
class HashResult:
    """
    Result of a single file hash computation.

    Attributes
    ----------
    file_path : str
        Path string of the hashed file.
    hash_value : str
        Lowercase 64-character hexadecimal SHA-256 digest.
    file_size : int
        Total bytes read from the file.
    """

    file_path: str
    hash_value: str
    file_size: int


# =============================================================================
# SECTION 2: PURE HELPERS
# =============================================================================

def sha256_hex(data: Union[bytes, str]) -> str:
    """
    Return the lowercase hex SHA-256 digest of data.

    str input is encoded as UTF-8 first, so hashing the text written to a
    UTF-8 file gives the same digest as hashing the file.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return sha256(data).hexdigest()


def canonical_json(obj: Any) -> str:
    """
    Serialize obj to a canonical JSON string.

    Keys are sorted recursively and separators are compact, so the result
    is independent of dict insertion order. Non-ASCII text is kept as-is
    (the digest is taken over UTF-8 bytes).
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def pretty_json(obj: Any) -> str:
    """
    Serialize obj as 2-space indented JSON with a trailing newline.

    Insertion order is preserved. Used for every artifact written to disk
    so repeated runs diff cleanly.
    """
    return json.dumps(obj, indent=2, ensure_ascii=False) + "\n"


def is_sha256_hex(value: Any) -> bool:
    """True iff value is a 64-character lowercase hex string."""
    return isinstance(value, str) and _SHA256_HEX_RE.match(value) is not None


# =============================================================================
# SECTION 3: FILE HASHING
# =============================================================================

def hash_file(path: Path) -> HashResult:
    """
    Compute the SHA-256 hash of a file.

    Reads in 8 KB chunks to bound memory usage on large files.

    Raises
    ------
    FileNotFoundError
        If the path does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError("File not found: " + str(path))

    hasher = sha256()
    file_size: int = 0

    with open(path, "rb") as fh:
        while True:
            chunk = fh.read(_CHUNK_SIZE)
            if not chunk:
                break
            hasher.update(chunk)
            file_size += len(chunk)

    return HashResult(
        file_path=str(path),
        hash_value=hasher.hexdigest(),
        file_size=file_size,
    )


def digest_inputs(inputs: Mapping[str, Path]) -> Dict[str, str]:
    """
    Hash every named input file.

    Returns a new dict name -> SHA-256 hex in the order of inputs.
    Each file is independent of the others; no ordering dependency exists
    between them.

    Raises
    ------
    FileNotFoundError
        If any declared input is missing. A missing input is never
        digested as empty.
    """
    return {name: hash_file(Path(path)).hash_value for name, path in inputs.items()}
