"""
Hashing utilities for reproducibility checks.

Provides SHA-256 checksums of input files (qrels, runs) and fingerprints of
computed scores, so two evaluations can be compared for bit-identical output.
"""
from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Iterable, Tuple, Union

from irmetrics.utils.logger import get_logger

logger = get_logger(__name__)


def compute_checksum(
    path: Union[Path, str],
    algorithm: str = "sha256",
    chunk_size: int = 8192
) -> str:
    """
    Compute the hex digest checksum for a file.

    Reads the file in chunks so large run files are never loaded whole.

    Args:
        path: Path to file to hash
        algorithm: Hash algorithm (sha256, md5, sha1, etc.)
        chunk_size: Number of bytes to read per chunk (default 8192)

    Returns:
        Hex digest string of the file hash

    Raises:
        FileNotFoundError: If file does not exist
        ValueError: If algorithm is not supported

    Example:
        >>> compute_checksum("qrels.robust04.txt")  # "a3f2b1c..."
    """
    path = Path(path) if isinstance(path, str) else path

    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    try:
        hasher = hashlib.new(algorithm)
    except ValueError as e:
        raise ValueError(f"Unsupported hash algorithm: {algorithm}") from e

    logger.debug(f"Computing {algorithm} checksum for: {path.name}")

    with path.open("rb") as file_handle:
        for chunk in iter(lambda: file_handle.read(chunk_size), b""):
            hasher.update(chunk)

    return hasher.hexdigest()


def fingerprint_scores(rows: Iterable[Tuple[str, str, object]]) -> str:
    """
    Fingerprint a sequence of (query, metric label, score) rows.

    Floats are encoded with float.hex(), so any difference in the last bit
    changes the fingerprint. Non-float scores (the undefined marker) are
    encoded by their string form.
    """
    hasher = hashlib.sha256()
    for query, label, score in rows:
        value = score.hex() if isinstance(score, float) else str(score)
        hasher.update(f"{query}\t{label}\t{value}\n".encode("utf-8"))
    return hasher.hexdigest()
