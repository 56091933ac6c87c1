"""
Common utilities module.

Provides shared utilities:
- Configuration (Pydantic Settings-based)
- Logging
- Chunked batch processing with worker pools
- Hashing (input checksums and score fingerprints)
"""

from irmetrics.utils.config import (
    DEFAULT_METRICS,
    EvaluationConfig,
    IRMetricsSettings,
    get_settings,
    load_config_from_dict
)
from irmetrics.utils.logger import get_logger, setup_logger, set_level, set_stream
from irmetrics.utils.batch import ChunkedOutcome, chunk_items, process_chunks
from irmetrics.utils.hashing import compute_checksum, fingerprint_scores

__all__ = [
    # Config
    "DEFAULT_METRICS",
    "EvaluationConfig",
    "IRMetricsSettings",
    "get_settings",
    "load_config_from_dict",
    # Logging
    "get_logger",
    "setup_logger",
    "set_level",
    "set_stream",
    # Batch
    "ChunkedOutcome",
    "chunk_items",
    "process_chunks",
    # Hashing
    "compute_checksum",
    "fingerprint_scores",
]
