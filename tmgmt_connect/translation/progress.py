"""
Translation Progress Data Class

Contains the TranslationProgress dataclass reported while a job item's
chunks are submitted.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


@dataclass
class TranslationProgress:
    """Progress information for an ongoing submission."""
    job_id: int
    job_item_id: int
    # Batch progress fields
    current_batch: int = 0           # Current chunk number (1-indexed)
    total_batches: int = 0           # Total chunks for the item
    batch_keys_count: int = 0        # Number of keys in current chunk
    processed_keys: int = 0          # BatchContext.index after the chunk
    total_keys: int = 0
    phase: str = "translating"       # "translating", "batch_done", "deferred", "applied", "failed"
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
