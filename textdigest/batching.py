"""Partitioning of extracted documents into bounded work batches."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from textdigest.models import ExtractedDocument, WorkBatch

log = logging.getLogger(__name__)


def create_batches(
    documents: list[ExtractedDocument],
    batch_size: int | None = None,
) -> list[WorkBatch]:
    """Split documents into contiguous batches of at most ``batch_size`` items.

    Input order is preserved and no document is split or dropped. An empty
    input yields an empty list; callers decide what that means.
    """
    from textdigest.config import BATCH_SIZE

    size = batch_size if batch_size is not None else BATCH_SIZE
    if size <= 0:
        raise ValueError(f"batch_size must be positive, got {size}.")

    batches: list[WorkBatch] = []
    for start in range(0, len(documents), size):
        items = documents[start : start + size]
        batch = WorkBatch(
            batch_id=str(uuid.uuid4()),
            documents=list(items),
            total_size=sum(doc.size for doc in items),
            created_at=datetime.now(UTC),
        )
        batches.append(batch)
        log.debug(
            "Created batch %s with %d documents (%d bytes).",
            batch.batch_id,
            len(items),
            batch.total_size,
        )

    log.info("Partitioned %d documents into %d batches (size=%d).", len(documents), len(batches), size)
    return batches
