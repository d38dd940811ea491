"""Audio Store - Metadata filter engine."""

from __future__ import annotations

import logging

from audio_store.db import MetadataStore
from audio_store.schemas import FilterQuery

logger = logging.getLogger(__name__)


class FilterEngine:
    """Answers AND-combined equality queries over file metadata.

    Each supplied predicate is one store lookup; the per-predicate name sets
    are then intersected. An empty query matches nothing.
    """

    def __init__(self, store: MetadataStore):
        self._store = store

    async def filter(self, query: FilterQuery) -> list[str]:
        """Return the sorted, de-duplicated names matching every predicate.

        Raises:
            StoreError: If a lookup fails.
        """
        results: list[set[str]] = []
        for attribute, value in query.predicates():
            records = await self._store.find_by(attribute, value)
            results.append({record.file_name for record in records})

        if not results:
            return []

        while len(results) > 1:
            newest = results.pop()
            previous = results.pop()
            results.append(newest & previous)

        logger.debug("Query %s matched %d names", query.model_dump(exclude_none=True), len(results[0]))
        return sorted(results[0])
