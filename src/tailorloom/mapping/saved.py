"""Saved mapping templates: reuse a column mapping for files with familiar headers."""

from __future__ import annotations

from typing import Sequence

import structlog

from tailorloom.core.protocols import IMappingStore
from tailorloom.models.mapping import SavedMapping
from tailorloom.models.schema import SourceType

logger = structlog.get_logger(__name__)

DEFAULT_OVERLAP = 0.7


def header_overlap(template_headers: Sequence[str], headers: Sequence[str]) -> float:
    """Share of a template's headers present in ``headers`` (case and whitespace insensitive)."""
    wanted = [h.strip().lower() for h in template_headers]
    present = {h.strip().lower() for h in headers}
    return sum(1 for h in wanted if h in present) / max(len(wanted), 1)


class SavedMappingService:
    """Create, look up, and delete mapping templates."""

    def __init__(self, *, store: IMappingStore, min_overlap: float = DEFAULT_OVERLAP) -> None:
        self._store = store
        self._min_overlap = min_overlap

    def save_template(
        self,
        source: str,
        name: str,
        column_mapping: dict[str, str],
        sample_headers: Sequence[str],
        is_default: bool = False,
    ) -> SavedMapping:
        mapping = SavedMapping(
            source=SourceType(source),
            name=name,
            column_mapping=dict(column_mapping),
            sample_headers=list(sample_headers),
            is_default=is_default,
        )
        saved = self._store.save_mapping(mapping)
        logger.info("mapping_template_saved", mapping_id=saved.id, source=source, name=name)
        return saved

    def list_templates(self, source: str) -> list[SavedMapping]:
        """Templates for a source, defaults first then newest first."""
        return sorted(
            self._store.list_mappings(source),
            key=lambda m: (m.is_default, m.created_at),
            reverse=True,
        )

    def find_matching(self, source: str, headers: Sequence[str]) -> SavedMapping | None:
        for template in self.list_templates(source):
            if header_overlap(template.sample_headers, headers) >= self._min_overlap:
                logger.info("mapping_template_matched", mapping_id=template.id, source=source)
                return template
        return None

    def delete_template(self, mapping_id: str) -> None:
        self._store.delete_mapping(mapping_id)
        logger.info("mapping_template_deleted", mapping_id=mapping_id)
