"""Import orchestration: parse, map, validate, stitch, and store CSV rows."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Mapping, Sequence

import structlog

from tailorloom.core.config import AppSettings
from tailorloom.core.exceptions import DuplicateRecordError, ImportStartError, StoreError, TailorLoomError
from tailorloom.core.protocols import IIdentityStore, IImportStore, ILockBackend, IMappingStore
from tailorloom.ingest.parser import parse_csv_content
from tailorloom.ingest.records import build_source_record
from tailorloom.mapping.detection import detect_source, is_confident_detection
from tailorloom.mapping.saved import SavedMappingService
from tailorloom.mapping.suggestions import generate_mapping_suggestions, suggestions_to_mapping
from tailorloom.models.identity import MatchedBy
from tailorloom.models.imports import (
    ImportRecord,
    ImportResult,
    ImportStatus,
    PreviewResult,
    ValidationError,
)
from tailorloom.models.mapping import DetectionResult, MappingSuggestion
from tailorloom.models.schema import SourceSchema, SourceType
from tailorloom.schemas import get_schema
from tailorloom.stitching.conflicts import PostImportConflictScanner
from tailorloom.stitching.matcher import IdentityStitcher
from tailorloom.validation.normalizers import normalize_row_status
from tailorloom.validation.validators import apply_mapping, validate_mapped_row

logger = structlog.get_logger(__name__)

ROW_ERROR_FIELD = "_row"


class ImportService:
    """Runs CSV previews and imports against injected stores.

    Rows are processed sequentially. A row with validation errors is counted
    as an error row and never reaches stitching; a row whose natural key was
    already imported is skipped. Only failing to create the import record
    aborts an import.
    """

    def __init__(
        self,
        *,
        settings: AppSettings,
        identity_store: IIdentityStore,
        import_store: IImportStore,
        mapping_store: IMappingStore,
        lock: ILockBackend | None = None,
    ) -> None:
        self._settings = settings
        self._org_id = settings.stitching.org_id
        self._imports = import_store
        self.templates = SavedMappingService(
            store=mapping_store, min_overlap=settings.imports.saved_mapping_overlap,
        )
        self.stitcher = IdentityStitcher(
            store=identity_store,
            org_id=self._org_id,
            lock=lock,
            name_match_limit=settings.stitching.name_match_limit,
            lock_timeout=settings.stitching.lock_timeout,
        )
        self.scanner = PostImportConflictScanner(
            identity_store=identity_store, import_store=import_store, org_id=self._org_id,
        )

    # ---- mapping ----

    def detect(
        self, headers: Sequence[str], sample_rows: Sequence[Mapping[str, str]]
    ) -> tuple[list[DetectionResult], bool]:
        results = detect_source(headers, sample_rows)
        return results, is_confident_detection(results)

    def resolve_mapping(
        self,
        source: str,
        headers: Sequence[str],
        sample_rows: Sequence[Mapping[str, str]],
        mapping: Mapping[str, str] | None = None,
    ) -> tuple[dict[str, str], list[MappingSuggestion]]:
        """Pick the column mapping: explicit, then a saved template, then suggestions."""
        schema = get_schema(source)
        suggestions = generate_mapping_suggestions(headers, schema, sample_rows)
        if mapping is not None:
            return dict(mapping), suggestions
        template = self.templates.find_matching(source, headers)
        if template is not None:
            return dict(template.column_mapping), suggestions
        return suggestions_to_mapping(suggestions), suggestions

    @staticmethod
    def _prepare_row(
        raw: Mapping[str, str], mapping: Mapping[str, str], schema: SourceSchema, row_index: int
    ) -> tuple[dict[str, str | None], list[ValidationError]]:
        mapped = normalize_row_status(apply_mapping(raw, mapping), schema.source)
        return mapped, validate_mapped_row(mapped, schema, row_index)

    # ---- preview ----

    def preview(self, source: str, content: str, mapping: Mapping[str, str] | None = None) -> PreviewResult:
        """Map and validate every row without writing anything."""
        limits = self._settings.imports
        schema = get_schema(source)
        parsed = parse_csv_content(content, limits.sample_size)
        column_mapping, suggestions = self.resolve_mapping(source, parsed.headers, parsed.sample_rows, mapping)

        preview: list[dict[str, str | None]] = []
        errors: list[ValidationError] = []
        error_rows = 0
        for index, raw in enumerate(parsed.rows, start=1):
            mapped, row_errors = self._prepare_row(raw, column_mapping, schema, index)
            if len(preview) < limits.preview_limit:
                preview.append(mapped)
            if row_errors:
                error_rows += 1
                errors.extend(row_errors)

        return PreviewResult(
            source=schema.source,
            headers=parsed.headers,
            total_rows=parsed.total_rows,
            valid_rows=parsed.total_rows - error_rows,
            error_rows=error_rows,
            column_mapping=column_mapping,
            suggestions=suggestions,
            preview=preview,
            errors=errors[:limits.preview_error_limit],
            parse_errors=parsed.errors,
        )

    # ---- import ----

    def run_import(
        self, source: str, file_name: str, content: str, mapping: Mapping[str, str] | None = None
    ) -> ImportResult:
        """Import every row of a CSV file and return the tallies.

        Raises:
            UnknownSourceError: no schema for ``source``.
            ImportStartError: the import history record could not be created.
        """
        limits = self._settings.imports
        schema = get_schema(source)
        parsed = parse_csv_content(content, limits.sample_size)
        column_mapping, _ = self.resolve_mapping(source, parsed.headers, parsed.sample_rows, mapping)

        record = ImportRecord(
            org_id=self._org_id,
            source=SourceType(source),
            file_name=file_name,
            file_size=len(content.encode("utf-8")),
            status=ImportStatus.PROCESSING,
            total_rows=parsed.total_rows,
            column_mapping=column_mapping,
            started_at=datetime.now(timezone.utc),
        )
        try:
            import_id = self._imports.create_import(record)
        except StoreError as exc:
            raise ImportStartError(f"Could not create import record: {exc}") from exc

        log = logger.bind(import_id=import_id, source=str(source))
        log.info("import_started", file_name=file_name, total_rows=parsed.total_rows)
        if parsed.errors:
            log.warning("import_parse_errors", count=len(parsed.errors))

        errors: list[ValidationError] = []
        processed = error_rows = skipped = new_customers = matched = 0
        for index, raw in enumerate(parsed.rows, start=1):
            mapped, row_errors = self._prepare_row(raw, column_mapping, schema, index)
            if row_errors:
                errors.extend(row_errors)
                error_rows += 1
                continue

            try:
                result = self.stitcher.stitch(
                    source,
                    mapped.get(schema.id_field),
                    mapped.get(schema.email_field),
                    mapped.get(schema.name_field),
                    import_id=import_id,
                )
                table, fields = build_source_record(
                    source,
                    mapped,
                    org_id=self._org_id,
                    customer_id=result.customer_id,
                    import_id=import_id,
                    raw_row=raw,
                )
                self._imports.insert_source_record(table, fields)
            except DuplicateRecordError as exc:
                log.debug("import_row_duplicate", row=index, key=exc.key)
                skipped += 1
                continue
            except TailorLoomError as exc:
                log.warning("import_row_failed", row=index, error=str(exc), error_type=type(exc).__name__)
                errors.append(ValidationError(row=index, field=ROW_ERROR_FIELD, message=str(exc)))
                error_rows += 1
                continue

            processed += 1
            if result.is_new:
                new_customers += 1
            if result.matched_by in (MatchedBy.EXTERNAL_ID, MatchedBy.EMAIL):
                matched += 1

        status = ImportStatus.FAILED if error_rows == parsed.total_rows else ImportStatus.COMPLETED
        try:
            self._imports.update_import(
                import_id,
                status=status,
                processed_rows=processed,
                error_rows=error_rows,
                skipped_rows=skipped,
                errors=errors[:limits.stored_error_limit],
                completed_at=datetime.now(timezone.utc),
            )
        except StoreError as exc:
            log.error("import_finalize_failed", error=str(exc))

        conflicts = 0
        try:
            conflicts = self.scanner.scan(import_id)
        except TailorLoomError as exc:
            log.warning("conflict_scan_failed", error=str(exc), error_type=type(exc).__name__)

        log.info(
            "import_finished",
            status=str(status),
            processed=processed,
            error_rows=error_rows,
            skipped=skipped,
            conflicts=conflicts,
        )
        return ImportResult(
            import_id=import_id,
            status=status,
            total_rows=parsed.total_rows,
            processed_rows=processed,
            error_rows=error_rows,
            skipped_rows=skipped,
            new_customers=new_customers,
            matched_customers=matched,
            conflicts_flagged=conflicts,
            errors=errors[:limits.stored_error_limit],
        )
