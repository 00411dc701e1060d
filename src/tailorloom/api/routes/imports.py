"""CSV preview, import, and conflict scan endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel

from tailorloom.ingest.importer import ImportService
from tailorloom.models.imports import ImportResult, PreviewResult

router = APIRouter(tags=["imports"])


class PreviewRequest(BaseModel):
    source: str
    content: str
    column_mapping: Optional[dict[str, str]] = None


class ImportRequest(PreviewRequest):
    file_name: str = "upload.csv"


def _service(request: Request) -> ImportService:
    return request.app.state.import_service


@router.post("/preview")
def preview(body: PreviewRequest, request: Request) -> PreviewResult:
    return _service(request).preview(body.source, body.content, body.column_mapping)


@router.post("", status_code=201)
def run_import(body: ImportRequest, request: Request) -> ImportResult:
    return _service(request).run_import(body.source, body.file_name, body.content, body.column_mapping)


@router.post("/{import_id}/conflicts/scan")
def scan_conflicts(import_id: str, request: Request) -> dict[str, int | str]:
    flagged = _service(request).scanner.scan(import_id)
    return {"import_id": import_id, "flagged": flagged}
