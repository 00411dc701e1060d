"""Mapping suggestion, source detection, and saved template endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from tailorloom.ingest.importer import ImportService
from tailorloom.mapping.suggestions import generate_mapping_suggestions, suggestions_to_mapping
from tailorloom.models.mapping import DetectionResult, MappingSuggestion, SavedMapping
from tailorloom.schemas import get_schema

router = APIRouter(tags=["mappings"])


class HeadersRequest(BaseModel):
    headers: list[str]
    sample_rows: list[dict[str, str]] = Field(default_factory=list)


class SuggestRequest(HeadersRequest):
    source: str


class SuggestResponse(BaseModel):
    suggestions: list[MappingSuggestion]
    column_mapping: dict[str, str]


class DetectResponse(BaseModel):
    results: list[DetectionResult]
    confident: bool


class SaveTemplateRequest(BaseModel):
    name: str
    column_mapping: dict[str, str]
    sample_headers: list[str] = Field(default_factory=list)
    is_default: bool = False


def _service(request: Request) -> ImportService:
    return request.app.state.import_service


@router.post("/suggest")
async def suggest(body: SuggestRequest) -> SuggestResponse:
    suggestions = generate_mapping_suggestions(body.headers, get_schema(body.source), body.sample_rows)
    return SuggestResponse(suggestions=suggestions, column_mapping=suggestions_to_mapping(suggestions))


@router.post("/detect")
def detect(body: HeadersRequest, request: Request) -> DetectResponse:
    results, confident = _service(request).detect(body.headers, body.sample_rows)
    return DetectResponse(results=results, confident=confident)


@router.get("/saved/{source}")
def list_saved(source: str, request: Request) -> list[SavedMapping]:
    get_schema(source)
    return _service(request).templates.list_templates(source)


@router.post("/saved/{source}", status_code=201)
def save(source: str, body: SaveTemplateRequest, request: Request) -> SavedMapping:
    get_schema(source)
    return _service(request).templates.save_template(
        source, body.name, body.column_mapping, body.sample_headers, body.is_default,
    )


@router.delete("/saved/{mapping_id}", status_code=204)
def delete_saved(mapping_id: str, request: Request) -> None:
    _service(request).templates.delete_template(mapping_id)
