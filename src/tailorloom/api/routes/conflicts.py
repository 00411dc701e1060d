"""Read-only listing of stitching conflicts awaiting review."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Request

from tailorloom.models.identity import ConflictStatus, StitchingConflict

router = APIRouter(tags=["conflicts"])


@router.get("")
def list_conflicts(request: Request, status: Optional[ConflictStatus] = None) -> list[StitchingConflict]:
    persistence = request.app.state.persistence
    org_id = request.app.state.settings.stitching.org_id
    return persistence.identity.list_conflicts(org_id, status)
