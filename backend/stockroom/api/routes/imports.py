"""
Import API routes — catalog import reconciliation.

Endpoints:
  GET    /api/v1/import/template                  — Download a CSV template
  GET    /api/v1/import/profiles                  — List import profiles
  GET    /api/v1/import/profiles/:key             — Get a profile
  PUT    /api/v1/import/profiles/:key             — Save a profile
  DELETE /api/v1/import/profiles/:key             — Delete a saved profile

  POST   /api/v1/import/sessions                  — Upload a file, start a session
  GET    /api/v1/import/sessions/:id              — Session status
  PUT    /api/v1/import/sessions/:id/mapping      — Bind columns to catalog fields
  GET    /api/v1/import/sessions/:id/preview      — Validate the first rows
  POST   /api/v1/import/sessions/:id/conflicts    — Detect supplier/category conflicts
  GET    /api/v1/import/sessions/:id/conflicts    — Current conflicts
  POST   /api/v1/import/sessions/:id/conflicts/:cid/resolve — Map / create / split
  POST   /api/v1/import/sessions/:id/commit       — Write rows to the catalog
  POST   /api/v1/import/sessions/:id/cancel       — Cancel before commit
  DELETE /api/v1/import/sessions/:id              — Discard a session

Sessions live in process memory; one engine instance serves one
operator's imports at a time.
"""

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.core.catalog_fields import ItemKind
from stockroom.core.config import settings
from stockroom.core.database import get_db
from stockroom.schemas.imports import (
    CommitResponse,
    ConflictListResponse,
    ImportProfile,
    MappingRequest,
    PreviewRow,
    ProfileResponse,
    ResolutionDecision,
    ResolutionSummary,
    SessionResponse,
)
from stockroom.services.catalog_store import SqlCatalogStore
from stockroom.services.errors import (
    CatalogStoreError,
    ConflictResolutionError,
    MappingError,
    ParseError,
    ProfileError,
    SessionStateError,
)
from stockroom.services.profiles import ProfileStore, profile_key
from stockroom.services.session import ImportSession, SessionRegistry
from stockroom.services.templates import build_template, template_filename

router = APIRouter()

sessions = SessionRegistry()


# ─── Helpers ───────────────────────────────────────────────────

def _get_session_or_404(session_id: str) -> ImportSession:
    session = sessions.get(session_id)
    if not session:
        raise HTTPException(status_code=404, detail=f"Import session not found: {session_id}")
    return session


def _profile_response(key: str, profile: ImportProfile) -> ProfileResponse:
    return ProfileResponse(
        key=key,
        builtin=ProfileStore.is_builtin(key),
        **profile.model_dump(),
    )


# ─── Template ─────────────────────────────────────────────────

@router.get("/template")
async def download_template(
    kind: ItemKind = Query(ItemKind.RESELLING, description="Default item kind"),
):
    """CSV template with one sample row per item kind, the chosen kind first."""
    return Response(
        content=build_template(kind),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{template_filename(kind)}"'},
    )


# ─── Profiles ─────────────────────────────────────────────────

@router.get("/profiles", response_model=list[ProfileResponse])
async def list_profiles(db: AsyncSession = Depends(get_db)):
    profiles = await ProfileStore(db).list_profiles()
    return [_profile_response(key, p) for key, p in profiles.items()]


@router.get("/profiles/{key}", response_model=ProfileResponse)
async def get_profile(key: str, db: AsyncSession = Depends(get_db)):
    profile = await ProfileStore(db).get_profile(key)
    if not profile:
        raise HTTPException(status_code=404, detail=f"Import profile not found: {key}")
    return _profile_response(profile_key(key), profile)


@router.put("/profiles/{key}", response_model=ProfileResponse)
async def save_profile(
    key: str,
    profile: ImportProfile,
    db: AsyncSession = Depends(get_db),
):
    """Save a profile. The key must be the one derived from the profile name."""
    if profile_key(profile.name) != key:
        raise HTTPException(
            status_code=400,
            detail=f"Profile key '{key}' does not match name '{profile.name}' "
                   f"(expected '{profile_key(profile.name)}')",
        )
    try:
        saved_key = await ProfileStore(db).save_profile(profile)
    except ProfileError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except MappingError as e:
        raise HTTPException(status_code=400, detail=e.message)
    return _profile_response(saved_key, profile)


@router.delete("/profiles/{key}", status_code=204)
async def delete_profile(key: str, db: AsyncSession = Depends(get_db)):
    try:
        deleted = await ProfileStore(db).delete_profile(key)
    except ProfileError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Import profile not found: {key}")


# ─── Sessions ─────────────────────────────────────────────────

@router.post("/sessions", response_model=SessionResponse, status_code=201)
async def start_session(
    file: UploadFile = File(...),
    profile: str | None = Form(None, description="Profile key or name to apply"),
    db: AsyncSession = Depends(get_db),
):
    """
    Upload a delimited or spreadsheet file and start an import session.

    The response carries the parsed headers, a few sample rows and the
    suggested mapping (from the profile when one is given).
    """
    import_profile = None
    if profile:
        import_profile = await ProfileStore(db).get_profile(profile)
        if not import_profile:
            raise HTTPException(status_code=404, detail=f"Import profile not found: {profile}")

    file_bytes = await file.read()
    try:
        session = ImportSession.start(file_bytes, filename=file.filename, profile=import_profile)
    except ParseError as e:
        raise HTTPException(
            status_code=400,
            detail={"reason": e.reason.value, "message": e.message},
        )

    sessions.add(session)
    return session.to_response()


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str):
    return _get_session_or_404(session_id).to_response()


@router.put("/sessions/{session_id}/mapping", response_model=SessionResponse)
async def apply_mapping(
    session_id: str,
    payload: MappingRequest,
    db: AsyncSession = Depends(get_db),
):
    """Bind columns to catalog fields. Name must be mapped to advance."""
    session = _get_session_or_404(session_id)
    try:
        await session.apply_mapping(
            payload.field_mapping,
            payload.options,
            save_profile_as=payload.save_profile_as,
            profiles=ProfileStore(db),
        )
    except (MappingError, ProfileError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session.to_response()


@router.get("/sessions/{session_id}/preview", response_model=list[PreviewRow])
async def preview_session(
    session_id: str,
    limit: int = Query(10, ge=1, le=100),
):
    session = _get_session_or_404(session_id)
    try:
        return session.preview(limit=limit)
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))


def _conflict_list(session: ImportSession) -> ConflictListResponse:
    workflow = session.workflow
    return ConflictListResponse(
        conflicts=workflow.conflicts,
        pending=len(workflow.pending),
        auto_resolved=workflow.auto_resolved,
        resolution_map=workflow.resolution_map,
    )


@router.post("/sessions/{session_id}/conflicts", response_model=ConflictListResponse)
async def detect_conflicts(
    session_id: str,
    db: AsyncSession = Depends(get_db),
):
    """
    Detect supplier/category references with no canonical match.

    Exact (case-insensitive) matches are resolved silently and show up
    only in the resolution map. Running detection again starts over.
    """
    session = _get_session_or_404(session_id)
    try:
        await session.detect_conflicts(SqlCatalogStore(db))
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _conflict_list(session)


@router.get("/sessions/{session_id}/conflicts", response_model=ConflictListResponse)
async def get_conflicts(session_id: str):
    session = _get_session_or_404(session_id)
    if session.workflow is None:
        raise HTTPException(status_code=409, detail="Conflicts have not been detected for this session")
    return _conflict_list(session)


@router.post(
    "/sessions/{session_id}/conflicts/{conflict_id}/resolve",
    response_model=ResolutionSummary,
)
async def resolve_conflict(
    session_id: str,
    conflict_id: str,
    decision: ResolutionDecision,
    db: AsyncSession = Depends(get_db),
):
    """Map a conflict to an existing entity, create a new one, or split a group."""
    session = _get_session_or_404(session_id)
    if session.workflow is None:
        raise HTTPException(status_code=409, detail="Conflicts have not been detected for this session")
    if session.workflow.find_conflict(conflict_id) is None:
        raise HTTPException(status_code=404, detail=f"Conflict not found: {conflict_id}")
    try:
        return await session.resolve(SqlCatalogStore(db), conflict_id, decision)
    except (ConflictResolutionError, SessionStateError) as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/sessions/{session_id}/commit", response_model=CommitResponse)
async def commit_session(
    session_id: str,
    db: AsyncSession = Depends(get_db),
):
    """
    Write every row to the catalog.

    Refused while any conflict is pending. Row failures do not stop the
    batch; they are counted and listed (first few) in the response.
    """
    session = _get_session_or_404(session_id)
    try:
        stats = await session.commit(SqlCatalogStore(db))
    except (ConflictResolutionError, SessionStateError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except CatalogStoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return CommitResponse(
        stats=stats,
        error_summary=stats.error_summary(settings.IMPORT_ERROR_DISPLAY_LIMIT),
    )


@router.post("/sessions/{session_id}/cancel", response_model=SessionResponse)
async def cancel_session(session_id: str):
    session = _get_session_or_404(session_id)
    try:
        session.cancel()
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session.to_response()


@router.delete("/sessions/{session_id}", status_code=204)
async def discard_session(session_id: str):
    if not sessions.remove(session_id):
        raise HTTPException(status_code=404, detail=f"Import session not found: {session_id}")
