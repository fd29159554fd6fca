"""
Roast API endpoints.

These handle the roast lifecycle:
1. POST /roasts — Upload a resume, roast it, store the result
2. GET /roasts — List the user's past roasts (newest first)
3. GET /roasts/{id} — Get one roast with its full feedback
4. GET /roasts/{id}/pdf — Download the roast as a PDF report

Unlike a long-running pipeline, a roast is one short chain of calls, so
POST runs it inline and returns the finished roast's id. The blocking
steps (text extraction, the model call, PDF rendering) run in a worker
thread via asyncio.to_thread() so they don't stall the event loop.
"""

import asyncio
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import AuthUser, get_current_user
from app.config import Settings, get_settings
from app.database import get_db
from app.models import Roast
from app.schemas.roasts import (
    RoastCreateResponse,
    RoastListResponse,
    RoastResponse,
    RoastSummary,
)
from app.services.allowance import PlanState, allowance
from app.services.pdf_report import (
    ReportGenerationError,
    ReportInputError,
    RoastReportRenderer,
    read_logo,
)
from app.services.profiles import (
    UsernameTakenError,
    count_completed_roasts,
    get_or_create_profile,
)
from app.services.resume_parser import (
    UnsupportedFileType,
    extract_text,
    has_enough_text,
    is_supported,
)
from app.services.roast_analysis import RoastAnalysisError, RoastAnalysisService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/roasts", tags=["roasts"])

HISTORY_LIMIT = 50
NOT_ENOUGH_TEXT = (
    "Could not extract enough text from your resume. "
    "Please upload a higher quality PDF or DOCX."
)


def get_analysis_service(settings: Settings = Depends(get_settings)) -> RoastAnalysisService:
    return RoastAnalysisService(settings)


def get_report_renderer() -> RoastReportRenderer:
    return RoastReportRenderer()


@router.post("", response_model=RoastCreateResponse)
async def create_roast(
    file: Optional[UploadFile] = File(None),
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    analysis: RoastAnalysisService = Depends(get_analysis_service),
):
    """Roast an uploaded resume.

    Accepts PDF or DOCX up to MAX_UPLOAD_BYTES. Free users get
    FREE_ROAST_LIMIT completed roasts; after that this returns 402.
    """
    # --- Validate the upload ---
    if file is None:
        raise HTTPException(status_code=400, detail="No file uploaded")

    data = await file.read()
    if len(data) > settings.MAX_UPLOAD_BYTES:
        max_mb = settings.MAX_UPLOAD_BYTES // (1024 * 1024)
        raise HTTPException(status_code=400, detail=f"File is too large (max {max_mb}MB)")

    filename = file.filename or ""
    if not is_supported(filename):
        raise HTTPException(
            status_code=400,
            detail="Unsupported file type. Please upload a PDF or DOCX.",
        )

    # --- Profile + plan check ---
    try:
        profile = await get_or_create_profile(db, user)
    except UsernameTakenError:
        logger.exception("Failed to create profile for %s", user.id)
        raise HTTPException(status_code=500, detail="Failed to create user profile")

    completed = await count_completed_roasts(db, user.id)
    decision = allowance(user.email, PlanState(plan=profile.plan, completed_roasts=completed), settings)
    if not decision:
        raise HTTPException(status_code=402, detail=decision.reason)

    # --- Extract text ---
    try:
        resume_text = await asyncio.to_thread(extract_text, filename, data)
    except UnsupportedFileType as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("Text extraction failed for %s", filename)
        raise HTTPException(status_code=400, detail=NOT_ENOUGH_TEXT)

    if not has_enough_text(resume_text):
        raise HTTPException(status_code=400, detail=NOT_ENOUGH_TEXT)

    # --- Create the roast row, then call the model ---
    roast = Roast(user_id=user.id, resume_text=resume_text, status="processing")
    db.add(roast)
    await db.commit()
    await db.refresh(roast)

    logger.info("Roasting resume for user %s (roast %s)", user.id, roast.id)
    try:
        result = await asyncio.to_thread(analysis.roast, resume_text)
    except Exception as e:
        logger.exception("Roast %s failed", roast.id)
        roast.status = "failed"
        await db.commit()
        detail = str(e) if isinstance(e, RoastAnalysisError) else (
            "Something went wrong while roasting your resume. Please try again."
        )
        raise HTTPException(status_code=500, detail=detail)

    roast.result_json = result.result.model_dump()
    roast.score = result.result.overall_score
    roast.status = "completed"
    await db.commit()

    logger.info("Roast %s completed (score %s)", roast.id, roast.score)
    return RoastCreateResponse(id=roast.id)


@router.get("", response_model=RoastListResponse)
async def list_roasts(
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the user's roasts, newest first."""
    result = await db.execute(
        select(Roast)
        .where(Roast.user_id == user.id)
        .order_by(Roast.created_at.desc())
        .limit(HISTORY_LIMIT)
    )
    roasts = result.scalars().all()

    return RoastListResponse(roasts=[
        RoastSummary(
            id=r.id,
            created_at=r.created_at,
            score=r.score,
            status=r.status,
            one_liner=(r.result_json or {}).get("one_liner"),
        )
        for r in roasts
    ])


@router.get("/{roast_id}", response_model=RoastResponse)
async def get_roast(
    roast_id: UUID,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get one of the user's roasts."""
    roast = await _get_owned_roast(db, roast_id, user)
    return RoastResponse.model_validate(roast)


@router.get("/{roast_id}/pdf")
async def download_roast_pdf(
    roast_id: UUID,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    renderer: RoastReportRenderer = Depends(get_report_renderer),
):
    """Download the roast as a PDF.

    Generated on demand from the stored feedback; nothing is cached.
    """
    roast = await _get_owned_roast(db, roast_id, user)
    if not roast.result_json:
        raise HTTPException(status_code=404, detail="Roast not found")

    def render() -> bytes:
        logo = read_logo(settings.LOGO_PATH)
        return renderer.render(roast.result_json, str(roast.id), roast.score, logo).pdf_bytes

    try:
        pdf_bytes = await asyncio.to_thread(render)
    except ReportInputError as e:
        logger.error("Roast %s has a malformed result: %s", roast.id, e)
        raise HTTPException(status_code=422, detail="Roast result is malformed")
    except ReportGenerationError:
        raise HTTPException(status_code=500, detail="Failed to generate PDF. Please try again.")

    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="roast-{roast.id}.pdf"'},
    )


# --- Helper functions ---

async def _get_owned_roast(db: AsyncSession, roast_id: UUID, user: AuthUser) -> Roast:
    """Load a roast that belongs to `user`. Anyone else's roast is a 404."""
    result = await db.execute(
        select(Roast).where(Roast.id == roast_id, Roast.user_id == user.id)
    )
    roast = result.scalar_one_or_none()
    if not roast:
        raise HTTPException(status_code=404, detail="Roast not found")
    return roast
