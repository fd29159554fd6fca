"""
Integration tests for the Roasts API.

Covers upload validation, the freemium allowance, history, ownership
and the PDF download. The language model is replaced with a fake
through app.dependency_overrides; uploads are real DOCX files built
with python-docx.
"""

import uuid
from io import BytesIO

import pytest
from docx import Document
from httpx import AsyncClient
from sqlalchemy import select

from app.database import AsyncSessionLocal
from app.main import app
from app.models import Roast, User
from app.routers.roasts import get_analysis_service, get_report_renderer
from app.schemas.roasts import RoastResult
from app.services.pdf_report import ReportGenerationError
from app.services.roast_analysis import AnalysisResult, RoastAnalysisError
from tests.helpers import SAMPLE_RESULT, auth_headers

DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

RESUME_LINES = [
    "Jane Doe - Senior Widget Engineer",
    "Responsible for widgets at Acme Corp from 2019 to 2024.",
    "Skills: Microsoft Word, teamwork, synergy, hard work, punctuality.",
]


def make_docx(*paragraphs: str) -> bytes:
    doc = Document()
    for text in paragraphs:
        doc.add_paragraph(text)
    buf = BytesIO()
    doc.save(buf)
    return buf.getvalue()


def resume_upload(filename="resume.docx", data=None, content_type=DOCX_TYPE) -> dict:
    if data is None:
        data = make_docx(*RESUME_LINES)
    return {"file": (filename, data, content_type)}


class FakeAnalysis:
    """Stands in for RoastAnalysisService."""

    def __init__(self, result=None, error=None):
        self.result = result or RoastResult.model_validate(SAMPLE_RESULT)
        self.error = error
        self.calls = []

    def roast(self, resume_text: str) -> AnalysisResult:
        self.calls.append(resume_text)
        if self.error:
            raise self.error
        return AnalysisResult(result=self.result, model="fake-model")


def use_analysis(fake: FakeAnalysis) -> FakeAnalysis:
    app.dependency_overrides[get_analysis_service] = lambda: fake
    return fake


async def _load_roast(roast_id) -> Roast:
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(Roast).where(Roast.id == uuid.UUID(str(roast_id))))
        return result.scalar_one()


# --- POST /roasts ---

@pytest.mark.asyncio
async def test_create_roast_success(client: AsyncClient):
    """A new user's first roast is allowed, stored and scored."""
    fake = use_analysis(FakeAnalysis())
    user_id = uuid.uuid4()
    headers = auth_headers(user_id, f"new_{user_id.hex[:8]}@example.com")

    response = await client.post("/api/v1/roasts", files=resume_upload(), headers=headers)

    assert response.status_code == 200
    roast = await _load_roast(response.json()["id"])
    assert roast.status == "completed"
    assert roast.score == 40
    assert roast.result_json["one_liner"] == "Generic and forgettable."
    assert "Acme Corp" in roast.resume_text
    assert len(fake.calls) == 1

    # The profile row is created on first use
    async with AsyncSessionLocal() as session:
        profile = await session.get(User, user_id)
    assert profile is not None
    assert profile.plan == "free"


@pytest.mark.asyncio
async def test_create_roast_requires_auth(client: AsyncClient):
    response = await client.post("/api/v1/roasts", files=resume_upload())
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_roast_rejects_bad_token(client: AsyncClient):
    response = await client.post(
        "/api/v1/roasts",
        files=resume_upload(),
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_roast_without_file(client: AsyncClient, user_headers):
    use_analysis(FakeAnalysis())
    response = await client.post("/api/v1/roasts", headers=user_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "No file uploaded"


@pytest.mark.asyncio
async def test_create_roast_unsupported_type(client: AsyncClient, user_headers):
    use_analysis(FakeAnalysis())
    response = await client.post(
        "/api/v1/roasts",
        files=resume_upload("resume.txt", b"plain text resume", "text/plain"),
        headers=user_headers,
    )

    assert response.status_code == 400
    assert "Unsupported file type" in response.json()["detail"]


@pytest.mark.asyncio
async def test_create_roast_file_too_large(client: AsyncClient, user_headers):
    use_analysis(FakeAnalysis())
    oversized = b"0" * (5 * 1024 * 1024 + 1)
    response = await client.post(
        "/api/v1/roasts",
        files=resume_upload("resume.pdf", oversized, "application/pdf"),
        headers=user_headers,
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "File is too large (max 5MB)"


@pytest.mark.asyncio
async def test_create_roast_not_enough_text(client: AsyncClient, user_headers):
    fake = use_analysis(FakeAnalysis())
    response = await client.post(
        "/api/v1/roasts",
        files=resume_upload(data=make_docx("Jane Doe")),
        headers=user_headers,
    )

    assert response.status_code == 400
    assert "Could not extract enough text" in response.json()["detail"]
    assert fake.calls == []


@pytest.mark.asyncio
async def test_create_roast_unreadable_file(client: AsyncClient, user_headers):
    """A corrupt upload with a valid extension is a 400, not a crash."""
    use_analysis(FakeAnalysis())
    response = await client.post(
        "/api/v1/roasts",
        files=resume_upload("resume.pdf", b"%PDF-1.4 garbage", "application/pdf"),
        headers=user_headers,
    )

    assert response.status_code == 400
    assert "Could not extract enough text" in response.json()["detail"]


@pytest.mark.asyncio
async def test_create_roast_free_limit_reached(client: AsyncClient, test_user, test_roast, user_headers):
    """A free user who already has a completed roast gets 402."""
    fake = use_analysis(FakeAnalysis())
    response = await client.post("/api/v1/roasts", files=resume_upload(), headers=user_headers)

    assert response.status_code == 402
    assert response.json()["detail"] == "Free plan limit reached"
    assert fake.calls == []


@pytest.mark.asyncio
async def test_failed_roasts_do_not_use_the_allowance(client: AsyncClient, test_user, processing_roast, user_headers):
    use_analysis(FakeAnalysis())
    response = await client.post("/api/v1/roasts", files=resume_upload(), headers=user_headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_paid_plan_has_no_limit(client: AsyncClient, test_user, test_roast, user_headers):
    async with AsyncSessionLocal() as session:
        user = await session.get(User, test_user.id)
        user.plan = "pro"
        await session.commit()

    use_analysis(FakeAnalysis())
    response = await client.post("/api/v1/roasts", files=resume_upload(), headers=user_headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_admin_email_bypasses_limit(client: AsyncClient):
    use_analysis(FakeAnalysis())
    user_id = uuid.uuid4()
    headers = auth_headers(user_id, "Admin@Example.com")

    first = await client.post("/api/v1/roasts", files=resume_upload(), headers=headers)
    second = await client.post("/api/v1/roasts", files=resume_upload(), headers=headers)

    assert first.status_code == 200
    assert second.status_code == 200


@pytest.mark.asyncio
async def test_create_roast_model_failure_marks_failed(client: AsyncClient, user_headers):
    use_analysis(FakeAnalysis(error=RoastAnalysisError("AI response was not valid JSON")))

    response = await client.post("/api/v1/roasts", files=resume_upload(), headers=user_headers)

    assert response.status_code == 500
    assert response.json()["detail"] == "AI response was not valid JSON"

    listing = await client.get("/api/v1/roasts", headers=user_headers)
    roasts = listing.json()["roasts"]
    assert len(roasts) == 1
    assert roasts[0]["status"] == "failed"
    assert roasts[0]["score"] is None


@pytest.mark.asyncio
async def test_create_roast_unexpected_failure_is_generic(client: AsyncClient, user_headers):
    use_analysis(FakeAnalysis(error=RuntimeError("socket closed")))

    response = await client.post("/api/v1/roasts", files=resume_upload(), headers=user_headers)

    assert response.status_code == 500
    assert "socket closed" not in response.json()["detail"]


# --- GET /roasts ---

@pytest.mark.asyncio
async def test_list_roasts(client: AsyncClient, test_roast, user_headers):
    response = await client.get("/api/v1/roasts", headers=user_headers)

    assert response.status_code == 200
    roasts = response.json()["roasts"]
    assert len(roasts) == 1
    assert roasts[0]["id"] == str(test_roast.id)
    assert roasts[0]["score"] == 40
    assert roasts[0]["status"] == "completed"
    assert roasts[0]["one_liner"] == "Generic and forgettable."


@pytest.mark.asyncio
async def test_list_roasts_only_shows_own(client: AsyncClient, test_roast):
    response = await client.get("/api/v1/roasts", headers=auth_headers(uuid.uuid4()))

    assert response.status_code == 200
    assert response.json()["roasts"] == []


@pytest.mark.asyncio
async def test_list_roasts_requires_auth(client: AsyncClient):
    response = await client.get("/api/v1/roasts")
    assert response.status_code == 401


# --- GET /roasts/{id} ---

@pytest.mark.asyncio
async def test_get_roast(client: AsyncClient, test_roast, user_headers):
    response = await client.get(f"/api/v1/roasts/{test_roast.id}", headers=user_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == str(test_roast.id)
    assert data["score"] == 40
    assert data["result_json"]["top_fixes"] == ["Add metrics", "Cut objective statement"]


@pytest.mark.asyncio
async def test_get_roast_of_another_user_is_404(client: AsyncClient, test_roast):
    response = await client.get(
        f"/api/v1/roasts/{test_roast.id}", headers=auth_headers(uuid.uuid4())
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_get_roast_not_found(client: AsyncClient, user_headers):
    response = await client.get(f"/api/v1/roasts/{uuid.uuid4()}", headers=user_headers)
    assert response.status_code == 404


# --- GET /roasts/{id}/pdf ---

@pytest.mark.asyncio
async def test_download_pdf(client: AsyncClient, test_roast, user_headers):
    response = await client.get(f"/api/v1/roasts/{test_roast.id}/pdf", headers=user_headers)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert (
        response.headers["content-disposition"]
        == f'attachment; filename="roast-{test_roast.id}.pdf"'
    )
    assert response.content[:5] == b"%PDF-"


@pytest.mark.asyncio
async def test_download_pdf_without_result(client: AsyncClient, processing_roast, user_headers):
    response = await client.get(f"/api/v1/roasts/{processing_roast.id}/pdf", headers=user_headers)

    assert response.status_code == 404
    assert response.json()["detail"] == "Roast not found"


@pytest.mark.asyncio
async def test_download_pdf_of_another_user_is_404(client: AsyncClient, test_roast):
    response = await client.get(
        f"/api/v1/roasts/{test_roast.id}/pdf", headers=auth_headers(uuid.uuid4())
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_download_pdf_requires_auth(client: AsyncClient, test_roast):
    response = await client.get(f"/api/v1/roasts/{test_roast.id}/pdf")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_download_pdf_malformed_result(client: AsyncClient, test_user, user_headers):
    roast = Roast(
        id=uuid.uuid4(),
        user_id=test_user.id,
        resume_text="Broken.",
        result_json={"overall_score": "off the charts"},
        status="completed",
    )
    async with AsyncSessionLocal() as session:
        session.add(roast)
        await session.commit()

    response = await client.get(f"/api/v1/roasts/{roast.id}/pdf", headers=user_headers)

    assert response.status_code == 422
    assert response.json()["detail"] == "Roast result is malformed"


@pytest.mark.asyncio
async def test_download_pdf_render_failure(client: AsyncClient, test_roast, user_headers):
    class BrokenRenderer:
        def render(self, *args, **kwargs):
            raise ReportGenerationError("Failed to generate PDF")

    app.dependency_overrides[get_report_renderer] = BrokenRenderer

    response = await client.get(f"/api/v1/roasts/{test_roast.id}/pdf", headers=user_headers)

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to generate PDF. Please try again."
