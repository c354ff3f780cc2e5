import base64
from io import BytesIO
import logging
import os
from pathlib import Path
import sys
import time

from fastapi import FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, Field

# Ensure local src package is importable in serverless runtime.
ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from compliscan import __version__  # noqa: E402
from compliscan.core import (  # noqa: E402
    build_report,
    check_html,
    check_image,
    check_text,
    explain_label,
    validate_label,
)
from compliscan.exceptions import (  # noqa: E402
    AuthenticationError,
    ContentError,
    ImageError,
    RateLimitError,
)
from compliscan.storage import SubmissionStore, SubmissionStoreConfig, new_submission_id  # noqa: E402

app = FastAPI(title="compliscan API", version=__version__)
logger = logging.getLogger(__name__)
SUBMISSION_STORE = SubmissionStore(SubmissionStoreConfig.from_env())

raw_origins = os.getenv("FRONTEND_ORIGINS", "*")
allow_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]
MAX_IMAGE_BYTES = int(os.getenv("MAX_IMAGE_BYTES", str(8 * 1024 * 1024)))
MAX_HTML_BYTES = int(os.getenv("MAX_HTML_BYTES", str(4 * 1024 * 1024)))
AI_EXPLANATIONS = os.getenv("COMPLISCAN_AI_EXPLANATIONS", "").strip().lower() in {"1", "true", "yes", "on"}
ALLOWED_MIME_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health() -> dict[str, bool]:
    return {"ok": True}


class CheckRequest(BaseModel):
    text: str | None = None
    html: str | None = None
    url: str | None = None
    imageBase64: str | None = None


class CheckResponse(BaseModel):
    id: str
    label: dict
    missing: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    fields: dict[str, str] = Field(default_factory=dict)
    processingTimeMs: int
    saved: bool = False
    explanation: dict | None = None


def _validate_payload_size(payload: bytes) -> None:
    if len(payload) > MAX_IMAGE_BYTES:
        raise HTTPException(status_code=413, detail="image too large")


def _validate_multipart_content_type(content_type: str | None) -> None:
    if not content_type:
        raise HTTPException(status_code=400, detail="image file is required")
    normalized = content_type.split(";")[0].strip().lower()
    if normalized not in ALLOWED_MIME_TYPES:
        raise HTTPException(status_code=400, detail="unsupported image content type")


def _decode_base64_image(image_base64: str) -> bytes:
    value = image_base64.strip()
    if not value:
        raise HTTPException(status_code=400, detail="imageBase64 is required")

    # Support data URL format: data:image/jpeg;base64,<payload>
    if value.startswith("data:"):
        _, sep, value = value.partition(",")
        if not sep:
            raise HTTPException(status_code=400, detail="invalid imageBase64 data URL")

    try:
        payload = base64.b64decode(value, validate=True)
    except Exception as exc:
        raise HTTPException(status_code=400, detail="invalid imageBase64 encoding") from exc

    if not payload:
        raise HTTPException(status_code=400, detail="empty file")
    _validate_payload_size(payload)

    return payload


async def _run_check(request: Request, image: UploadFile | None):
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("application/json"):
        try:
            body = CheckRequest.model_validate(await request.json())
        except Exception as exc:
            raise HTTPException(status_code=400, detail="invalid JSON body") from exc

        if body.imageBase64:
            payload = _decode_base64_image(body.imageBase64)
            return check_image(Image.open(BytesIO(payload))), "image"
        if body.html:
            if len(body.html.encode("utf-8")) > MAX_HTML_BYTES:
                raise HTTPException(status_code=413, detail="page too large")
            return check_html(body.html, url=body.url), body.url
        if body.text is not None:
            return check_text(body.text), "text"
        raise HTTPException(status_code=400, detail="one of imageBase64, html or text is required")

    if image is None:
        raise HTTPException(status_code=400, detail="image file is required")
    _validate_multipart_content_type(image.content_type)
    payload = await image.read()
    if not payload:
        raise HTTPException(status_code=400, detail="empty file")
    _validate_payload_size(payload)
    return check_image(Image.open(BytesIO(payload))), image.filename


@app.post("/check", response_model=CheckResponse)
async def check_label(request: Request, image: UploadFile | None = File(default=None)) -> CheckResponse:
    started = time.perf_counter()
    submission_id = new_submission_id()

    try:
        label, input_source = await _run_check(request, image)
    except UnidentifiedImageError as exc:
        raise HTTPException(status_code=400, detail="invalid image format") from exc
    except AuthenticationError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except RateLimitError as exc:
        raise HTTPException(status_code=429, detail=str(exc)) from exc
    except (ImageError, ContentError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("check failed")
        raise HTTPException(status_code=500, detail="internal_error") from exc

    validate_label(label)
    processing_time_ms = int((time.perf_counter() - started) * 1000)
    saved_id = SUBMISSION_STORE.save(
        label,
        submission_id=submission_id,
        input_source=input_source,
        processing_time_ms=processing_time_ms,
    )
    explanation = explain_label(label) if AI_EXPLANATIONS else None
    return CheckResponse(
        id=submission_id,
        processingTimeMs=processing_time_ms,
        saved=saved_id is not None,
        explanation=explanation.model_dump() if explanation else None,
        **build_report(label),
    )


@app.get("/submissions")
def list_submissions(
    user_id: str = "demo_user",
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> dict:
    try:
        submissions = SUBMISSION_STORE.list_submissions(user_id, limit, offset)
    except Exception as exc:
        logger.exception("submission history lookup failed")
        raise HTTPException(status_code=500, detail="internal_error") from exc
    return {
        "submissions": submissions,
        "total": len(submissions),
        "has_more": len(submissions) == limit,
    }


@app.get("/submissions/{submission_id}")
def get_submission(submission_id: str) -> dict:
    try:
        submission = SUBMISSION_STORE.get_submission(submission_id)
    except Exception as exc:
        logger.exception("submission lookup failed")
        raise HTTPException(status_code=500, detail="internal_error") from exc
    if submission is None:
        raise HTTPException(status_code=404, detail="submission not found")
    return submission


def _analytics(name: str, query, *args):
    try:
        return query(*args)
    except Exception as exc:
        logger.exception("%s analytics failed", name)
        raise HTTPException(status_code=500, detail="internal_error") from exc


@app.get("/analytics/trend")
def analytics_trend(user_id: str = "demo_user", days: int = Query(default=30, ge=1, le=365)) -> list[dict]:
    return _analytics("trend", SUBMISSION_STORE.compliance_trend, user_id, days)


@app.get("/analytics/brands")
def analytics_brands(user_id: str = "demo_user", limit: int = Query(default=10, ge=1, le=100)) -> list[dict]:
    return _analytics("brands", SUBMISSION_STORE.violations_by_brand, user_id, limit)


@app.get("/analytics/stats")
def analytics_stats(user_id: str = "demo_user") -> dict:
    return _analytics("stats", SUBMISSION_STORE.overall_stats, user_id)
