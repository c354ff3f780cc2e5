"""Google Vision OCR provider implementation."""

from __future__ import annotations

import json
import logging
import os
from io import BytesIO
from pathlib import Path

from PIL import Image

from compliscan.exceptions import AuthenticationError, CompliScanError, ImageError, RateLimitError
from compliscan.providers.base import BaseOCRProvider, ImageInput
from compliscan.schema import ImageResolution, OCRResult


class GoogleVisionOCRProvider(BaseOCRProvider):
    """Google Vision document text detection."""

    def __init__(self, client=None, *, language_hints: list[str] | None = None):
        self.logger = logging.getLogger(__name__)
        hints = os.getenv("COMPLISCAN_OCR_LANGUAGES", "en,hi")
        self.language_hints = language_hints or [h.strip() for h in hints.split(",") if h.strip()]

        if client is not None:
            self.client = client
            self._vision = None
            return

        try:
            from google.cloud import vision  # type: ignore
        except Exception as exc:
            raise CompliScanError(
                "google-cloud-vision is required for OCR mode. "
                "Install dependencies and set GOOGLE_APPLICATION_CREDENTIALS."
            ) from exc

        self._vision = vision
        try:
            credentials_json = os.getenv("GOOGLE_APPLICATION_CREDENTIALS_JSON")
            if credentials_json:
                from google.oauth2 import service_account  # type: ignore

                info = json.loads(credentials_json)
                credentials = service_account.Credentials.from_service_account_info(info)
                self.client = vision.ImageAnnotatorClient(credentials=credentials)
            else:
                self.client = vision.ImageAnnotatorClient()
        except Exception as exc:
            raise AuthenticationError(
                "Failed to initialize Google Vision client. "
                "Check GOOGLE_APPLICATION_CREDENTIALS(_JSON) and GCP IAM permissions."
            ) from exc

    def _load_image(self, image: ImageInput) -> Image.Image:
        if isinstance(image, Image.Image):
            return image

        path = Path(image) if isinstance(image, str) else image
        if not path.exists():
            raise ImageError(f"Image file not found: {path}")

        try:
            return Image.open(path)
        except Exception as e:
            raise ImageError(f"Failed to open image: {e}") from e

    def _detect(self, content: bytes):
        try:
            if self._vision is not None:
                image = self._vision.Image(content=content)
                context = self._vision.ImageContext(language_hints=self.language_hints)
            else:
                image = {"content": content}
                context = {"language_hints": self.language_hints}
            response = self.client.document_text_detection(image=image, image_context=context)
        except Exception as exc:
            message = str(exc).lower()
            if "quota" in message or "rate" in message:
                raise RateLimitError(f"OCR quota exceeded: {exc}") from exc
            if "credential" in message or "permission" in message or "auth" in message:
                raise AuthenticationError(f"OCR authentication failed: {exc}") from exc
            raise CompliScanError(f"OCR request failed: {exc}") from exc

        error_obj = getattr(response, "error", None)
        error_message = getattr(error_obj, "message", "") if error_obj else ""
        if error_message:
            lowered = error_message.lower()
            if "quota" in lowered or "rate" in lowered:
                raise RateLimitError(f"OCR quota exceeded: {error_message}")
            if "permission" in lowered or "auth" in lowered:
                raise AuthenticationError(f"OCR authentication failed: {error_message}")
            raise CompliScanError(f"OCR request failed: {error_message}")
        return response

    def recognize(self, image: ImageInput) -> OCRResult:
        pil_image = self._load_image(image)
        resolution = ImageResolution(width=pil_image.width, height=pil_image.height)

        try:
            with BytesIO() as buffer:
                fmt = (pil_image.format or "PNG").upper()
                if fmt not in {"JPEG", "PNG", "WEBP"}:
                    fmt = "PNG"
                pil_image.save(buffer, format=fmt)
                content = buffer.getvalue()
            response = self._detect(content)
        except (AuthenticationError, RateLimitError, ImageError, CompliScanError):
            raise
        except Exception as exc:
            raise ImageError(f"Failed to recognize label text: {exc}") from exc

        text, confidence = _read_annotation(response)
        self.logger.debug("ocr finished: %d chars, confidence %.2f", len(text), confidence)
        return OCRResult(text=text, confidence=confidence, resolution=resolution)


def _read_annotation(response) -> tuple[str, float]:
    annotation = getattr(response, "full_text_annotation", None)
    text = (getattr(annotation, "text", "") or "").strip() if annotation else ""
    pages = list(getattr(annotation, "pages", None) or []) if annotation else []
    page_confidences = [float(getattr(page, "confidence", 0.0) or 0.0) for page in pages]
    confidence = sum(page_confidences) / len(page_confidences) if page_confidences else 0.0

    if not text:
        annotations = getattr(response, "text_annotations", None) or []
        if annotations:
            text = (getattr(annotations[0], "description", "") or "").strip()
    return text, min(1.0, max(0.0, confidence))
