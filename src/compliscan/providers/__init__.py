"""Collaborator adapters for compliscan."""

from compliscan.providers.base import BaseAINormalizer, BaseOCRProvider
from compliscan.providers.gemini import GeminiNormalizer
from compliscan.providers.google_vision_ocr import GoogleVisionOCRProvider

__all__ = ["BaseAINormalizer", "BaseOCRProvider", "GeminiNormalizer", "GoogleVisionOCRProvider"]
