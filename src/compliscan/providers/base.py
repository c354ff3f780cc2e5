"""Collaborator interfaces: OCR engines and AI normalizers."""

from abc import ABC, abstractmethod
from pathlib import Path

from PIL import Image

from compliscan.schema import AINormalization, ComplianceExplanation, OCRResult

ImageInput = str | Path | Image.Image


class BaseOCRProvider(ABC):
    """Abstract base class for OCR providers."""

    @abstractmethod
    def recognize(self, image: ImageInput) -> OCRResult:
        """Recognize label text in an image.

        Args:
            image: Image input (file path, Path object, or PIL Image)

        Returns:
            OCRResult with the text, engine confidence and image resolution
        """
        pass


class BaseAINormalizer(ABC):
    """Abstract base class for AI field normalizers."""

    @abstractmethod
    def normalize(self, candidates: dict[str, str | None]) -> AINormalization:
        """Propose cleaned field values with per-field confidences.

        Args:
            candidates: Extracted field values keyed by field name

        Returns:
            AINormalization with suggested values and confidences
        """
        pass

    def explain(
        self,
        violations: list[str],
        product_name: str | None = None,
    ) -> ComplianceExplanation | None:
        """Explain violation messages in plain language.

        Normalizers without an explanation model return None.
        """
        return None
