"""Tests for Google Vision OCR provider."""

from types import SimpleNamespace

import pytest
from PIL import Image

from compliscan.exceptions import AuthenticationError, CompliScanError, ImageError, RateLimitError
from compliscan.providers.google_vision_ocr import GoogleVisionOCRProvider


def _response(text="", pages=(), annotations=(), error=""):
    return SimpleNamespace(
        full_text_annotation=SimpleNamespace(
            text=text,
            pages=[SimpleNamespace(confidence=c) for c in pages],
        ),
        text_annotations=[SimpleNamespace(description=d) for d in annotations],
        error=SimpleNamespace(message=error),
    )


class MockOCRClient:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def document_text_detection(self, image, image_context):
        self.calls.append((image, image_context))
        if self.exc is not None:
            raise self.exc
        return self.response


def test_recognize_returns_text_confidence_and_resolution(monkeypatch):
    monkeypatch.delenv("COMPLISCAN_OCR_LANGUAGES", raising=False)
    client = MockOCRClient(_response(text="MRP: ₹ 120\nNet Wt: 50 g\n", pages=[0.9, 0.7]))
    provider = GoogleVisionOCRProvider(client=client)

    result = provider.recognize(Image.new("RGB", (640, 480), color="white"))

    assert result.text == "MRP: ₹ 120\nNet Wt: 50 g"
    assert result.confidence == pytest.approx(0.8)
    assert result.resolution.width == 640
    assert result.resolution.height == 480
    image, context = client.calls[0]
    assert image["content"]
    assert context == {"language_hints": ["en", "hi"]}


def test_recognize_falls_back_to_text_annotations():
    client = MockOCRClient(_response(annotations=["Made in India"]))

    result = GoogleVisionOCRProvider(client=client).recognize(Image.new("RGB", (20, 20)))

    assert result.text == "Made in India"
    assert result.confidence == 0.0


def test_recognize_missing_file_raises(tmp_path):
    provider = GoogleVisionOCRProvider(client=MockOCRClient(_response()))

    with pytest.raises(ImageError):
        provider.recognize(tmp_path / "missing.png")


def test_recognize_reads_image_path(tmp_path):
    path = tmp_path / "label.png"
    Image.new("RGB", (400, 300), color="white").save(path)
    provider = GoogleVisionOCRProvider(client=MockOCRClient(_response(text="Net Wt: 1 kg", pages=[0.5])))

    result = provider.recognize(str(path))

    assert result.text == "Net Wt: 1 kg"
    assert (result.resolution.width, result.resolution.height) == (400, 300)


@pytest.mark.parametrize(
    "message, error",
    [
        ("Quota exceeded for project", RateLimitError),
        ("Permission denied on resource", AuthenticationError),
        ("Internal failure", CompliScanError),
    ],
)
def test_response_errors_are_mapped(message, error):
    provider = GoogleVisionOCRProvider(client=MockOCRClient(_response(error=message)))

    with pytest.raises(error):
        provider.recognize(Image.new("RGB", (20, 20)))


def test_client_exceptions_are_mapped():
    provider = GoogleVisionOCRProvider(client=MockOCRClient(exc=RuntimeError("rate limited")))

    with pytest.raises(RateLimitError):
        provider.recognize(Image.new("RGB", (20, 20)))


def test_language_hints_from_env(monkeypatch):
    monkeypatch.setenv("COMPLISCAN_OCR_LANGUAGES", "en, ta")

    provider = GoogleVisionOCRProvider(client=MockOCRClient(_response()))

    assert provider.language_hints == ["en", "ta"]
