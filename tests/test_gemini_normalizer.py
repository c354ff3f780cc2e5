"""Tests for Gemini AI normalizer."""

import json
from types import SimpleNamespace

import pytest

from compliscan.exceptions import AuthenticationError, CompliScanError
from compliscan.providers.gemini import GeminiNormalizer


class MockLLMClient:
    def __init__(self, text=None, exc=None):
        self.calls = []
        outer = self

        class Models:
            @staticmethod
            def generate_content(model, contents, config):
                outer.calls.append((model, contents, config))
                if exc is not None:
                    raise exc
                return SimpleNamespace(text=text)

        self.models = Models()


def test_requires_api_key(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)

    with pytest.raises(AuthenticationError):
        GeminiNormalizer()


def test_normalize_parses_response(monkeypatch):
    monkeypatch.delenv("COMPLISCAN_AI_MODEL", raising=False)
    client = MockLLMClient(
        text=json.dumps(
            {
                "product_name": "Organic Green Tea",
                "manufacturer": "Leafy Co",
                "net_quantity": "250 g",
                "confidence": {"product_name": 0.9, "manufacturer": 0.85},
            }
        )
    )
    normalizer = GeminiNormalizer(client=client)

    result = normalizer.normalize({"product_name": "Organic Green Tea | Buy Online", "MRP": "499"})

    assert result.manufacturer == "Leafy Co"
    assert result.confidences() == {"product_name": 0.9, "manufacturer": 0.85}
    model, contents, config = client.calls[0]
    assert model == "gemini-2.0-flash"
    assert "Organic Green Tea | Buy Online" in contents[0]
    assert config.response_mime_type == "application/json"


def test_model_from_env(monkeypatch):
    monkeypatch.setenv("COMPLISCAN_AI_MODEL", "gemini-2.5-flash")

    normalizer = GeminiNormalizer(client=MockLLMClient(text="{}"))

    assert normalizer.model == "gemini-2.5-flash"


def test_failure_raises_compliscan_error():
    normalizer = GeminiNormalizer(client=MockLLMClient(exc=RuntimeError("unavailable")))

    with pytest.raises(CompliScanError):
        normalizer.normalize({"MRP": "499"})


def test_invalid_json_raises_compliscan_error():
    normalizer = GeminiNormalizer(client=MockLLMClient(text="not json"))

    with pytest.raises(CompliScanError):
        normalizer.normalize({"MRP": "499"})


def test_explain_parses_response():
    client = MockLLMClient(
        text=json.dumps(
            {"explanation": "Add the consumer care number.", "severity": "high", "confidence": 0.8}
        )
    )
    normalizer = GeminiNormalizer(client=client)

    result = normalizer.explain(["Consumer care details missing"], "Green Tea")

    assert result.explanation == "Add the consumer care number."
    assert result.severity == "high"
    _, contents, config = client.calls[0]
    assert "Product: Green Tea" in contents[0]
    assert "Violations: Consumer care details missing" in contents[0]
    assert config.temperature == 0.4


def test_explain_without_violations_skips_model():
    client = MockLLMClient(text="{}")

    assert GeminiNormalizer(client=client).explain([]) is None
    assert client.calls == []


def test_explain_failure_raises_compliscan_error():
    normalizer = GeminiNormalizer(client=MockLLMClient(exc=RuntimeError("unavailable")))

    with pytest.raises(CompliScanError, match="AI explanation failed"):
        normalizer.explain(["MRP missing"])
