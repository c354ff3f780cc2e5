"""Gemini AI normalizer implementation."""

import json
import os

from google import genai
from google.genai import types

from compliscan.exceptions import AuthenticationError, CompliScanError, RateLimitError
from compliscan.providers.base import BaseAINormalizer
from compliscan.schema import AINormalization, ComplianceExplanation

DEFAULT_MODEL = "gemini-2.0-flash"

NORMALIZATION_PROMPT = """Analyze and normalize this e-commerce product data. Fill in missing fields, standardize units, and clean up the information.
Return a JSON object with the normalized data and a confidence score per field (use null for missing information):

{
  "product_name": "Product name without marketing text",
  "MRP": "Price with currency, e.g. ₹499",
  "manufacturer": "Canonical brand or manufacturer name",
  "net_quantity": "Amount with unit (g, kg, ml, l, pieces)",
  "country_of_origin": "Full country name",
  "confidence": {
    "product_name": 0.9,
    "MRP": 0.8,
    "manufacturer": 0.9,
    "net_quantity": 0.7,
    "country_of_origin": 0.6
  }
}

Important:
- Use ₹ for prices from Indian marketplaces
- Confidence scores range from 0 to 1
- Only report values supported by the product data
- Return valid JSON only, no additional text"""

EXPLANATION_PROMPT = """Explain these Legal Metrology compliance violations for an Indian product label so a seller can fix them.
For each violation say what is missing or wrong, why the Legal Metrology (Packaged Commodities) Rules require it, and how to fix it.
Keep the whole explanation under 120 words. Be helpful, not technical.

Return a JSON object:
{
  "explanation": "What is wrong and how to fix it",
  "severity": "low|medium|high",
  "confidence": 0.9
}"""


class GeminiNormalizer(BaseAINormalizer):
    """Gemini text model used to clean up scraped product fields."""

    def __init__(self, api_key: str | None = None, model: str | None = None, client=None):
        """Initialize Gemini normalizer.

        Args:
            api_key: Gemini API key. Falls back to GEMINI_API_KEY env var.
            model: Model name. Falls back to COMPLISCAN_AI_MODEL, then gemini-2.0-flash.
            client: Pre-built genai client, mainly for tests.

        Raises:
            AuthenticationError: If no client is given and no API key is found.
        """
        self.model = model or os.environ.get("COMPLISCAN_AI_MODEL", DEFAULT_MODEL)
        if client is not None:
            self.client = client
            return

        api_key = api_key or os.environ.get("GEMINI_API_KEY")
        if not api_key:
            raise AuthenticationError(
                "No API key provided. Set GEMINI_API_KEY environment variable "
                "or pass api_key parameter."
            )
        self.client = genai.Client(api_key=api_key)

    def _generate(self, prompt: str, schema, temperature: float, action: str):
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=[prompt],
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=schema,
                    temperature=temperature,
                ),
            )
            return schema.model_validate_json(response.text)

        except genai.errors.ClientError as e:
            if "rate" in str(e).lower() or "quota" in str(e).lower():
                raise RateLimitError(f"API rate limit exceeded: {e}") from e
            if "auth" in str(e).lower() or "key" in str(e).lower():
                raise AuthenticationError(f"Invalid API key: {e}") from e
            raise CompliScanError(f"{action} failed: {e}") from e
        except Exception as e:
            raise CompliScanError(f"{action} failed: {e}") from e

    def normalize(self, candidates: dict[str, str | None]) -> AINormalization:
        prompt = (
            f"{NORMALIZATION_PROMPT}\n\nProduct Data:\n"
            f"{json.dumps(candidates, ensure_ascii=False, indent=2)}"
        )
        return self._generate(prompt, AINormalization, 0.3, "AI normalization")

    def explain(
        self,
        violations: list[str],
        product_name: str | None = None,
    ) -> ComplianceExplanation | None:
        if not violations:
            return None
        prompt = (
            f"{EXPLANATION_PROMPT}\n\nProduct: {product_name or 'Unknown Product'}\n"
            f"Violations: {', '.join(violations)}"
        )
        return self._generate(prompt, ComplianceExplanation, 0.4, "AI explanation")
