"""Pattern-cascade field extraction from recognized label text."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from compliscan.fields import FIELD_SCHEMAS, FieldName, resolve_field
from compliscan.schema import ExtractedField

# Confidence of a captured value grows with its length: short captures are
# usually OCR noise, long ones a real declaration. Length alone never reaches
# full certainty.
BASE_CONFIDENCE = 0.6
MAX_LENGTH_CONFIDENCE = 0.9
LENGTH_CONFIDENCE_DIVISOR = 100
MIN_VALUE_LENGTH = 3

_DATE = r"[0-9]{1,2}[/\-.][0-9]{1,2}[/\-.][0-9]{2,4}|[a-z]{3,}\s*[0-9]{2,4}"
_UNITS = r"(?:g|kg|ml|l|gm|gms|liters?|pieces?|pcs|tablets?|nos?)\b"
_BLOCK = r"[^\n\r]+(?:\n[^\n\r]+){0,2}"
_PHONE = r"[+(]?[0-9][0-9 \t\-+()]*"

# Per field, domain-specific patterns come first and generic ones last. Only
# capture group 1 is used.
FIELD_PATTERNS: dict[FieldName, tuple[re.Pattern[str], ...]] = {
    FieldName.PRODUCT_NAME: (
        re.compile(r"name[:\s]+([^\n\r]+)", re.IGNORECASE),
        re.compile(r"product[:\s]+([^\n\r]+)", re.IGNORECASE),
        re.compile(
            r"^([A-Za-z\s&]+(?:cream|lotion|powder|tablet|capsule|soap|oil|shampoo|face|skin|hair|body))",
            re.IGNORECASE | re.MULTILINE,
        ),
    ),
    FieldName.MRP: (
        re.compile(r"(?:mrp|m\.r\.p\.?|price|cost)[:\s]*₹?\s*([0-9]+(?:[.,][0-9]+)?)", re.IGNORECASE),
        re.compile(r"₹\s*([0-9]+(?:[.,][0-9]+)?)"),
        re.compile(r"rs\.?\s*([0-9]+(?:[.,][0-9]+)?)", re.IGNORECASE),
        re.compile(r"inr\s*([0-9]+(?:[.,][0-9]+)?)", re.IGNORECASE),
    ),
    FieldName.NET_QUANTITY: (
        re.compile(
            rf"(?:net\s*qty|net\s*wt|quantity|weight|contents?)[:\s]*([0-9]+(?:\.[0-9]+)?\s*{_UNITS})",
            re.IGNORECASE,
        ),
        re.compile(rf"([0-9]+(?:\.[0-9]+)?\s*{_UNITS})", re.IGNORECASE),
    ),
    FieldName.MANUFACTURER: (
        re.compile(
            rf"(?:mfg(?!\.?\s*(?:date|dt))\.?|manufactured\s*by|mfd\.?\s*by|made\s*by|manufacturer)[:\s]*({_BLOCK})",
            re.IGNORECASE,
        ),
        re.compile(rf"(?:packed\s*by|packer|packaged\s*by)[:\s]*({_BLOCK})", re.IGNORECASE),
        re.compile(rf"(?:imported\s*by|importer)[:\s]*({_BLOCK})", re.IGNORECASE),
        re.compile(rf"(?:marketed\s*by|marketer)[:\s]*({_BLOCK})", re.IGNORECASE),
    ),
    FieldName.DATE_OF_MANUFACTURE: (
        re.compile(
            rf"(?:mfg\.?\s*date|manufactured\s*on|mfd\.?\s*on|date\s*of\s*mfg)[:\s]*({_DATE})",
            re.IGNORECASE,
        ),
        re.compile(rf"(?:packed\s*on|pkg\.?\s*date|packing\s*date)[:\s]*({_DATE})", re.IGNORECASE),
        re.compile(
            rf"(?:exp\.?\s*date|expiry|expires?\s*on|best\s*before)[:\s]*({_DATE})",
            re.IGNORECASE,
        ),
    ),
    FieldName.COUNTRY_OF_ORIGIN: (
        re.compile(r"(?:country\s*of\s*origin|origin|made\s*in)[:\s]*([a-z][a-z \t]*)", re.IGNORECASE),
        re.compile(r"made\s*in\s*([a-z][a-z \t]*)", re.IGNORECASE),
    ),
    FieldName.CONSUMER_CARE: (
        re.compile(rf"(?:customer\s*care|consumer\s*care|helpline|support)[:\s]*({_PHONE})", re.IGNORECASE),
        re.compile(rf"\b(?:ph\.?|phone|tel\.?|call)[:\s]*({_PHONE})", re.IGNORECASE),
        re.compile(r"([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})"),
        re.compile(rf"(?:address|contact)[:\s]*({_BLOCK})", re.IGNORECASE),
    ),
}

if set(FIELD_PATTERNS) != set(FIELD_SCHEMAS):
    raise RuntimeError("every schema field needs a pattern cascade")


@dataclass(frozen=True)
class Candidate:
    value: str
    confidence: float
    pattern_index: int


def length_confidence(value: str) -> float:
    return min(MAX_LENGTH_CONFIDENCE, BASE_CONFIDENCE + len(value) / LENGTH_CONFIDENCE_DIVISOR)


def find_candidates(text: str, field: str | FieldName) -> Iterator[Candidate]:
    """Yield every qualifying match of every pattern, in cascade order."""
    patterns = FIELD_PATTERNS[resolve_field(field)]
    for index, pattern in enumerate(patterns):
        for match in pattern.finditer(text):
            captured = match.group(1)
            if captured is None:
                continue
            value = captured.strip()
            if len(value) < MIN_VALUE_LENGTH:
                continue
            yield Candidate(value=value, confidence=length_confidence(value), pattern_index=index)


def extract_field(text: str, field: str | FieldName) -> ExtractedField:
    """Return the single most confident candidate for `field` found in `text`.

    All patterns are evaluated; on equal confidence the earliest candidate wins.
    An unknown field name raises `UnknownFieldError`.
    """
    best: Candidate | None = None
    for candidate in find_candidates(text or "", field):
        if best is None or candidate.confidence > best.confidence:
            best = candidate

    if best is None:
        return ExtractedField(value=None, confidence=0.0)
    return ExtractedField(
        value=best.value,
        confidence=best.confidence,
        source_hint=f"ocr_pattern:{best.pattern_index}",
    )


def extract_fields(
    text: str,
    fields: Iterable[str | FieldName] | None = None,
    *,
    max_workers: int | None = None,
) -> dict[FieldName, ExtractedField]:
    """Run `extract_field` for each field (all schema fields by default).

    Fields are independent, so with `max_workers` > 1 they are extracted on a
    thread pool.
    """
    names = [resolve_field(f) for f in fields] if fields is not None else list(FIELD_SCHEMAS)

    if max_workers and max_workers > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            results = list(pool.map(lambda name: extract_field(text, name), names))
        return dict(zip(names, results))

    return {name: extract_field(text, name) for name in names}
