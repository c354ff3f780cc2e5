"""Structured-source field extraction from product pages.

Every field has an ordered list of strategies spread over four tiers:
JSON-LD, meta tags, site-specific selectors and generic page heuristics. The
first strategy returning a value wins.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from compliscan.extraction.content import ContentBundle
from compliscan.extraction.selectors import GENERIC_SELECTORS, META_SELECTORS, SITE_SELECTORS
from compliscan.fields import FIELD_SCHEMAS, FieldName

logger = logging.getLogger(__name__)

BREADCRUMB_SKIP_NAMES = frozenset({"Home", "Category"})
MARKETPLACE_BRANDS = ("flipkart", "amazon", "myntra", "nykaa")

JsonLd = dict[str, Any]


@dataclass(frozen=True)
class Strategy:
    tier: str
    name: str
    fetch: Callable[[ContentBundle], str | None]


def _types(obj: JsonLd) -> set[str]:
    value = obj.get("@type")
    if isinstance(value, list):
        return {str(item) for item in value}
    return {str(value)} if value else set()


def _as_text(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, dict):
        return _as_text(value.get("name") or value.get("@value"))
    if isinstance(value, list) and value:
        return _as_text(value[0])
    return None


def _products(bundle: ContentBundle) -> Iterator[JsonLd]:
    for obj in bundle.jsonld:
        if "Product" in _types(obj):
            yield obj


def _wrapped_products(bundle: ContentBundle) -> Iterator[JsonLd]:
    for obj in bundle.jsonld:
        if _types(obj) & {"WebPage", "WebSite"}:
            entity = obj.get("mainEntity")
            if isinstance(entity, dict) and "Product" in _types(entity):
                yield entity


def _price(product: JsonLd) -> str | None:
    offers = product.get("offers")
    if isinstance(offers, list):
        offers = offers[0] if offers else None
    if isinstance(offers, dict):
        return _as_text(offers.get("price") or offers.get("lowPrice"))
    return None


def _brand(product: JsonLd) -> str | None:
    return _as_text(product.get("brand")) or _as_text(product.get("manufacturer"))


def _weight(product: JsonLd) -> str | None:
    weight = product.get("weight")
    if isinstance(weight, dict):
        amount = _as_text(weight.get("value"))
        unit = _as_text(weight.get("unitText"))
        if amount and unit:
            return f"{amount} {unit}"
        if amount:
            return amount
    return _as_text(weight) or _as_text(product.get("size"))


def _from_products(reader: Callable[[JsonLd], str | None], wrapped: bool = False):
    source = _wrapped_products if wrapped else _products

    def fetch(bundle: ContentBundle) -> str | None:
        for product in source(bundle):
            value = reader(product)
            if value:
                return value
        return None

    return fetch


def _breadcrumb_name(bundle: ContentBundle) -> str | None:
    for obj in bundle.jsonld:
        if "BreadcrumbList" not in _types(obj):
            continue
        for entry in obj.get("itemListElement") or []:
            if not isinstance(entry, dict):
                continue
            item = entry.get("item")
            name = _as_text(item.get("name")) if isinstance(item, dict) else None
            name = name or _as_text(entry.get("name"))
            if name and name not in BREADCRUMB_SKIP_NAMES:
                return name
    return None


def _organization_brand(bundle: ContentBundle) -> str | None:
    for obj in bundle.jsonld:
        if "Organization" not in _types(obj):
            continue
        name = _as_text(obj.get("name"))
        if name and not any(brand in name.lower() for brand in MARKETPLACE_BRANDS):
            return name
    return None


def _product_field(name: str, reader: Callable[[JsonLd], str | None]) -> list[Strategy]:
    return [
        Strategy("jsonld", f"Product.{name}", _from_products(reader)),
        Strategy("jsonld", f"mainEntity.Product.{name}", _from_products(reader, wrapped=True)),
    ]


JSONLD_STRATEGIES: dict[FieldName, list[Strategy]] = {
    FieldName.PRODUCT_NAME: [
        *_product_field("name", lambda p: _as_text(p.get("name"))),
        Strategy("jsonld", "BreadcrumbList", _breadcrumb_name),
    ],
    FieldName.MRP: _product_field("offers.price", _price),
    FieldName.MANUFACTURER: [
        *_product_field("brand", _brand),
        Strategy("jsonld", "Organization.name", _organization_brand),
    ],
    FieldName.NET_QUANTITY: _product_field("weight", _weight),
    FieldName.COUNTRY_OF_ORIGIN: _product_field("countryOfOrigin", lambda p: _as_text(p.get("countryOfOrigin"))),
    FieldName.DATE_OF_MANUFACTURE: _product_field(
        "productionDate", lambda p: _as_text(p.get("productionDate"))
    ),
}


def _selector_strategies(tier: str, selectors) -> list[Strategy]:
    return [
        Strategy(tier, selector.css or selector.label or "", lambda bundle, s=selector: bundle.query(s))
        for selector in selectors
    ]


def strategy_chain(field: FieldName, platform: str | None = None) -> list[Strategy]:
    """Ordered strategies for `field`; the site tier depends on `platform`."""
    site = SITE_SELECTORS.get(platform or "", {})
    return [
        *JSONLD_STRATEGIES.get(field, []),
        *_selector_strategies("meta", META_SELECTORS.get(field, [])),
        *_selector_strategies(f"site:{platform}", site.get(field, [])),
        *_selector_strategies("generic", GENERIC_SELECTORS.get(field, [])),
    ]


def extract_structured_field(bundle: ContentBundle, field: FieldName) -> tuple[str | None, str | None]:
    """Return `(value, source_hint)` for one field, truncated to its max length."""
    for strategy in strategy_chain(field, bundle.platform):
        value = strategy.fetch(bundle)
        if value:
            value = value.strip()[: FIELD_SCHEMAS[field].max_length]
            if value:
                return value, f"{strategy.tier}:{strategy.name}"
    return None, None


def extract_structured(bundle: ContentBundle) -> dict[FieldName, str | None]:
    """Extract every schema field from a page content bundle."""
    values: dict[FieldName, str | None] = {}
    for field in FIELD_SCHEMAS:
        value, hint = extract_structured_field(bundle, field)
        values[field] = value
        if hint:
            logger.debug("field %s resolved from %s", field.value, hint)
    logger.debug(
        "structured data extracted: %s",
        [field.value for field, value in values.items() if value],
    )
    return values
