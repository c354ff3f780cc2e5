"""Selector tables for meta tags, known e-commerce sites and generic pages.

Each list is an ordered OR-chain: the first selector yielding text wins.
"""

from __future__ import annotations

import re

from compliscan.extraction.content import Selector
from compliscan.fields import FieldName

_HAS_DIGIT = re.compile(r"\d")
_UNIT_SPAN = re.compile(r"(\d+(?:\.\d+)?\s*(?:g|kg|ml|l|gm|gms)\b)", re.IGNORECASE)
_MADE_IN = re.compile(r"made\s+in\s+([a-z][a-z ]*[a-z])", re.IGNORECASE)


def _meta(key: str, **kwargs) -> Selector:
    return Selector(css=f'meta[property="{key}"], meta[name="{key}"]', attribute="content", **kwargs)


def _label(label: str, tag: str = "div", value_tag: str | None = None) -> Selector:
    return Selector(label=label, tag=tag, value_tag=value_tag)


META_SELECTORS: dict[FieldName, list[Selector]] = {
    FieldName.PRODUCT_NAME: [_meta("og:title"), _meta("title"), _meta("og:site_name")],
    # Only an amount, never a bare currency code.
    FieldName.MRP: [
        _meta("product:price:amount", pattern=_HAS_DIGIT),
        _meta("price", pattern=_HAS_DIGIT),
    ],
    FieldName.MANUFACTURER: [_meta("product:brand"), _meta("brand"), _meta("og:brand")],
    FieldName.NET_QUANTITY: [_meta("weight"), _meta("product:weight")],
    FieldName.COUNTRY_OF_ORIGIN: [_meta("origin"), _meta("product:origin")],
}

SITE_SELECTORS: dict[str, dict[FieldName, list[Selector]]] = {
    "flipkart": {
        FieldName.PRODUCT_NAME: [
            Selector(css='span[class*="B_NuCI"]'),
            Selector(css='h1[class*="x2Jnos"]'),
            Selector(css="h1", min_length=10),
            Selector(css="._35KyD6"),
            Selector(css='[data-testid="lblPDPProductName"]'),
        ],
        FieldName.MRP: [
            Selector(css='div[class*="_30jeq3"]'),
            Selector(css="._3I9_wc._2p6lqe"),
            Selector(css="._1_WHN1"),
            Selector(css='div[class*="price"]'),
            Selector(css='[data-testid="lblPDPPrice"]'),
            Selector(css="._25b18c .notranslate"),
        ],
        FieldName.MANUFACTURER: [
            _label("Brand"),
            _label("Brand", tag="td"),
            Selector(css="._2WkVRV._13WGFt"),
            Selector(css="._21Ahn-"),
            Selector(css='[data-testid="lblPDPBrand"]'),
            Selector(css='div[class*="brand"]'),
        ],
        FieldName.NET_QUANTITY: [
            _label("Net Quantity"),
            _label("Weight"),
            _label("Net Quantity", tag="td"),
            _label("Weight", tag="td"),
            Selector(css="._3dG3ix"),
            Selector(css='[data-testid="lblPDPNetQuantity"]'),
            _label("Pack Size"),
        ],
        FieldName.COUNTRY_OF_ORIGIN: [
            _label("Country of Origin"),
            _label("Country of Origin", tag="td"),
            _label("Made in"),
            _label("Made in", tag="td"),
            Selector(css='[data-testid="lblPDPOrigin"]'),
        ],
    },
    "myntra": {
        FieldName.PRODUCT_NAME: [
            Selector(css=".pdp-name"),
            Selector(css="h1.pdp-title"),
            Selector(css=".pdp-product-name"),
            Selector(css=".product-title h1"),
        ],
        FieldName.MRP: [
            Selector(css=".pdp-price strong"),
            Selector(css=".price-price span"),
            Selector(css=".pdp-mrp"),
            Selector(css=".discounted-price"),
        ],
        FieldName.MANUFACTURER: [
            Selector(css=".pdp-product-brand-name"),
            Selector(css=".index-brand"),
            Selector(css=".brand-name"),
            Selector(css=".pdp-brand a"),
            _label("Brand", tag="td"),
        ],
        FieldName.NET_QUANTITY: [
            _label("Weight", tag="td"),
            _label("Net Quantity", tag="td"),
            Selector(css=".size-buttons button.selected"),
        ],
        FieldName.COUNTRY_OF_ORIGIN: [
            _label("Country of Origin", tag="td"),
            _label("Made in", tag="td"),
        ],
    },
    "nykaa": {
        FieldName.PRODUCT_NAME: [
            Selector(css=".product-title"),
            Selector(css="h1.css-1gc4x7i"),
            Selector(css=".css-xhqlr"),
        ],
        FieldName.MRP: [
            Selector(css=".css-1jczs19"),
            Selector(css=".discounted-price"),
        ],
        FieldName.MANUFACTURER: [
            Selector(css=".brand-name"),
            Selector(css=".css-k008qs"),
            _label("Brand", tag="td"),
        ],
    },
    "amazon": {
        FieldName.PRODUCT_NAME: [
            Selector(css="#productTitle"),
            Selector(css='h1[data-automation-id="product-title"]'),
        ],
        FieldName.MRP: [
            Selector(css=".a-price .a-offscreen"),
            Selector(css=".a-price-range .a-price .a-offscreen"),
            Selector(css=".a-price-whole"),
        ],
        FieldName.MANUFACTURER: [
            Selector(css='[data-feature-name="bylineInfo"] a'),
            Selector(css=".author .contributorNameID"),
            Selector(css=".po-brand .po-break-word"),
            Selector(css="#bylineInfo_feature_div a"),
            _label("Brand", tag="th", value_tag="td"),
            _label("Brand", tag="td"),
            _label("Manufacturer", tag="th", value_tag="td"),
        ],
        FieldName.NET_QUANTITY: [
            _label("Item Weight", tag="th", value_tag="td"),
            _label("Item Weight", tag="td"),
            _label("Package Weight", tag="th", value_tag="td"),
            _label("Net Quantity", tag="th", value_tag="td"),
            Selector(css=".po-item_weight .po-break-word"),
        ],
        FieldName.COUNTRY_OF_ORIGIN: [
            _label("Country of Origin", tag="th", value_tag="td"),
            _label("Country of Origin", tag="td"),
            _label("Made in", tag="th", value_tag="td"),
        ],
    },
}

GENERIC_SELECTORS: dict[FieldName, list[Selector]] = {
    FieldName.PRODUCT_NAME: [
        Selector(css="h1"),
        Selector(css='[class*="title"]'),
        Selector(css='[id*="title"]'),
        Selector(css='[data-testid*="title"]'),
        Selector(css=".product-name"),
        Selector(css=".item-title"),
    ],
    FieldName.MRP: [
        Selector(css='[class*="price"]'),
        Selector(css='[id*="price"]'),
        Selector(css='[data-testid*="price"]'),
        Selector(css=".cost"),
        Selector(css=".amount"),
    ],
    FieldName.MANUFACTURER: [
        Selector(css='[class*="brand"]'),
        Selector(css='[class*="manufacturer"]'),
        Selector(css='[data-testid*="brand"]'),
        Selector(css=".company"),
        Selector(css=".maker"),
    ],
    FieldName.NET_QUANTITY: [
        Selector(css='[class*="quantity"]'),
        Selector(css='[class*="weight"]'),
        Selector(css='[class*="size"]'),
        Selector(css="span", pattern=_UNIT_SPAN),
    ],
    FieldName.COUNTRY_OF_ORIGIN: [
        Selector(css='[class*="origin"]'),
        Selector(css=".country"),
        Selector(css="p, li, span, td, div", pattern=_MADE_IN),
    ],
    FieldName.CONSUMER_CARE: [
        Selector(css='a[href^="mailto:"]', attribute="href", pattern=re.compile(r"^mailto:(\S+@\S+)")),
        Selector(css='a[href^="tel:"]', attribute="href", pattern=re.compile(r"^tel:([+\d][\d\s\-()]{6,})")),
        Selector(css='[class*="customer-care"], [class*="consumer-care"]'),
    ],
}
