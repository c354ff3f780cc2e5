"""Page content bundle handed over by the scraping collaborator."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from compliscan.exceptions import ContentError

logger = logging.getLogger(__name__)

_PLATFORM_HOSTS = (
    ("flipkart", ("flipkart.com",)),
    ("amazon", ("amazon.", "amzn.")),
    ("myntra", ("myntra.com",)),
    ("nykaa", ("nykaa.com",)),
)


def detect_platform(url: str | None) -> str | None:
    """Return the e-commerce platform key for `url`, if recognized."""
    if not url:
        return None
    host = (urlparse(url).hostname or url).lower()
    for platform, needles in _PLATFORM_HOSTS:
        if any(needle in host for needle in needles):
            return platform
    return None


@dataclass(frozen=True)
class Selector:
    """One DOM lookup.

    Either `css` (first matching element with usable text wins) or `label`
    (an element of type `tag` whose own text is the label; the value is read
    from its next sibling of type `value_tag`). `attribute` reads an attribute
    instead of text. `pattern` must match the text; when it has a group, group
    1 becomes the value.
    """

    css: str | None = None
    label: str | None = None
    tag: str = "div"
    value_tag: str | None = None
    attribute: str | None = None
    pattern: re.Pattern[str] | None = None
    min_length: int = 0


def _clean_text(value: str | None) -> str:
    return " ".join((value or "").split())


class ContentBundle:
    """JSON-LD objects, meta tags and DOM query access for one product page."""

    def __init__(self, soup: BeautifulSoup, *, url: str | None = None, platform: str | None = None):
        self.soup = soup
        self.url = url
        self.platform = platform or detect_platform(url)
        self._jsonld: list[dict[str, Any]] | None = None

    @classmethod
    def from_html(
        cls,
        html: str | bytes,
        *,
        url: str | None = None,
        platform: str | None = None,
    ) -> ContentBundle:
        if not html:
            raise ContentError("Page content is empty")
        try:
            soup = BeautifulSoup(html, "html.parser")
        except Exception as exc:
            raise ContentError(f"Failed to parse page content: {exc}") from exc
        return cls(soup, url=url, platform=platform)

    @property
    def jsonld(self) -> list[dict[str, Any]]:
        """All JSON-LD objects on the page, with arrays and `@graph` flattened."""
        if self._jsonld is None:
            self._jsonld = list(self._parse_jsonld())
        return self._jsonld

    def _parse_jsonld(self):
        for script in self.soup.find_all("script", attrs={"type": "application/ld+json"}):
            raw = (script.string or script.get_text() or "").strip()
            if not raw:
                continue
            try:
                data = json.loads(raw)
            except ValueError as exc:
                logger.debug("skipping unparseable JSON-LD block: %s", exc)
                continue
            yield from _flatten_jsonld(data)

    def query(self, selector: Selector) -> str | None:
        """Resolve `selector` against the page; `None` when nothing usable matches."""
        if selector.label is not None:
            elements = self._labelled_values(selector)
        else:
            elements = self.soup.select(selector.css or "*")

        for element in elements:
            if selector.attribute:
                value = element.get(selector.attribute)
                text = _clean_text(" ".join(value) if isinstance(value, list) else value)
            else:
                text = _clean_text(element.get_text(" "))
            if not text:
                continue
            if selector.pattern is not None:
                match = selector.pattern.search(text)
                if match is None:
                    continue
                if selector.pattern.groups:
                    text = _clean_text(match.group(1))
            if len(text) > selector.min_length:
                return text
        return None

    def _labelled_values(self, selector: Selector) -> list[Tag]:
        label = re.compile(rf"^\s*{re.escape(selector.label or '')}\s*:?\s*$", re.IGNORECASE)
        values: list[Tag] = []
        for element in self.soup.find_all(selector.tag):
            if not label.match(element.get_text(" ")):
                continue
            sibling = element.find_next_sibling(selector.value_tag or selector.tag)
            if isinstance(sibling, Tag):
                values.append(sibling)
        return values


def _flatten_jsonld(data: Any):
    if isinstance(data, list):
        for item in data:
            yield from _flatten_jsonld(item)
        return
    if not isinstance(data, dict):
        return
    graph = data.get("@graph")
    if isinstance(graph, list):
        yield from _flatten_jsonld(graph)
    if "@type" in data:
        yield data
