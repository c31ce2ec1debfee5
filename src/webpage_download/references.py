"""Rewrite resource references in an HTML page and collect the URLs to fetch."""

import re
from urllib.parse import urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup, Tag
from bs4.dammit import EntitySubstitution
from bs4.formatter import HTMLFormatter

BACKGROUND_IMAGE_RE = re.compile(
    r"background-image\s*:\s*url\((['\"]?)([^'\"\)]+)\1\)", re.IGNORECASE
)

RESOURCE_TAGS = ("img", "script", "link")

# HTML5 output: void tags without "/", bare boolean attributes, named entities
HTML_FORMATTER = HTMLFormatter(
    entity_substitution=EntitySubstitution.substitute_html,
    void_element_close_prefix=None,
    empty_attributes_are_booleans=True,
)


def normalize_url(url: str) -> str:
    """Normalize a URL for equality: lowercase scheme and host, drop the fragment."""
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    netloc = parts.netloc.lower()
    path = parts.path
    if netloc and not path:
        path = "/"
    return urlunsplit((scheme, netloc, path, parts.query, ""))


def is_absolute_url(url: str) -> bool:
    """Check if a reference already carries a scheme (http:, mailto:, data: ...)."""
    try:
        parsed = urlsplit(url)
    except ValueError:
        return False
    # Require at least two characters so Windows drive letters don't count
    return len(parsed.scheme) > 1


def _resolve(base_url: str, reference: str) -> str | None:
    """Resolve a reference against the page URL, or None if it is malformed."""
    try:
        return normalize_url(urljoin(base_url, reference))
    except ValueError:
        return None


def _absolutize_anchor(tag: Tag, base_url: str) -> None:
    """Rewrite a relative anchor href to an absolute URL."""
    href = tag.get("href")
    if not href or is_absolute_url(href):
        return

    try:
        tag["href"] = urljoin(base_url, href)
    except ValueError:
        pass


def _process_resource_tag(tag: Tag, base_url: str) -> str | None:
    """Make a root-relative src/href path-relative and return its absolute URL."""
    attr_name = "href" if tag.name == "link" else "src"
    original_ref = tag.get(attr_name)
    if not original_ref:
        return None

    if original_ref.startswith("/"):
        tag[attr_name] = original_ref.lstrip("/")

    return _resolve(base_url, original_ref)


def _process_background_image(tag: Tag, base_url: str) -> str | None:
    """Rewrite the first background-image URL of an inline style.

    Only the first match in the style text is handled, further
    background-image declarations on the same element are left alone.
    """
    style = tag.get("style")
    if not style:
        return None

    match = BACKGROUND_IMAGE_RE.search(style)
    if not match:
        return None

    original_ref = match.group(2)
    trimmed_ref = original_ref.lstrip("/")
    tag["style"] = style.replace(original_ref, trimmed_ref)

    return _resolve(base_url, original_ref)


def rewrite_and_collect(soup: BeautifulSoup, base_url: str) -> set[str]:
    """Rewrite references in place and return the resource URLs the page needs.

    Anchors become absolute so links keep pointing at the live site. Image,
    script and stylesheet references starting with "/" are made relative to
    the saved page folder, as are inline background images. Anchors are not
    part of the returned set.

    Args:
        soup: Parsed page, mutated in place.
        base_url: Absolute URL the page was fetched from.

    Returns:
        Distinct absolute URLs of every referenced resource.
    """
    for anchor in soup.find_all("a", href=True):
        _absolutize_anchor(anchor, base_url)

    resource_urls: set[str] = set()

    for tag in soup.find_all(RESOURCE_TAGS):
        url = _process_resource_tag(tag, base_url)
        if url:
            resource_urls.add(url)

    for tag in soup.find_all(style=True):
        url = _process_background_image(tag, base_url)
        if url:
            resource_urls.add(url)

    return resource_urls


def serialize_html(soup: BeautifulSoup, encoding: str = "utf-8") -> bytes:
    """Serialize a page the way it was written, as far as the parser allows."""
    return soup.encode(encoding, formatter=HTML_FORMATTER)
