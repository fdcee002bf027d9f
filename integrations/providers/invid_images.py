"""
Invid storefront scraping for product images.

The XLSX export carries no images. Every product has a page at
/{slug}---det--{code}; its main image is, in order of preference:
    1. the og:image meta tag (absolute URL, not a logo or banner)
    2. the first <img> under /images/ that is not a logo, banner or thumb
    3. the first <img> under /thumb/
A page showing the login form means the session cookie was rejected.
"""

import re
from typing import Optional

import requests
import structlog
from bs4 import BeautifulSoup

from integrations.providers.base import USER_AGENT
from models.sync import ImageLookup
from parsers.invid_parser import SKU_PREFIX
from utils.text_utils import strip_accents

logger = structlog.get_logger(__name__)

SESSION_INVALID = "session_invalid"
IMAGE_NOT_FOUND = "image_not_found"

_SLUG_SEPARATORS = re.compile(r"[/\\()\[\]°ª]")
_NON_SLUG = re.compile(r"[^a-z0-9]+")
_GALLERY_SRC = re.compile(r"/images/", re.IGNORECASE)
_THUMB_SRC = re.compile(r"/thumb/", re.IGNORECASE)
_EXCLUDED_MARKERS = ("logo", "banner")


def to_invid_slug(name: str) -> str:
    """
    Storefront slug for a product name.

    - "Router TP-Link Archer C6" → "router-tp-link-archer-c6"
    - "Cable (USB/Tipo C) 1m" → "cable-usb-tipo-c-1m"
    - "Teclado Español Ñ" → "teclado-espanol-n"
    """
    slug = _SLUG_SEPARATORS.sub(" ", (name or "").lower())
    slug = strip_accents(slug)
    slug = _NON_SLUG.sub("-", slug)
    return slug.strip("-")


def build_product_url(base_url: str, name: str, sku: str) -> str:
    """Product page URL; the SKU prefix is removed to get the storefront code."""
    code = sku[len(SKU_PREFIX):] if sku.startswith(SKU_PREFIX) else sku
    return f"{base_url.rstrip('/')}/{to_invid_slug(name)}---det--{code}"


def _absolute(src: str, base_url: str) -> str:
    if src.startswith("http"):
        return src
    return f"{base_url.rstrip('/')}/{src.lstrip('/')}"


def _excluded(url: str) -> bool:
    return any(marker in url for marker in _EXCLUDED_MARKERS)


def is_login_page(soup: BeautifulSoup) -> bool:
    """The login form has both a usuario and a password input."""
    return (
        soup.find(attrs={"name": "usuario"}) is not None
        and soup.find(attrs={"name": "password"}) is not None
    )


def extract_image_url(soup: BeautifulSoup, base_url: str) -> Optional[str]:
    """Main product image from a parsed product page, or None."""
    og = soup.find("meta", attrs={"property": "og:image"})
    if og is not None:
        content = (og.get("content") or "").strip()
        if content.startswith("http") and not _excluded(content):
            return content

    for img in soup.find_all("img", src=_GALLERY_SRC):
        src = img["src"].strip()
        if src and "thumb" not in src and not _excluded(src):
            return _absolute(src, base_url)

    thumb = soup.find("img", src=_THUMB_SRC)
    if thumb is not None:
        return _absolute(thumb["src"].strip(), base_url)

    return None


def fetch_product_image(
    sku: str,
    name: str,
    cookie: str,
    base_url: str,
    timeout: int,
) -> ImageLookup:
    """
    Scrape one product page.

    Never raises: transport errors, HTTP errors, a login page or a page
    without an image are reported in ImageLookup.error.
    """
    url = build_product_url(base_url, name, sku)

    try:
        response = requests.get(
            url,
            headers={"Cookie": cookie, "User-Agent": USER_AGENT},
            timeout=timeout,
        )
    except requests.exceptions.RequestException as e:
        logger.debug("invid_page_request_failed", sku=sku, error=str(e))
        return ImageLookup(sku=sku, product_url=url, error=str(e))

    if not 200 <= response.status_code < 300:
        return ImageLookup(sku=sku, product_url=url, error=f"HTTP {response.status_code}")

    soup = BeautifulSoup(response.text, "html.parser")
    if is_login_page(soup):
        return ImageLookup(sku=sku, product_url=url, error=SESSION_INVALID)

    image_url = extract_image_url(soup, base_url)
    return ImageLookup(
        sku=sku,
        image_url=image_url,
        product_url=url,
        error=None if image_url else IMAGE_NOT_FOUND,
    )
