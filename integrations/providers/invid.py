"""
Invid adapter: PHP session login, then XLSX export download.

Flow:
    1. POST the login form (usuario/password) without following the redirect
    2. Take the session cookies from the raw Set-Cookie headers
       (no cookie = bad credentials)
    3. GET the export with those cookies; an HTML answer means the session
       was rejected and the site sent us back to the login page
"""

from typing import Optional

import requests
import structlog

from exceptions import ProviderAuthError, ProviderFetchError, ProviderSessionInvalidError
from integrations.providers.base import USER_AGENT, CatalogProvider, ProviderParams, http_get
from models.product import CanonicalProduct, Provider
from parsers.invid_parser import extract_invid_products, read_xlsx_grid

logger = structlog.get_logger(__name__)

HTML_CONTENT_TYPES = ("text/html", "application/xhtml")


def session_cookie_header(response: requests.Response) -> Optional[str]:
    """
    Build a Cookie header from the raw Set-Cookie values, or None if none were set.

    Values come from the raw headers, not the cookie jar, so Domain and
    Expires attributes are ignored. Only the name=value part before the
    first ";" is forwarded.
    """
    values = response.raw.headers.getlist("Set-Cookie")
    pairs = [value.split(";", 1)[0].strip() for value in values]
    pairs = [pair for pair in pairs if pair]
    return "; ".join(pairs) if pairs else None


def login(params: ProviderParams) -> str:
    """
    Submit credentials and return the session Cookie header.

    Raises:
        ProviderAuthError: Missing credentials or no session cookie returned
        ProviderFetchError: Transport failure reaching the login form
    """
    if not params.username or not params.password:
        raise ProviderAuthError(
            Provider.INVID,
            code="PROVIDER_CREDENTIALS_MISSING",
            message="invid: INVID_USER or INVID_PASS is not set"
        )

    logger.info("provider_login", provider=Provider.INVID)

    try:
        response = requests.post(
            params.login_url,
            data={"usuario": params.username, "password": params.password},
            headers={"User-Agent": USER_AGENT},
            allow_redirects=False,
            timeout=params.timeout,
        )
    except requests.exceptions.RequestException as e:
        logger.error("provider_login_request_failed", provider=Provider.INVID, error=str(e))
        raise ProviderFetchError(Provider.INVID, source=params.login_url, reason=str(e)) from e

    cookie = session_cookie_header(response)
    if not cookie:
        logger.error("provider_login_no_cookie", provider=Provider.INVID, status=response.status_code)
        raise ProviderAuthError(
            Provider.INVID,
            code="PROVIDER_LOGIN_REJECTED",
            message="invid: login returned no session cookie, check INVID_USER and INVID_PASS",
            details={"status": response.status_code}
        )

    return cookie


def download_export(params: ProviderParams, cookie: str) -> bytes:
    """
    Download the XLSX export with an authenticated session.

    Raises:
        ProviderFetchError: Non-2xx status
        ProviderSessionInvalidError: HTML page instead of a workbook
    """
    response = http_get(Provider.INVID, params.url, params.timeout, headers={"Cookie": cookie})

    content_type = response.headers.get("Content-Type", "") or ""
    if any(t in content_type.lower() for t in HTML_CONTENT_TYPES):
        logger.error("provider_session_invalid", provider=Provider.INVID, content_type=content_type)
        raise ProviderSessionInvalidError(Provider.INVID, source=params.url, content_type=content_type)

    logger.info("provider_export_downloaded", provider=Provider.INVID, size=len(response.content))
    return response.content


class InvidProvider(CatalogProvider):
    """Invid authenticated XLSX export."""

    name = Provider.INVID

    def is_configured(self, params: ProviderParams) -> bool:
        return bool(params.url and params.username and params.password)

    def skip_reason(self, params: ProviderParams) -> Optional[str]:
        if not params.username or not params.password:
            return "missing_credentials"
        return super().skip_reason(params)

    def fetch(self, params: ProviderParams, reference_rate: float) -> list[CanonicalProduct]:
        logger.info("fetching_provider", provider=self.name)

        cookie = login(params)
        payload = download_export(params, cookie)
        extraction = extract_invid_products(read_xlsx_grid(payload), reference_rate)

        return extraction.products
