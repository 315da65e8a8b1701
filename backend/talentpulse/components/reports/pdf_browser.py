"""Headless-browser PDF exporter.

Loads the HTML report view in Chromium, waits until every ``.page-container``
has rendered, injects print CSS and prints the page to A4. One page container
becomes exactly one PDF page.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Mapping, Optional
from urllib.parse import urlparse

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from ...platform.config import settings

logger = logging.getLogger("talentpulse.reports.pdf_browser")

PAGE_SELECTOR = ".page-container"
LOADED_SELECTOR = "[data-report-loaded]"
PAGES_SELECTOR = "[data-report-pages]"

STABLE_READS_REQUIRED = 3

_WAIT_FOR_IMAGES_JS = """
(timeoutMs) => Promise.race([
  Promise.all(Array.from(document.images).map((img) => img.complete
    ? Promise.resolve()
    : new Promise((resolve) => {
        img.addEventListener('load', resolve, { once: true });
        img.addEventListener('error', resolve, { once: true });
      }))),
  new Promise((resolve) => setTimeout(resolve, timeoutMs)),
])
"""

_CONTENT_HEIGHT_JS = """
() => Array.from(document.querySelectorAll('.page-container')).reduce((total, el) => {
  const style = window.getComputedStyle(el);
  return total + el.offsetHeight
    + (parseFloat(style.marginTop) || 0)
    + (parseFloat(style.marginBottom) || 0);
}, 0)
"""

_PRINT_RULES = """
  .report-view-container { margin: 0 !important; padding: 0 !important; }
  .page-container {
    margin: 0 !important;
    padding: 0 !important;
    position: static !important;
    page-break-after: always !important;
    break-after: page !important;
    page-break-before: auto !important;
    break-before: auto !important;
    box-shadow: none !important;
  }
  .page-container:first-child { page-break-before: avoid !important; break-before: avoid !important; }
  .page-container:last-child { page-break-after: auto !important; break-after: auto !important; }
  .page-container .page-wrapper { padding-bottom: 59px !important; }
  .page-container .page-footer { position: absolute !important; bottom: 0 !important; }
"""

PRINT_CSS = f"""
  @page {{ size: A4; margin: 0; }}
  html, body {{ margin: 0 !important; padding: 0 !important; background: #ffffff !important; }}
{_PRINT_RULES}
  @media print {{
{_PRINT_RULES}
  }}
"""


class PdfExportError(Exception):
    """Raised when the report view cannot be printed."""


async def _pause(ms: int) -> None:
    await asyncio.sleep(ms / 1000)


def redact_url(url: str) -> str:
    """``url`` without its query string, which can hold the service-role token."""
    return urlparse(url)._replace(query="").geturl()


def _scrub(message: str, url: str) -> str:
    # Playwright call logs echo the navigated URL
    query = urlparse(url).query
    return message.replace(query, "[redacted]") if query else message


def build_browser_cookies(url: str, cookies: Optional[Mapping[str, str]]) -> List[Dict]:
    """Convert request cookies into Playwright cookies scoped to the report URL."""
    if not cookies:
        return []
    parsed = urlparse(url)
    domain = parsed.hostname or "localhost"
    secure = parsed.scheme == "https"
    result = []
    for name, value in cookies.items():
        if value is None:
            continue
        result.append(
            {
                "name": name,
                "value": str(value),
                "domain": domain,
                "path": "/",
                "httpOnly": "sb-" in name or name == settings.SESSION_COOKIE_NAME,
                "secure": secure,
                "sameSite": "Lax",
            }
        )
    return result


async def wait_for_report_ready(page: Page) -> Optional[int]:
    """Wait for the view's markers. Returns the expected page count when advertised."""
    try:
        await page.wait_for_selector(LOADED_SELECTOR, timeout=settings.PDF_SELECTOR_TIMEOUT_MS)
    except PlaywrightTimeoutError:
        logger.warning("Report loaded marker not found, continuing with export")

    try:
        await page.wait_for_selector(PAGE_SELECTOR, timeout=settings.PDF_SELECTOR_TIMEOUT_MS)
    except PlaywrightTimeoutError as exc:
        raise PdfExportError("No page containers found - report may not have loaded") from exc

    raw = await page.get_attribute(PAGES_SELECTOR, "data-report-pages")
    try:
        expected = int(raw) if raw else None
    except ValueError:
        logger.warning("Ignoring invalid data-report-pages value %r", raw)
        expected = None
    return expected if expected and expected > 0 else None


async def _wait_for_images(page: Page) -> None:
    await page.evaluate(_WAIT_FOR_IMAGES_JS, settings.PDF_IMAGE_TIMEOUT_MS)


async def _count_pages(page: Page) -> int:
    return await page.locator(PAGE_SELECTOR).count()


async def _wait_for_page_count(page: Page, expected: Optional[int]) -> int:
    """Poll the page container count until it reaches ``expected`` or stops changing."""
    max_attempts = 20 if expected else 10
    count = 0
    previous = -1
    stable_reads = 0
    for _ in range(max_attempts):
        count = await _count_pages(page)
        if expected and count >= expected:
            break
        if count > 0 and count == previous:
            stable_reads += 1
            if stable_reads >= STABLE_READS_REQUIRED - 1:
                break
        else:
            stable_reads = 0
        previous = count
        await _pause(settings.PDF_POLL_INTERVAL_MS)
    if expected and count < expected:
        logger.warning("Expected %d page containers but found %d", expected, count)
    return count


async def _scroll_through(page: Page) -> None:
    await page.evaluate("window.scrollTo(0, document.body.scrollHeight)")
    await _pause(500)
    await page.evaluate("window.scrollTo(0, 0)")
    await _pause(300)


async def render_page_to_pdf(page: Page, url: str) -> bytes:
    """Drive an open page through navigation, readiness checks and printing."""
    await page.goto(url, wait_until="networkidle", timeout=settings.PDF_NAVIGATION_TIMEOUT_MS)

    expected = await wait_for_report_ready(page)
    await _wait_for_images(page)
    found = await _wait_for_page_count(page, expected)
    logger.info("Report view ready url=%s expected_pages=%s found_pages=%d", redact_url(url), expected, found)

    await _scroll_through(page)
    try:
        await page.wait_for_load_state("networkidle", timeout=settings.PDF_NETWORK_IDLE_TIMEOUT_MS)
    except PlaywrightTimeoutError:
        logger.warning("Network did not go idle before printing, continuing")

    page_count = await _count_pages(page)
    if page_count == 0:
        raise PdfExportError("No page containers found - report may not have loaded")

    await page.add_style_tag(content=PRINT_CSS)
    await _pause(200)

    content_height = await page.evaluate(_CONTENT_HEIGHT_JS) or 0
    total_height = max(settings.PDF_VIEWPORT_HEIGHT, int(content_height) + 100)

    await page.emulate_media(media="print")
    await page.set_viewport_size(
        {
            "width": settings.PDF_VIEWPORT_WIDTH,
            "height": min(total_height, settings.PDF_MAX_VIEWPORT_HEIGHT),
        }
    )

    pdf_bytes = await page.pdf(
        format="A4",
        print_background=True,
        margin={"top": "0", "right": "0", "bottom": "0", "left": "0"},
        prefer_css_page_size=False,
        scale=1,
        display_header_footer=False,
    )
    logger.info("Printed report view pages=%d bytes=%d", page_count, len(pdf_bytes))
    return pdf_bytes


async def export_pdf_from_url(url: str, cookies: Optional[Mapping[str, str]] = None) -> bytes:
    """Print the report view at ``url`` to PDF bytes.

    The browser is closed whether printing succeeds or fails.
    """
    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(
            headless=True,
            args=["--no-sandbox", "--disable-dev-shm-usage"],
        )
        try:
            context = await browser.new_context(
                viewport={"width": settings.PDF_VIEWPORT_WIDTH, "height": settings.PDF_VIEWPORT_HEIGHT},
            )
            browser_cookies = build_browser_cookies(url, cookies)
            if browser_cookies:
                await context.add_cookies(browser_cookies)
            page = await context.new_page()
            try:
                return await render_page_to_pdf(page, url)
            except PlaywrightTimeoutError as exc:
                raise PdfExportError(_scrub(f"Timed out exporting report view: {exc}", url)) from None
            except PlaywrightError as exc:
                raise PdfExportError(_scrub(f"Browser error exporting report view: {exc}", url)) from None
            finally:
                await context.close()
        finally:
            await browser.close()
