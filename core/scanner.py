import asyncio
import logging
from pathlib import Path

from playwright.async_api import Browser, ElementHandle, Page, async_playwright

from config import settings

log = logging.getLogger(__name__)

LARGE_IMAGE_MARKER = "_960x960q80"

TITLE_SELECTOR = "div.product-title-container h1"
MAIN_IMAGE_SELECTOR = "#ProductImageMain img"
COLOR_SELECTOR = "div.double-bordered-box img"
SIZE_SELECTOR = "div[data-testid='non-last-sku-item'] span"
DETAIL_SELECTOR = "div.id-line-clamp-2"
RANGE_PRICE_SELECTOR = "div[data-testid='range-price']"
LADDER_PRICE_SELECTOR = "div[data-testid='ladder-price'] div.price-item"
PRICE_QUANTITY_SELECTOR = "div.id-mb-2"
RANGE_CURRENT_SELECTOR = "span.id-text-2xl"
LADDER_CURRENT_SELECTOR = (
    "span.id-text-highlight-dark, span:not(.id-text-highlight-dark):not(.id-line-through)"
)
STRIKE_PRICE_SELECTOR = "span[class*='line-through']"
SHIPPING_ITEM_SELECTOR = "div.shipping-layout div.shipping-item"


def absolute_url(src: str) -> str:
    if src.startswith("//"):
        return "https:" + src
    return src


def pair_details(texts: list[str]) -> dict[str, str]:
    """Turn the flat key, value, key, value... text cells into a mapping.

    A cell pair with an empty side is not consumed as a pair; scanning resumes
    at the next cell.
    """
    details: dict[str, str] = {}
    i = 0
    while i < len(texts) - 1:
        key, value = texts[i].strip(), texts[i + 1].strip()
        if key and value:
            details[key] = value
            i += 2
        else:
            i += 1
    return details


def shipping_line(method: str, intro: str, delivery: str) -> str:
    return f"{method}: {intro} | {delivery}"


def join_logistics(lines: list[str]) -> str:
    return " || ".join(lines)


async def _text(parent: Page | ElementHandle, selector: str) -> str:
    el = await parent.query_selector(selector)
    if el is None:
        return ""
    return (await el.inner_text()).strip()


class ProductPageScraper:
    """Drives a headless browser over product pages and emits raw items."""

    def __init__(
        self,
        headless: bool | None = None,
        settle_seconds: float | None = None,
        timeout_ms: int | None = None,
    ):
        self.headless = settings.browser_headless if headless is None else headless
        self.settle_seconds = settings.page_settle_seconds if settle_seconds is None else settle_seconds
        self.timeout_ms = timeout_ms or settings.page_timeout_ms
        self._playwright = None
        self._browser: Browser | None = None
        self._lock = asyncio.Lock()

    async def _ensure_browser(self) -> Browser:
        if self._browser:
            return self._browser

        async with self._lock:
            if self._browser:
                return self._browser

            self._playwright = await async_playwright().start()
            channel = settings.browser_channel
            log.info(f"Using browser channel: {channel or 'bundled chromium'}")
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                channel=channel,
                args=["--no-sandbox", "--disable-dev-shm-usage"],
            )
            return self._browser

    async def close(self) -> None:
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    async def scrape(self, url: str, category: str, location: str, subcategory: str = "") -> dict | None:
        browser = await self._ensure_browser()
        page = await browser.new_page()
        try:
            await page.goto(url, wait_until="load", timeout=self.timeout_ms)
            await asyncio.sleep(self.settle_seconds)

            return {
                "url": url,
                "category": category,
                "subcategory": subcategory,
                "location": location,
                "title": await _text(page, TITLE_SELECTOR),
                "images": await self._images(page),
                "colors": await self._colors(page),
                "sizes": await self._sizes(page),
                "details": await self._details(page),
                "prices": await self._prices(page),
                "logistics": await self._logistics(page),
            }
        except Exception as e:
            log.error(f"Scrape failed for {url}: {e}", exc_info=True)
            return None
        finally:
            await page.close()

    async def scrape_all(
        self, urls: list[str], category: str, location: str, subcategory: str = ""
    ) -> list[dict]:
        items = []
        for i, url in enumerate(urls, start=1):
            log.info(f"[{i}/{len(urls)}] Scraping {url}")
            item = await self.scrape(url, category, location, subcategory)
            if item is not None:
                items.append(item)
        return items

    async def _images(self, page: Page) -> list[str]:
        images = []
        for img in await page.query_selector_all(MAIN_IMAGE_SELECTOR):
            src = await img.get_attribute("src")
            if src and LARGE_IMAGE_MARKER in src:
                images.append(absolute_url(src))
        return images

    async def _colors(self, page: Page) -> list[dict]:
        colors = []
        for img in await page.query_selector_all(COLOR_SELECTOR):
            alt = await img.get_attribute("alt")
            src = await img.get_attribute("src")
            colors.append({"name": alt or "", "image": absolute_url(src) if src else ""})
        return colors

    async def _sizes(self, page: Page) -> list[str]:
        sizes = []
        for span in await page.query_selector_all(SIZE_SELECTOR):
            text = (await span.inner_text()).strip()
            if text:
                sizes.append(text)
        return sizes

    async def _details(self, page: Page) -> dict[str, str]:
        cells = await page.query_selector_all(DETAIL_SELECTOR)
        return pair_details([await c.inner_text() for c in cells])

    async def _prices(self, page: Page) -> list[dict]:
        blocks = await page.query_selector_all(RANGE_PRICE_SELECTOR)
        current_selector = RANGE_CURRENT_SELECTOR
        if not blocks:
            blocks = await page.query_selector_all(LADDER_PRICE_SELECTOR)
            current_selector = LADDER_CURRENT_SELECTOR

        prices = []
        for block in blocks:
            quantity = await _text(block, PRICE_QUANTITY_SELECTOR)
            # The struck-through price is the list price; prefer it over the sale price.
            value = await _text(block, STRIKE_PRICE_SELECTOR) or await _text(block, current_selector)
            if quantity or value:
                prices.append({"quantity": quantity, "value": value})
        return prices

    async def _logistics(self, page: Page) -> str:
        lines = []
        for item in await page.query_selector_all(SHIPPING_ITEM_SELECTOR):
            method = await _text(item, ".shipping-title_method")
            if not method:
                continue
            intro = await _text(item, ".shipping-intro")
            delivery = await _text(item, ".shipping-delivery")
            lines.append(shipping_line(method, intro, delivery))
        return join_logistics(lines)


def read_urls(path: Path) -> list[str]:
    import json

    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON list of URLs")
    return [u for u in data if isinstance(u, str) and u.strip()]
