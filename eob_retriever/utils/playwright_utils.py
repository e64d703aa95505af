# eob_retriever/utils/playwright_utils.py
import os
import re
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from playwright.async_api import Playwright, Browser, BrowserContext, Page

from eob_retriever.core.config import AppSettings

logger = logging.getLogger(__name__)

def _get_common_context_options() -> dict:
    return {
        "user_agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "viewport": {"width": 1366, "height": 768},
        "java_script_enabled": True,
    }

async def close_browser_resources(browser: Optional[Browser], context: Optional[BrowserContext], page: Optional[Page]):
    """Closes page, context and browser in that order. Close errors are logged, never raised."""
    if page and not page.is_closed():
        try: await page.close()
        except Exception as e: logger.warning(f"Error closing page: {e}")
    if context:
        try: await context.close()
        except Exception as e: logger.warning(f"Error closing browser context: {e}")
    if browser and browser.is_connected():
        try: await browser.close()
        except Exception as e: logger.warning(f"Error closing browser: {e}")
    logger.info("Closed browser resources.")

@asynccontextmanager
async def browser_session(playwright: Playwright, settings: AppSettings) -> AsyncIterator[Page]:
    """
    Launches one browser with one context and page and yields the page.
    Everything is closed on exit, whether the body succeeded or raised.
    """
    browser: Optional[Browser] = None
    context: Optional[BrowserContext] = None
    page: Optional[Page] = None
    try:
        browser = await playwright.chromium.launch(headless=settings.HEADLESS)
        context = await browser.new_context(**_get_common_context_options())
        context.set_default_timeout(settings.GENERAL_TIMEOUT_SECONDS * 1000)
        page = await context.new_page()
        logger.info(f"Browser session opened (headless={settings.HEADLESS}).")
        yield page
    finally:
        await close_browser_resources(browser, context, page)

async def safe_screenshot(page: Page, settings: AppSettings, filename_prefix: str, details: str = ""):
    sane_details = re.sub(r'[^\w.-]+', '-', details)[:50].strip('-')
    screenshot_filename = f"debug_{filename_prefix}{'_' + sane_details if sane_details else ''}.png"
    screenshot_path = os.path.join(settings.SCREENSHOT_PATH, screenshot_filename)

    try:
        os.makedirs(os.path.dirname(screenshot_path), exist_ok=True)
        await page.screenshot(path=screenshot_path)
        logger.info(f"Debug screenshot saved: {screenshot_path}")
    except Exception as e:
        logger.error(f"Failed to save screenshot {screenshot_path}: {e}")
