# eob_retriever/services/portal_page.py
import logging
from typing import List
from playwright.async_api import Page, Locator

from eob_retriever.core.config import AppSettings, PortalSelectors
from eob_retriever.models.claims import ClaimRow, Credentials, DateRange, SessionCookie

logger = logging.getLogger(__name__)

# Mirrors `table.querySelector('tbody').children.length`: rows the grid has rendered so far.
_ROW_COUNT_JS = """
table => {
    const body = table.querySelector('tbody');
    return body ? body.children.length : 0;
}
"""

# One entry per `tbody > tr`; a missing cell comes back as null so the caller decides what to do.
_READ_ROWS_JS = """
(table, sel) => Array.from(table.querySelectorAll(sel.row)).map(row => {
    const text = (selector) => {
        const el = row.querySelector(selector);
        return el ? el.textContent : null;
    };
    const anchor = row.querySelector(sel.link);
    return {
        claim_number: text(sel.claim_number),
        service_date: text(sel.service_date),
        link_href: anchor ? anchor.href : null,
    };
})
"""


class ClaimsPortalPage:
    """
    Page adapter for the claims portal. Every selector and DOM detail of the
    site lives here; callers only see dates, counts, rows and cookies.
    """

    def __init__(self, page: Page, settings: AppSettings):
        self.page = page
        self.settings = settings
        self.selectors: PortalSelectors = settings.PORTAL_SELECTORS

    @property
    def _timeout_ms(self) -> int:
        return self.settings.GENERAL_TIMEOUT_SECONDS * 1000

    async def login(self, credentials: Credentials) -> None:
        logger.info(f"Opening login page: {credentials.login_url}")
        await self.page.goto(credentials.login_url, timeout=self._timeout_ms)
        await self.page.fill(self.selectors.USERNAME_INPUT, credentials.user_id, timeout=self._timeout_ms)
        await self.page.fill(self.selectors.PASSWORD_INPUT, credentials.password, timeout=self._timeout_ms)

        async with self.page.expect_navigation(timeout=self._timeout_ms):
            await self.page.click(self.selectors.LOGIN_BUTTON, timeout=self._timeout_ms)
        logger.info(f"Navigation after login click completed. Current URL: {self.page.url}")

    async def goto_claims_page(self, claims_url: str) -> None:
        await self.page.goto(claims_url, timeout=self._timeout_ms)
        current_url = self.page.url or ""
        if self.selectors.LOGIN_PAGE_URL_IDENTIFIER.lower() in current_url.lower():
            # Not treated as an error: the search form wait will fail loudly if the session is gone.
            logger.warning(f"Claims page request landed on '{current_url}', which looks like the login page.")
        else:
            logger.info(f"On claims page: {current_url}")

    async def submit_search(self, date_range: DateRange) -> None:
        logger.info(f"Searching claims from {date_range.start_date} to {date_range.end_date}.")
        # Typed key by key: the date widgets only pick up keyboard input.
        await self.page.locator(self.selectors.FROM_DATE_INPUT).press_sequentially(date_range.start_date, timeout=self._timeout_ms)
        await self.page.locator(self.selectors.END_DATE_INPUT).press_sequentially(date_range.end_date, timeout=self._timeout_ms)
        await self.page.click(self.selectors.SEARCH_BUTTON, timeout=self._timeout_ms)

    async def wait_for_results_table(self) -> Locator:
        await self.page.wait_for_selector(self.selectors.RESULTS_TABLE, timeout=self._timeout_ms)
        logger.debug("Results table detected.")
        return self.page.locator(self.selectors.RESULTS_TABLE)

    async def read_record_count_text(self) -> str:
        text = await self.page.text_content(self.selectors.RECORD_COUNT_LABEL, timeout=self._timeout_ms)
        return text or ""

    async def read_row_count(self) -> int:
        return await self.page.locator(self.selectors.RESULTS_TABLE).evaluate(_ROW_COUNT_JS)

    async def click_show_all_records(self) -> None:
        logger.info("Not all records are displayed. Checking 'Display All Records'.")
        await self.page.click(self.selectors.SHOW_ALL_RECORDS_CHECKBOX, timeout=self._timeout_ms)

    async def read_claim_rows(self, table: Locator) -> List[ClaimRow]:
        raw_rows = await table.evaluate(_READ_ROWS_JS, {
            "row": self.selectors.ROW_SELECTOR,
            "claim_number": self.selectors.CLAIM_NUMBER_CELL,
            "service_date": self.selectors.SERVICE_DATE_CELL,
            "link": self.selectors.DOCUMENT_LINK_ANCHOR,
        })
        logger.debug(f"Read {len(raw_rows)} raw row(s) from results table.")
        return [ClaimRow(**raw) for raw in raw_rows]

    async def session_cookies(self) -> List[SessionCookie]:
        cookies = await self.page.context.cookies()
        logger.debug(f"Captured {len(cookies)} cookie(s) from the browser context.")
        return [SessionCookie(name=c["name"], value=c["value"]) for c in cookies]
