# eob_retriever/services/claims_processor.py
import httpx
import logging
from typing import Callable, List, Optional, Tuple
from playwright.async_api import async_playwright

from eob_retriever.core.config import AppSettings
from eob_retriever.models.claims import (
    ClaimLink,
    Credentials,
    DateRange,
    DownloadResult,
    RetrievalSummary,
    SessionCookie,
)
from eob_retriever.services import claims_table
from eob_retriever.services.document_downloader import DocumentDownloader
from eob_retriever.services.portal_page import ClaimsPortalPage
from eob_retriever.utils import playwright_utils

logger = logging.getLogger(__name__)


class ClaimsProcessorService:
    """
    Runs one retrieval end to end: login, claims page, date-range search,
    link extraction, then one sequential download per link.

    The browser session is scoped to `run()` and closed on every exit path.
    Anything except a per-link download failure aborts the run.
    """

    def __init__(
        self,
        settings: AppSettings,
        playwright_factory: Callable = async_playwright,
        http_client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
    ):
        self.settings = settings
        self.playwright_factory = playwright_factory
        self.http_client_factory = http_client_factory or self._default_http_client

    def _default_http_client(self) -> httpx.AsyncClient:
        # Links point at the pre-redirect location, so redirects must be followed.
        return httpx.AsyncClient(timeout=self.settings.DOWNLOAD_TIMEOUT_SECONDS, follow_redirects=True)

    def _credentials(self) -> Credentials:
        return Credentials(
            login_url=self.settings.LOGIN_PAGE,
            user_id=self.settings.USER_ID,
            password=self.settings.PASSWORD,
        )

    def _date_range(self) -> DateRange:
        return DateRange(start_date=self.settings.START_DATE, end_date=self.settings.END_DATE)

    async def collect_claim_links(self, portal: ClaimsPortalPage) -> Tuple[int, List[ClaimLink], List[SessionCookie]]:
        await portal.login(self._credentials())
        await portal.goto_claims_page(self.settings.CLAIMS_PAGE)

        table = await claims_table.load_claims_table(
            portal,
            self._date_range(),
            timeout_seconds=self.settings.ROW_CONVERGENCE_TIMEOUT_SECONDS,
            poll_interval=self.settings.ROW_POLL_INTERVAL_SECONDS,
        )
        rows = await portal.read_claim_rows(table.handle)
        links = claims_table.extract_claim_links(rows, skip_malformed_rows=self.settings.SKIP_MALFORMED_ROWS)

        # Copied once; downloads reuse the same snapshot.
        cookies = await portal.session_cookies()
        return table.total_records, links, cookies

    async def run(self, on_result: Optional[Callable[[DownloadResult], None]] = None) -> RetrievalSummary:
        """`on_result` is called once per link, as soon as its download finishes."""
        logger.info(f"Starting EOB retrieval for {self.settings.START_DATE} - {self.settings.END_DATE}.")
        async with self.playwright_factory() as playwright:
            async with playwright_utils.browser_session(playwright, self.settings) as page:
                portal = ClaimsPortalPage(page, self.settings)
                try:
                    total_records, links, cookies = await self.collect_claim_links(portal)
                except Exception as e:
                    logger.error(f"Claim link collection failed: {type(e).__name__}: {e}")
                    if self.settings.SCREENSHOT_ON_ERROR:
                        await playwright_utils.safe_screenshot(page, self.settings, "collection_failed", type(e).__name__)
                    raise

                async with self.http_client_factory() as client:
                    downloader = DocumentDownloader(self.settings, client)
                    results = await downloader.download_all(links, cookies, on_result=on_result)

        summary = RetrievalSummary(total_records=total_records, results=results)
        if summary.failed:
            logger.warning(f"EOB retrieval finished with failures: {summary.describe()}")
        else:
            logger.info(f"EOB retrieval finished: {summary.describe()}")
        return summary
