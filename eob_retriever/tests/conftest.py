# tests/conftest.py
import pytest
from typing import List, Optional

from eob_retriever.core.config import AppSettings
from eob_retriever.models.claims import ClaimRow, SessionCookie


@pytest.fixture
def app_settings(tmp_path):
    """Settings pointing downloads at a per-test temp directory, with short timeouts."""
    return AppSettings(
        LOGIN_PAGE="https://portal.example.com/Login.aspx",
        CLAIMS_PAGE="https://portal.example.com/Member/Claims.aspx",
        USER_ID="member01",
        PASSWORD="s3cret",
        START_DATE="01/01/2020",
        END_DATE="12/31/2020",
        DOWNLOAD_LOCATION=str(tmp_path / "eobs"),
        GENERAL_TIMEOUT_SECONDS=5,
        ROW_CONVERGENCE_TIMEOUT_SECONDS=1,
        ROW_POLL_INTERVAL_SECONDS=0.01,
    )


def make_row(claim_number: Optional[str], service_date: Optional[str], target: Optional[str]) -> ClaimRow:
    href = f"javascript:OpenWindow('{target}')" if target is not None else None
    return ClaimRow(claim_number=claim_number, service_date=service_date, link_href=href)


class FakeClaimsPortal:
    """
    Stands in for ClaimsPortalPage. `row_counts` are returned by successive
    read_row_count() calls; the last value repeats once the list runs out.
    """

    def __init__(self, count_text: str, row_counts: List[int], rows: Optional[List[ClaimRow]] = None,
                 cookies: Optional[List[SessionCookie]] = None):
        self.count_text = count_text
        self.row_counts = list(row_counts)
        self.rows = rows or []
        self.cookies = cookies or [SessionCookie(name="ASP.NET_SessionId", value="abc123")]
        self.calls: List[str] = []
        self.show_all_clicks = 0
        self.row_count_reads = 0

    async def login(self, credentials):
        self.calls.append("login")

    async def goto_claims_page(self, claims_url):
        self.calls.append("goto_claims_page")

    async def submit_search(self, date_range):
        self.calls.append("submit_search")
        self.submitted_range = date_range

    async def wait_for_results_table(self):
        self.calls.append("wait_for_results_table")
        return "results-table-handle"

    async def read_record_count_text(self):
        self.calls.append("read_record_count_text")
        return self.count_text

    async def read_row_count(self):
        self.row_count_reads += 1
        if len(self.row_counts) > 1:
            return self.row_counts.pop(0)
        return self.row_counts[0]

    async def click_show_all_records(self):
        self.calls.append("click_show_all_records")
        self.show_all_clicks += 1

    async def read_claim_rows(self, table):
        self.calls.append("read_claim_rows")
        return self.rows

    async def session_cookies(self):
        self.calls.append("session_cookies")
        return self.cookies


@pytest.fixture
def fake_portal_factory():
    return FakeClaimsPortal
