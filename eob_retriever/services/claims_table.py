# eob_retriever/services/claims_table.py
import re
import asyncio
import logging
from urllib.parse import unquote
from typing import Any, List, NamedTuple, Optional, Sequence

from eob_retriever.core.errors import (
    DocumentLinkFormatError,
    MissingColumnError,
    RecordCountFormatError,
    RowCountConvergenceError,
    ServiceDateFormatError,
    ClaimFormatError,
)
from eob_retriever.models.claims import ClaimLink, ClaimRow, DateRange
from eob_retriever.services.portal_page import ClaimsPortalPage
from eob_retriever.utils import common

logger = logging.getLogger(__name__)

RECORD_COUNT_PATTERN = re.compile(r"^(\d+) record\(s\)")
SERVICE_DATE_PATTERN = re.compile(r"(\d\d)/(\d\d)/(\d\d\d\d)")
OPEN_WINDOW_PATTERN = re.compile(r"javascript:OpenWindow\('(.+)'\)")


class ClaimsTable(NamedTuple):
    handle: Any  # playwright Locator for the results grid
    total_records: int


def parse_record_count(text: Optional[str]) -> int:
    """Leading integer of a label such as '42 record(s) found'."""
    match = RECORD_COUNT_PATTERN.match(common.clean_html_text(text))
    if not match:
        raise RecordCountFormatError(f"Record count label did not match 'N record(s)': {text!r}")
    return int(match.group(1))


def to_iso_date(service_date: str) -> str:
    """MM/DD/YYYY -> YYYY-MM-DD."""
    match = SERVICE_DATE_PATTERN.search(service_date)
    if not match:
        raise ServiceDateFormatError(f"Service date is not MM/DD/YYYY: {service_date!r}")
    month, day, year = match.groups()
    return f"{year}-{month}-{day}"


def decode_document_url(encoded_url: str) -> str:
    # The portal percent-encodes the URL with '%' itself encoded twice.
    # Exactly one decoding pass: '%253D' -> '%3D' and '%2541' -> '%41', never 'A'.
    return unquote(encoded_url)


def extract_document_url(href: str) -> str:
    match = OPEN_WINDOW_PATTERN.search(href)
    if not match:
        raise DocumentLinkFormatError(f"Document link is not a javascript:OpenWindow('...') call: {href!r}")
    return decode_document_url(match.group(1))


def build_claim_filename(claim_number: str, service_date_iso: str) -> str:
    return f"{common.sanitize_filename_component(claim_number)}_{service_date_iso}.pdf"


def claim_link_from_row(row: ClaimRow, row_index: int) -> ClaimLink:
    if row.claim_number is None:
        raise MissingColumnError(row_index, "claim number")
    if row.service_date is None:
        raise MissingColumnError(row_index, "service date")
    if row.link_href is None:
        raise MissingColumnError(row_index, "document link")

    claim_number = common.clean_html_text(row.claim_number)
    service_date_iso = to_iso_date(row.service_date)
    url = extract_document_url(row.link_href)
    return ClaimLink(filename=build_claim_filename(claim_number, service_date_iso), url=url)


def extract_claim_links(rows: Sequence[ClaimRow], skip_malformed_rows: bool = False) -> List[ClaimLink]:
    """
    Turns scraped rows into ClaimLinks, preserving row order.

    By default the first malformed row aborts the whole extraction. With
    `skip_malformed_rows` the row is logged and left out instead.
    """
    links: List[ClaimLink] = []
    skipped = 0
    for row_index, row in enumerate(rows, start=1):
        try:
            link = claim_link_from_row(row, row_index)
        except ClaimFormatError as e:
            if not skip_malformed_rows:
                raise
            skipped += 1
            logger.warning(f"Skipping malformed row {row_index}: {e}")
            continue
        logger.debug(f"Row {row_index}: {link.filename} -> {link.url}")
        links.append(link)

    if skipped:
        logger.warning(f"Skipped {skipped} malformed row(s) out of {len(rows)}.")
    logger.info(f"Extracted {len(links)} claim link(s) from {len(rows)} row(s).")
    return links


async def wait_for_row_count(
    portal: ClaimsPortalPage, expected: int, timeout_seconds: float, poll_interval: float = 0.5
) -> int:
    """Polls the rendered row count until it equals `expected`."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout_seconds
    last_seen: Optional[int] = None
    while True:
        last_seen = await portal.read_row_count()
        if last_seen == expected:
            return last_seen
        if loop.time() >= deadline:
            raise RowCountConvergenceError(expected, last_seen, timeout_seconds)
        logger.debug(f"Waiting for rows to render: {last_seen}/{expected}")
        await asyncio.sleep(poll_interval)


async def load_claims_table(
    portal: ClaimsPortalPage,
    date_range: DateRange,
    timeout_seconds: float,
    poll_interval: float = 0.5,
) -> ClaimsTable:
    """
    Runs the date-range search and makes sure every matching row is rendered.
    Returns the table handle together with the total the portal reported.
    """
    await portal.submit_search(date_range)
    table = await portal.wait_for_results_table()

    total_records = parse_record_count(await portal.read_record_count_text())
    visible_records = await portal.read_row_count()
    logger.info(f"Portal reports {total_records} record(s); {visible_records} rendered.")

    if visible_records < total_records:
        await portal.click_show_all_records()
        await wait_for_row_count(portal, total_records, timeout_seconds, poll_interval)
        logger.info(f"All {total_records} record(s) rendered.")

    return ClaimsTable(handle=table, total_records=total_records)
