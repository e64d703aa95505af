# eob_retriever/services/document_downloader.py
import os
import httpx
import logging
from typing import Callable, List, Optional, Sequence

from eob_retriever.core.config import AppSettings
from eob_retriever.models.claims import ClaimLink, DownloadResult, DownloadStatusEnum, SessionCookie
from eob_retriever.utils import common

logger = logging.getLogger(__name__)


def build_cookie_header(cookies: Sequence[SessionCookie]) -> str:
    return "; ".join(f"{cookie.name}={cookie.value}" for cookie in cookies)


class DocumentDownloader:
    """
    Fetches EOB documents with the browser session's cookies and writes them
    to the download directory. Per-link failures are returned as
    DownloadResults, never raised, so one bad link cannot stop the others.
    """

    def __init__(self, settings: AppSettings, client: httpx.AsyncClient):
        self.settings = settings
        self.client = client

    async def download(self, link: ClaimLink, cookies: Sequence[SessionCookie]) -> DownloadResult:
        headers = {"Cookie": build_cookie_header(cookies)}
        try:
            response = await self.client.get(link.url, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            error_msg = f"HTTP {e.response.status_code} fetching {link.url}"
            logger.error(f"[{link.filename}] {error_msg}")
            return DownloadResult(link=link, status=DownloadStatusEnum.HTTP_ERROR, error=error_msg)
        except httpx.RequestError as e:
            error_msg = f"{type(e).__name__} fetching {link.url}: {e}"
            logger.error(f"[{link.filename}] {error_msg}")
            return DownloadResult(link=link, status=DownloadStatusEnum.NETWORK_ERROR, error=error_msg)
        except httpx.InvalidURL as e:
            # Raised while building the request, outside the RequestError family.
            error_msg = f"Invalid document URL {link.url!r}: {e}"
            logger.error(f"[{link.filename}] {error_msg}")
            return DownloadResult(link=link, status=DownloadStatusEnum.INVALID_URL, error=error_msg)

        file_path = common.resolve_output_path(self.settings.DOWNLOAD_PATH, link.filename)
        try:
            os.makedirs(os.path.dirname(file_path), exist_ok=True)
            with open(file_path, 'wb') as f:
                f.write(response.content)
        except OSError as e:
            error_msg = f"{type(e).__name__} writing {file_path}: {e}"
            logger.error(f"[{link.filename}] {error_msg}")
            if os.path.isfile(file_path):
                try: os.remove(file_path)
                except OSError as e_rm: logger.warning(f"[{link.filename}] Could not remove partial file {file_path}: {e_rm}")
            return DownloadResult(link=link, status=DownloadStatusEnum.WRITE_ERROR, error=error_msg)

        logger.info(f"[{link.filename}] Saved {len(response.content)} bytes to {file_path}")
        return DownloadResult(link=link, status=DownloadStatusEnum.SUCCESS, file_path=file_path)

    async def download_all(
        self,
        links: Sequence[ClaimLink],
        cookies: Sequence[SessionCookie],
        on_result: Optional[Callable[[DownloadResult], None]] = None,
    ) -> List[DownloadResult]:
        """Downloads in link order. `on_result` sees each result as soon as it is known."""
        results: List[DownloadResult] = []
        for i, link in enumerate(links, start=1):
            logger.info(f"Downloading {i}/{len(links)}: {link.filename}")
            result = await self.download(link, cookies)
            results.append(result)
            if on_result:
                on_result(result)
        return results
