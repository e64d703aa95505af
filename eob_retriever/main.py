# eob_retriever/main.py
import sys
import asyncio
import logging
import argparse
from typing import List, Optional
from dotenv import load_dotenv

from eob_retriever.core.config import DOTENV_PATH, load_settings
from eob_retriever.core.errors import ConfigurationError
from eob_retriever.models.claims import DownloadResult
from eob_retriever.services.claims_processor import ClaimsProcessorService

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Download EOB PDFs for every claim in a date range from the claims portal."
    )
    parser.add_argument("--start-date", default=None, help="Overrides startDate (MM/DD/YYYY)")
    parser.add_argument("--end-date", default=None, help="Overrides endDate (MM/DD/YYYY)")
    parser.add_argument("--download-dir", default=None, help="Directory for downloaded PDFs (default: current directory)")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    return parser.parse_args(argv)


def configure_logging(level_name: str):
    logging.basicConfig(
        level=getattr(logging, level_name.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def report_download(result: DownloadResult):
    """Prints each written path as soon as the file exists. Failures are logged."""
    if result.succeeded:
        print(result.file_path, flush=True)
    else:
        logger.error(f"Failed: {result.link.filename} ({result.status.value}): {result.error}")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    load_dotenv(DOTENV_PATH)

    overrides = {
        "START_DATE": args.start_date,
        "END_DATE": args.end_date,
        "DOWNLOAD_LOCATION": args.download_dir,
        "HEADLESS": False if args.headed else None,
    }
    try:
        settings = load_settings(overrides=overrides)
    except ConfigurationError as e:
        configure_logging("INFO")
        logger.error(str(e))
        return 1

    configure_logging(settings.LOG_LEVEL)

    try:
        summary = asyncio.run(ClaimsProcessorService(settings).run(on_result=report_download))
    except KeyboardInterrupt:
        logger.warning("Interrupted by user.")
        return 1
    except Exception:
        logger.exception("EOB retrieval aborted.")
        return 1

    logger.info(f"Summary: {summary.describe()}")
    return 0 if summary.failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
