# eob_retriever/core/config.py
import os
import re
import json
import logging
from typing import Dict, Mapping, Optional
from pydantic import BaseModel, Field, ValidationError, field_validator

from eob_retriever.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILE_PATH = "config.json"
DOTENV_PATH = ".env"

PORTAL_DATE_PATTERN = re.compile(r"^\d{2}/\d{2}/\d{4}$")

class PortalSelectors(BaseModel):
    # Login page
    USERNAME_INPUT: str = "#ctl00_ContentPlaceHolder1_txtUserName"
    PASSWORD_INPUT: str = "#ctl00_ContentPlaceHolder1_txtPassword"
    LOGIN_BUTTON: str = "#ctl00_ContentPlaceHolder1_imgLogin"
    LOGIN_PAGE_URL_IDENTIFIER: str = "login"

    # Claims search form
    FROM_DATE_INPUT: str = "#ctl00_ContentPlaceHolder1_uwtClaimSearch__ctl0_wdcFromDate_input"
    END_DATE_INPUT: str = "#ctl00_ContentPlaceHolder1_uwtClaimSearch__ctl0_wdcEndDate_input"
    SEARCH_BUTTON: str = "#ctl00_ContentPlaceHolder1_uwtClaimSearch__ctl0_btnSearchEnrollee"

    # Results grid
    RESULTS_TABLE: str = "#G_ctl00xContentPlaceHolder1xuwtClaimSearchxxctl0xMemberClaimsInfo1xUltraWebGrid2"
    RECORD_COUNT_LABEL: str = "#ctl00_ContentPlaceHolder1_uwtClaimSearch__ctl0_MemberClaimsInfo1_lblCountMsg"
    SHOW_ALL_RECORDS_CHECKBOX: str = "#ctl00_ContentPlaceHolder1_uwtClaimSearch__ctl0_MemberClaimsInfo1_ckbAllRecords"

    # Per-row cells, relative to a `tbody > tr`
    ROW_SELECTOR: str = "tbody > tr"
    CLAIM_NUMBER_CELL: str = "td:nth-child(2) > nobr"
    SERVICE_DATE_CELL: str = "td:nth-child(6) > nobr"
    DOCUMENT_LINK_ANCHOR: str = "td:nth-child(9) > nobr > a"

class AppSettings(BaseModel):
    LOGIN_PAGE: str
    CLAIMS_PAGE: str
    USER_ID: str
    PASSWORD: str
    START_DATE: str
    END_DATE: str

    DOWNLOAD_LOCATION: str = "."
    LOG_LEVEL: str = "INFO"
    HEADLESS: bool = True
    SCREENSHOT_ON_ERROR: bool = True
    SKIP_MALFORMED_ROWS: bool = False

    GENERAL_TIMEOUT_SECONDS: int = Field(60, gt=0)
    ROW_CONVERGENCE_TIMEOUT_SECONDS: int = Field(120, gt=0)
    ROW_POLL_INTERVAL_SECONDS: float = Field(0.5, gt=0)
    DOWNLOAD_TIMEOUT_SECONDS: int = Field(60, gt=0)

    PORTAL_SELECTORS: PortalSelectors = Field(default_factory=PortalSelectors)

    @field_validator("START_DATE", "END_DATE")
    @classmethod
    def _check_portal_date(cls, value: str) -> str:
        value = value.strip()
        if not PORTAL_DATE_PATTERN.match(value):
            raise ValueError(f"expected MM/DD/YYYY, got '{value}'")
        return value

    @field_validator("LOG_LEVEL")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    @property
    def DOWNLOAD_PATH(self) -> str:
        return os.path.abspath(self.DOWNLOAD_LOCATION)

    @property
    def SCREENSHOT_PATH(self) -> str:
        # Kept out of the download directory so EOB listings stay clean
        return os.path.join(self.DOWNLOAD_PATH, "debug_screenshots")

    class Config:
        extra = 'ignore'

# Env var name -> settings field. The portal variables keep their original camelCase names.
ENV_KEYS: Dict[str, str] = {
    "loginPage": "LOGIN_PAGE",
    "claimsPage": "CLAIMS_PAGE",
    "userID": "USER_ID",
    "password": "PASSWORD",
    "startDate": "START_DATE",
    "endDate": "END_DATE",
    "DOWNLOAD_LOCATION": "DOWNLOAD_LOCATION",
    "LOG_LEVEL": "LOG_LEVEL",
    "HEADLESS": "HEADLESS",
    "SCREENSHOT_ON_ERROR": "SCREENSHOT_ON_ERROR",
    "SKIP_MALFORMED_ROWS": "SKIP_MALFORMED_ROWS",
    "GENERAL_TIMEOUT_SECONDS": "GENERAL_TIMEOUT_SECONDS",
    "ROW_CONVERGENCE_TIMEOUT_SECONDS": "ROW_CONVERGENCE_TIMEOUT_SECONDS",
    "ROW_POLL_INTERVAL_SECONDS": "ROW_POLL_INTERVAL_SECONDS",
    "DOWNLOAD_TIMEOUT_SECONDS": "DOWNLOAD_TIMEOUT_SECONDS",
}

def _load_selector_overrides(config_file_path: str) -> Optional[PortalSelectors]:
    if not os.path.exists(config_file_path):
        logger.debug(f"{config_file_path} not found. Using default portal selectors.")
        return None
    try:
        with open(config_file_path, 'r') as f:
            json_config = json.load(f)
    except Exception as e:
        logger.error(f"Error reading {config_file_path}: {e}. Using default portal selectors.")
        return None

    overrides = json_config.get("PORTAL_SELECTORS")
    if not isinstance(overrides, dict):
        return None
    try:
        selectors = PortalSelectors(**overrides)
        logger.info(f"Loaded PORTAL_SELECTORS from {config_file_path}.")
        return selectors
    except ValidationError as e_sel:
        logger.warning(f"Error parsing PORTAL_SELECTORS from {config_file_path}: {e_sel}. Using defaults.")
        return None

def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Dict[str, object]] = None,
    config_file_path: str = CONFIG_FILE_PATH,
) -> AppSettings:
    """
    Builds the settings object once at startup.

    Values come from `environ` (defaults to os.environ), then `overrides`
    (e.g. command line flags) win over the environment. Components receive
    the resulting AppSettings by parameter and never read the environment.
    """
    environ = os.environ if environ is None else environ
    raw: Dict[str, object] = {}
    for env_name, field_name in ENV_KEYS.items():
        value = environ.get(env_name)
        if value is not None and value != "":
            raw[field_name] = value
    for key, value in (overrides or {}).items():
        if value is not None:
            raw[key] = value

    selectors = _load_selector_overrides(config_file_path)
    if selectors is not None:
        raw["PORTAL_SELECTORS"] = selectors

    try:
        settings = AppSettings(**raw)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"Invalid or missing settings: {problems}") from e

    logger.info("Application settings processed.")
    logger.debug(f"Effective settings (password redacted): "
                 f"User='{settings.USER_ID}', "
                 f"LoginPage='{settings.LOGIN_PAGE}', "
                 f"ClaimsPage='{settings.CLAIMS_PAGE}', "
                 f"Range='{settings.START_DATE} - {settings.END_DATE}', "
                 f"DownloadLoc='{settings.DOWNLOAD_PATH}', "
                 f"Headless='{settings.HEADLESS}'")
    return settings
