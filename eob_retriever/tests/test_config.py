# tests/test_config.py
import json
import os
import pytest

from eob_retriever.core.config import AppSettings, PortalSelectors, load_settings
from eob_retriever.core.errors import ConfigurationError

BASE_ENV = {
    "loginPage": "https://portal.example.com/Login.aspx",
    "claimsPage": "https://portal.example.com/Member/Claims.aspx",
    "userID": "member01",
    "password": "s3cret",
    "startDate": "01/01/2020",
    "endDate": "12/31/2020",
}


@pytest.fixture
def missing_config_file(tmp_path):
    return str(tmp_path / "no_config.json")


def test_env_names_map_to_settings(missing_config_file):
    settings = load_settings(environ=BASE_ENV, config_file_path=missing_config_file)

    assert settings.LOGIN_PAGE == "https://portal.example.com/Login.aspx"
    assert settings.CLAIMS_PAGE == "https://portal.example.com/Member/Claims.aspx"
    assert settings.USER_ID == "member01"
    assert settings.PASSWORD == "s3cret"
    assert settings.START_DATE == "01/01/2020"
    assert settings.END_DATE == "12/31/2020"
    assert settings.DOWNLOAD_PATH == os.path.abspath(".")
    assert settings.HEADLESS is True
    assert settings.PORTAL_SELECTORS == PortalSelectors()


def test_optional_values_are_coerced(missing_config_file, tmp_path):
    env = dict(BASE_ENV, DOWNLOAD_LOCATION=str(tmp_path), HEADLESS="false", LOG_LEVEL="debug",
               SKIP_MALFORMED_ROWS="true", ROW_CONVERGENCE_TIMEOUT_SECONDS="30")

    settings = load_settings(environ=env, config_file_path=missing_config_file)

    assert settings.DOWNLOAD_PATH == str(tmp_path)
    assert settings.SCREENSHOT_PATH == os.path.join(str(tmp_path), "debug_screenshots")
    assert settings.HEADLESS is False
    assert settings.LOG_LEVEL == "DEBUG"
    assert settings.SKIP_MALFORMED_ROWS is True
    assert settings.ROW_CONVERGENCE_TIMEOUT_SECONDS == 30


@pytest.mark.parametrize("missing", ["loginPage", "claimsPage", "userID", "password", "startDate", "endDate"])
def test_missing_required_value_raises(missing, missing_config_file):
    env = {k: v for k, v in BASE_ENV.items() if k != missing}
    with pytest.raises(ConfigurationError):
        load_settings(environ=env, config_file_path=missing_config_file)


def test_empty_value_counts_as_missing(missing_config_file):
    with pytest.raises(ConfigurationError) as exc_info:
        load_settings(environ=dict(BASE_ENV, password=""), config_file_path=missing_config_file)
    assert "PASSWORD" in str(exc_info.value)


@pytest.mark.parametrize("bad_date", ["2020-01-01", "1/1/2020", "01/01/20"])
def test_malformed_date_raises(bad_date, missing_config_file):
    with pytest.raises(ConfigurationError) as exc_info:
        load_settings(environ=dict(BASE_ENV, startDate=bad_date), config_file_path=missing_config_file)
    assert "START_DATE" in str(exc_info.value)


def test_overrides_win_over_environment(missing_config_file):
    settings = load_settings(
        environ=BASE_ENV,
        overrides={"START_DATE": "03/01/2020", "END_DATE": None, "HEADLESS": False},
        config_file_path=missing_config_file,
    )

    assert settings.START_DATE == "03/01/2020"
    assert settings.END_DATE == "12/31/2020"
    assert settings.HEADLESS is False


def test_selector_overrides_from_config_file(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"PORTAL_SELECTORS": {"SEARCH_BUTTON": "#btnSearch"}}))

    settings = load_settings(environ=BASE_ENV, config_file_path=str(config_file))

    assert settings.PORTAL_SELECTORS.SEARCH_BUTTON == "#btnSearch"
    assert settings.PORTAL_SELECTORS.LOGIN_BUTTON == PortalSelectors().LOGIN_BUTTON


def test_unreadable_config_file_falls_back_to_defaults(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text("{not json")

    settings = load_settings(environ=BASE_ENV, config_file_path=str(config_file))

    assert settings.PORTAL_SELECTORS == PortalSelectors()


def test_password_not_logged(missing_config_file, caplog):
    with caplog.at_level("DEBUG"):
        load_settings(environ=BASE_ENV, config_file_path=missing_config_file)
    assert "s3cret" not in caplog.text


def test_timeouts_must_be_positive():
    with pytest.raises(ValueError):
        AppSettings(**{
            "LOGIN_PAGE": "u", "CLAIMS_PAGE": "u", "USER_ID": "u", "PASSWORD": "p",
            "START_DATE": "01/01/2020", "END_DATE": "01/02/2020", "GENERAL_TIMEOUT_SECONDS": 0,
        })
