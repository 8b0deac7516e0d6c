from tmgmt_connect import config
from tmgmt_connect.connectors.service import TranslatorPlugin, validate_translator_config
from tmgmt_connect.connectors.exceptions import ConfigurationError

import pytest


def test_defaults_are_seeded():
    loaded = config.load_config()
    assert loaded["translation"]["chunk_size"] == config.DEFAULT_CHUNK_SIZE
    assert loaded["lang_connector"]["url"] == "https://api.locale.to"


def test_outline_detection_requires_tag_handling():
    assert config.normalize_translator_settings(
        {"tag_handling": "0", "outline_detection": "1"}
    )["outline_detection"] is False
    assert config.normalize_translator_settings(
        {"tag_handling": "1", "outline_detection": "1"}
    )["outline_detection"] is True


def test_chunk_size_falls_back_to_default():
    assert config.get_chunk_size({"translation": {"chunk_size": "bad"}}) == config.DEFAULT_CHUNK_SIZE
    assert config.get_chunk_size({"translation": {"chunk_size": 0}}) == config.DEFAULT_CHUNK_SIZE
    assert config.get_chunk_size({"translation": {"chunk_size": 2}}) == 2


def test_validate_translator_config_reports_missing_key():
    with pytest.raises(ConfigurationError) as excinfo:
        validate_translator_config("lang_connector")
    assert excinfo.value.details["missing_field"] == "auth_key"


def test_xtm_needs_a_url(configured):
    config.save_translator_settings("xtm_connect", {"url": ""})
    available = TranslatorPlugin("xtm_connect").check_available()
    assert available.available is False
    assert "XTM Connect" in available.reason


def test_lang_connector_has_format_checkout_option(configured):
    form = TranslatorPlugin("lang_connector").checkout_settings_form({"id": 1, "settings": {}})
    assert form["settings"]["active"]["options"] == {0: "JSON"}
