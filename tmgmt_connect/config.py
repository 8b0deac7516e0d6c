import copy
import json
import sqlite3
from typing import Dict, Any, Optional

from tmgmt_connect.core import database as db
from tmgmt_connect.core.schema import initialize_database
from tmgmt_connect.logger import get_logger

logger = get_logger(__name__)

# Translation configuration constants
DEFAULT_CHUNK_SIZE = 5  # Max number of texts sent in one LangConnector request
DEFAULT_QUEUE_LEASE_SECONDS = 120
DEFAULT_QUEUE_MAX_ATTEMPTS = 3

# Translator configuration constants
TRANSLATORS = ["lang_connector", "xtm_connect"]

TRANSLATOR_DISPLAY_NAMES = {
    "lang_connector": "Lang Connector",
    "xtm_connect": "XTM Connect",
}

TRANSLATOR_DESCRIPTIONS = {
    "lang_connector": "Lang Connector Translator service.",
    "xtm_connect": "XTM Connect Translator service.",
}

# Default configuration template
DEFAULT_CONFIG = {
    "lang_connector": {
        "url": "https://api.locale.to",
        "auth_key": "",
        "tag_handling": False,
        "outline_detection": False,
        "remote_languages_mappings": {},
        "timeout": None,
    },
    "xtm_connect": {
        "url": "",
        "auth_key": "",
        "tag_handling": False,
        "outline_detection": False,
        "timeout": None,
    },
    "translation": {
        "chunk_size": DEFAULT_CHUNK_SIZE,
        # Regexes whose matches are sent wrapped in the translator's no-translate tag
        "escape_patterns": [],
    },
    "queue": {
        "lease_seconds": DEFAULT_QUEUE_LEASE_SECONDS,
        "max_attempts": DEFAULT_QUEUE_MAX_ATTEMPTS,
    },
    "log_mode": "info"
}


def initialize_app():
    """
    Initialize the application.
    Creates the database and stores the default configuration on first run.
    """
    logger.info("Initializing application...")

    initialize_database()
    logger.info("Database initialized")

    existing_config = db.get_app_config('config')
    if not existing_config:
        logger.info("No config in database, initializing default config")
        save_config(DEFAULT_CONFIG)
    else:
        logger.debug("Config already exists in database")

    logger.info("Application initialization complete")


def _merge_defaults(stored: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay a stored config onto DEFAULT_CONFIG, one level deep."""
    config = copy.deepcopy(DEFAULT_CONFIG)
    for key, value in stored.items():
        if isinstance(value, dict) and isinstance(config.get(key), dict):
            config[key].update(value)
        else:
            config[key] = value
    return config


def peek_config() -> Optional[Dict[str, Any]]:
    """Return the stored configuration, or None when nothing is stored yet. Never writes."""
    if not db.DB_FILE.exists():
        return None
    try:
        config_json = db.get_app_config('config')
    except sqlite3.OperationalError:
        return None
    if not config_json:
        return None
    try:
        return _merge_defaults(json.loads(config_json))
    except json.JSONDecodeError:
        return None


def load_config() -> Dict[str, Any]:
    """Load the configuration from database."""
    try:
        config_json = db.get_app_config('config')
    except sqlite3.OperationalError as e:
        logger.error(f"Failed to load config from database: {e}")
        logger.warning("Using default configuration")
        return copy.deepcopy(DEFAULT_CONFIG)

    if not config_json:
        logger.debug("No config in database, using defaults")
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        config = _merge_defaults(json.loads(config_json))
        logger.debug("Configuration loaded from database")
        return config
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse config from database: {e}")
        logger.warning("Using default configuration")
        return copy.deepcopy(DEFAULT_CONFIG)


def save_config(config: Dict[str, Any]):
    """Save the configuration to database."""
    try:
        config_json = json.dumps(config, ensure_ascii=False)
        db.set_app_config('config', config_json)
        logger.info("Configuration saved to database")
    except Exception as e:
        logger.error(f"Failed to save config to database: {e}")
        raise


def _as_bool(value: Any) -> bool:
    """Interpret form-style toggles ("0", "1", "false", True...)."""
    if isinstance(value, str):
        return value.strip().lower() not in ("", "0", "false", "off", "no")
    return bool(value)


def normalize_translator_settings(settings: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normalize translator settings before they are stored.

    Outline detection depends on tag handling: when tag handling is
    switched off, outline detection is forced off as well.
    """
    normalized = dict(settings)
    normalized["tag_handling"] = _as_bool(normalized.get("tag_handling", False))
    normalized["outline_detection"] = _as_bool(normalized.get("outline_detection", False))
    if not normalized["tag_handling"]:
        normalized["outline_detection"] = False

    for key in ("url", "auth_key"):
        if normalized.get(key) is not None:
            normalized[key] = str(normalized[key]).strip()

    return normalized


def get_translator_settings(translator_id: str, config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Get the settings of one translator merged with its defaults."""
    if translator_id not in TRANSLATORS:
        raise KeyError(f"Unknown translator: {translator_id}")
    config = config if config is not None else load_config()
    settings = dict(DEFAULT_CONFIG[translator_id])
    settings.update(config.get(translator_id) or {})
    return settings


def save_translator_settings(translator_id: str, settings: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize and persist the settings of one translator."""
    config = load_config()
    merged = get_translator_settings(translator_id, config)
    merged.update(settings)
    normalized = normalize_translator_settings(merged)
    config[translator_id] = normalized
    save_config(config)
    return normalized


def get_chunk_size(config: Optional[Dict[str, Any]] = None) -> int:
    """Get the configured chunk size, falling back to the default for invalid values."""
    config = config if config is not None else load_config()
    try:
        chunk_size = int(config.get("translation", {}).get("chunk_size", DEFAULT_CHUNK_SIZE))
    except (TypeError, ValueError):
        logger.warning("Invalid chunk_size in config, using default %s", DEFAULT_CHUNK_SIZE)
        return DEFAULT_CHUNK_SIZE
    return chunk_size if chunk_size > 0 else DEFAULT_CHUNK_SIZE
