from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, Optional

# --- Configuration ---
DEFAULT_API_BASE_URL = "http://localhost:5000/api"
API_URL_ENV_VAR = "NEWS_PULSE_API_URL"
HTTP_TIMEOUT = 15

CONFIG_PATH = os.path.expanduser("~/.config/news-pulse/config.json")

REQUEST_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "news-pulse/0.1",
}
RETRY_TOTAL = 3
RETRY_BACKOFF = 0.3
RETRY_STATUSES = (429, 500, 502, 503, 504)

DEFAULT_CONFIG: Dict[str, Any] = {
    "api_base_url": DEFAULT_API_BASE_URL,
    "http_timeout": HTTP_TIMEOUT,
    "theme": "dracula",
    "default_category": "general",
}

# --- Logging ---
logger = logging.getLogger("news_pulse")


def setup_logging(debug: bool = False) -> Optional[str]:
    """Configure logging. The terminal belongs to the UI, so only debug runs log."""
    if not debug:
        logging.basicConfig(level=logging.CRITICAL, handlers=[logging.NullHandler()])
        return None

    ts = datetime.now().strftime("%Y%m%dT%H%M%S")
    pid = os.getpid()
    debug_path = f"/tmp/news_pulse_debug_{ts}_{pid}.log"

    logging.basicConfig(
        level=logging.DEBUG,
        filename=debug_path,
        filemode="a",
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )

    logger.debug("Debug logging enabled to %s", debug_path)
    return debug_path


def ensure_config_file_exists(path: str = CONFIG_PATH) -> None:
    """Write the default config file if the user's config file is not found."""
    if os.path.exists(path):
        return
    logger.info("Config file not found at %s, creating default.", path)
    save_config(DEFAULT_CONFIG, path)


def load_config(path: str = CONFIG_PATH) -> Dict[str, Any]:
    """Load the configuration, layered over the defaults."""
    ensure_config_file_exists(path)
    config = dict(DEFAULT_CONFIG)
    try:
        with open(path, "r") as f:
            data = json.load(f)
        if isinstance(data, dict):
            config.update(data)
            logger.info("Loaded config from %s", path)
        else:
            logger.error("Ignoring config at %s: expected a JSON object", path)
    except (IOError, json.JSONDecodeError) as e:
        logger.error("Failed to load config from %s: %s", path, e)

    env_url = os.environ.get(API_URL_ENV_VAR)
    if env_url:
        config["api_base_url"] = env_url
    return config


def save_config(config: Dict[str, Any], path: str = CONFIG_PATH) -> None:
    """Save the main configuration file."""
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w") as f:
            json.dump(config, f, indent=2)
        logger.info("Saved config to %s", path)
    except IOError as e:
        logger.error("Failed to save config to %s: %s", path, e)
