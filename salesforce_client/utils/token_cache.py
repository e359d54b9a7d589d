"""Simple helpers for persisting an access token and its instance URL locally."""

from __future__ import annotations

import json
import logging
import os
import time
from typing import Optional, Tuple


PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
DEFAULT_CACHE_PATH = os.path.join(PROJECT_ROOT, ".cache", "session.json")


def load_cached_token(path: Optional[str], domain: Optional[str] = None) -> Optional[Tuple[str, str]]:
    """Returns ``(access_token, instance_url)`` or ``None`` when nothing usable is cached.

    When ``domain`` is given, entries saved for a different login domain are ignored.
    """

    if not path:
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except (json.JSONDecodeError, OSError) as exc:
        logging.warning("Failed to read token cache %s: %s", path, exc)
        return None

    token = data.get("access_token") if isinstance(data, dict) else None
    instance_url = data.get("instance_url") if isinstance(data, dict) else None
    if not token or not instance_url:
        return None
    if domain is not None and data.get("domain") != domain:
        logging.info("Ignoring cached token saved for a different domain")
        return None
    logging.info("Using cached access token from %s", path)
    return token, instance_url


def save_cached_token(path: Optional[str], token: str, instance_url: str, domain: str) -> None:
    if not path:
        return
    try:
        os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(
                {"access_token": token, "instance_url": instance_url, "domain": domain, "timestamp": time.time()},
                f,
            )
        logging.debug("Saved access token cache to %s", path)
    except OSError as exc:
        logging.warning("Unable to write token cache %s: %s", path, exc)


def clear_cached_token(path: Optional[str]) -> None:
    if not path:
        return
    try:
        if os.path.exists(path):
            os.remove(path)
            logging.info("Cleared cached token %s", path)
    except OSError as exc:  # pragma: no cover
        logging.warning("Failed to remove token cache %s: %s", path, exc)
