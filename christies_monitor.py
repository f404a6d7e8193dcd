#!/usr/bin/env python3
"""
Christie's online auction monitor (plain HTTP) -> writes the same JSON bid snapshot
as christies_monitor_playwright.py, without a browser.

Only works while the listing page ships its lot JSON in the initial HTML; if the
report comes back full of placeholders, use the Playwright version instead.

Install:
  pip install -e .

Run:
  python christies_monitor.py
"""

import logging
import sys
from typing import Any, Dict, Optional

import requests

from lot_report import save_snapshot
from settings import MonitorSettings, configure_logging, load_settings

log = logging.getLogger("christies_monitor")


def request_headers(settings: MonitorSettings) -> Dict[str, str]:
    return {
        "User-Agent": settings.user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Connection": "close",
    }


def fetch_html(settings: MonitorSettings, session: Optional[requests.Session] = None) -> str:
    """
    Raw HTML of the auction page. HTTP errors propagate.
    """
    own_session = session is None
    session = session or requests.Session()
    try:
        resp = session.get(
            settings.auction_url,
            headers=request_headers(settings),
            timeout=settings.request_timeout,
            allow_redirects=True,
        )
        resp.raise_for_status()
        if resp.url != settings.auction_url:
            log.info("Redirected to %s", resp.url)
        return resp.text
    finally:
        if own_session:
            session.close()


def check_once(settings: MonitorSettings) -> Dict[str, Any]:
    html = fetch_html(settings)
    return save_snapshot(html, settings.auction_url, settings.target_lots, settings.output_file)


def main():
    configure_logging()
    try:
        check_once(load_settings())
    except requests.RequestException as exc:
        log.error("Fetch failed: %s", exc)
        sys.exit(1)
    except Exception:
        log.exception("Scrape failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
