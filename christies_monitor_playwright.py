#!/usr/bin/env python3
"""
Christie's online auction monitor (Playwright) -> writes a JSON bid snapshot for a set of lots.

- Uses your saved session (auth.json) when present so the page renders as it does logged in
- Loads the auction listing page headless and waits a moment for the lot data to settle
- Pulls the lot JSON embedded in the rendered HTML (see lot_report.py)
- Writes out/data.json with one entry per requested lot and the running bid total

Install:
  pip install -e .
  playwright install chromium

First run once to save your session (creates auth.json):
  python save_session.py

Run:
  AUCTION_URL="https://onlineonly.christies.com/s/.../lots/3756" python christies_monitor_playwright.py
"""

import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict

from playwright.sync_api import sync_playwright, TimeoutError as PlaywrightTimeoutError

from lot_report import save_snapshot
from settings import MonitorSettings, configure_logging, load_settings

log = logging.getLogger("christies_monitor")


def context_options(devices: Dict[str, Dict[str, Any]], settings: MonitorSettings, use_storage: bool = True) -> Dict[str, Any]:
    """new_context() kwargs: device profile, our UA/viewport, and the saved session if there is one."""
    opts = dict(devices.get(settings.device, {}))
    opts.pop("default_browser_type", None)
    opts["user_agent"] = settings.user_agent
    opts["viewport"] = {"width": settings.viewport_width, "height": settings.viewport_height}

    if use_storage:
        storage = Path(settings.storage_state_file)
        if storage.exists():
            opts["storage_state"] = str(storage)
        else:
            log.warning("No session file %s; scraping anonymously (run save_session.py first)", storage)
    return opts


def fetch_html(settings: MonitorSettings) -> str:
    """Rendered HTML of the auction page."""
    with sync_playwright() as p:
        browser = p.chromium.launch(headless=settings.headless)
        context = browser.new_context(**context_options(p.devices, settings))
        context.set_default_navigation_timeout(settings.nav_timeout_ms)

        page = context.new_page()
        log.info("Loading %s", settings.auction_url)
        page.goto(settings.auction_url, wait_until="domcontentloaded")
        page.wait_for_timeout(settings.settle_ms)

        html = page.content()
        browser.close()

    log.debug("Captured %d chars of HTML", len(html))
    return html


def check_once(settings: MonitorSettings, fetch: Callable[[MonitorSettings], str] = fetch_html) -> Dict[str, Any]:
    html = fetch(settings)
    return save_snapshot(html, settings.auction_url, settings.target_lots, settings.output_file)


def main():
    configure_logging()
    try:
        check_once(load_settings())
    except PlaywrightTimeoutError as exc:
        log.error("Navigation timed out: %s", exc)
        sys.exit(1)
    except Exception:
        log.exception("Scrape failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
