# save_session.py
"""
Run this once (or whenever your Christie's login expires).
It opens a real browser so you can log in and open your auction,
then saves cookies/localStorage into auth.json for christies_monitor_playwright.py.

Install:
  pip install -e .
  playwright install chromium

Run:
  AUCTION_URL="https://onlineonly.christies.com/s/.../lots/3756" python save_session.py
"""

import logging
import sys

from playwright.sync_api import sync_playwright

from christies_monitor_playwright import context_options
from settings import configure_logging, load_settings

log = logging.getLogger("save_session")

def main():
    configure_logging()
    try:
        settings = load_settings()
        with sync_playwright() as p:
            browser = p.chromium.launch(headless=False)
            # same device profile as the scraper so the session matches its UA
            context = browser.new_context(**context_options(p.devices, settings, use_storage=False))
            page = context.new_page()
            page.goto(settings.auction_url, wait_until="domcontentloaded")

            print("A Chromium window opened. If needed, log in to Christie's and navigate to your auction.")
            print("Tip: keep this tab open; don't close the window.")
            input("Logged in and on the auction page? Press Enter here to save the session... ")

            context.storage_state(path=settings.storage_state_file)
            browser.close()
            print(f"Saved session to {settings.storage_state_file}")
    except Exception:
        log.exception("Saving session failed")
        sys.exit(1)

if __name__ == "__main__":
    main()
