"""
Lot report builder: turns a rendered auction listing page into a bid snapshot.

- Finds lot JSON objects embedded anywhere in the page HTML (inline scripts,
  data attributes, ...) by scanning for the "lot_number" key and brace-matching
- Keeps the first copy of each lot, fills placeholders for lots not on the page
- Picks a shown amount per lot (current bid, else next bid) and totals the lots
  that actually have bids

Nothing here touches the browser or the network, so it can be fed saved HTML.
"""

import json
import logging
import math
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

log = logging.getLogger(__name__)

LOT_MARKER = '"lot_number"'

DYNAMIC_KEY = "online_only_dynamic_lot_data"
STATIC_KEY = "online_only_static_lot_data"

# " - 3 bids", "1 bid"
BID_COUNT_RE = re.compile(r"(\d+)\s+bids?\b", re.IGNORECASE)

# Cleanup applied before json.loads
LINE_SEPARATORS_RE = re.compile("[\u2028\u2029]")
TRAILING_COMMA_RE = re.compile(r",\s*([\]}])")

# -------------------------
# Helpers
# -------------------------

def to_number(value: Any) -> Optional[float]:
    """Parse 14000, "14000.00" or "14,000" into a float; None for anything else."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            n = float(value)
        except OverflowError:
            return None
        return n if math.isfinite(n) else None
    if isinstance(value, str):
        try:
            n = float(value.replace(",", "").strip())
        except ValueError:
            return None
        return n if math.isfinite(n) else None
    return None

def _sub(obj: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = obj.get(key)
    return value if isinstance(value, dict) else {}

def _first_text(*candidates: Any) -> Optional[str]:
    for c in candidates:
        if c is None:
            continue
        text = str(c).strip()
        if text:
            return text
    return None

def lot_key(lot: Dict[str, Any]) -> str:
    return str(lot.get("lot_number") or "").strip()

# -------------------------
# Embedded JSON extraction
# -------------------------

def _find_enclosing_object(html: str, pos: int) -> Tuple[int, int]:
    """
    (start, end) of the innermost object still open at pos: the nearest '{'
    before pos whose match closes after pos. A '{' that never closes (usually
    one sitting inside a string value) is passed over; if no candidate closes,
    the nearest unclosed one is returned with end -1. (-1, -1) when pos is not
    inside any object.
    """
    unclosed = -1
    start = html.rfind("{", 0, pos)
    while start != -1:
        end = _find_matching_close(html, start)
        if end == -1:
            if unclosed == -1:
                unclosed = start
        elif end > pos:
            return start, end
        start = html.rfind("{", 0, start)
    return unclosed, -1

def _find_matching_close(html: str, start: int) -> int:
    """
    Index of the '}' closing the object opened at start, or -1 if it never closes.
    Braces inside double-quoted strings are skipped.
    """
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(html)):
        ch = html[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return -1

def clean_json_text(text: str) -> str:
    text = LINE_SEPARATORS_RE.sub("", text)
    return TRAILING_COMMA_RE.sub(r"\1", text)

def extract_embedded_objects(html: str, marker: str = LOT_MARKER) -> List[Dict[str, Any]]:
    """
    Return every JSON object in html that has the marker key, in page order.

    Best-effort: a candidate that fails to parse is dropped and scanning resumes
    after it; a candidate whose braces never balance is skipped past its marker
    only, so objects further down the page are still found.
    """
    key = marker.strip('"')
    results: List[Dict[str, Any]] = []
    idx = 0

    while True:
        key_idx = html.find(marker, idx)
        if key_idx == -1:
            break

        start, end = _find_enclosing_object(html, key_idx)
        if start == -1:
            idx = key_idx + len(marker)
            continue

        if end == -1:
            log.debug("Unbalanced object at offset %d, skipping", start)
            idx = key_idx + len(marker)
            continue

        try:
            obj = json.loads(clean_json_text(html[start:end + 1]))
        except ValueError as exc:
            log.debug("Discarding unparseable object at offset %d: %s", start, exc)
        else:
            if isinstance(obj, dict) and key in obj:
                results.append(obj)

        idx = end + 1

    return results

# -------------------------
# Bid selection
# -------------------------

def parse_bid_count(text: Any) -> int:
    if not isinstance(text, str):
        return 0
    m = BID_COUNT_RE.search(text)
    return int(m.group(1)) if m else 0

def pick_bid(lot: Dict[str, Any]) -> Dict[str, Any]:
    """Normalized bid view of one lot record."""
    dynamic = _sub(lot, DYNAMIC_KEY)
    static = _sub(lot, STATIC_KEY)

    current_bid = to_number(lot.get("current_bid"))
    next_bid = to_number(dynamic.get("next_bid"))

    count_txt = lot.get("bid_count_txt")
    if count_txt is None:
        count_txt = dynamic.get("bid_count_txt")
    bid_count = parse_bid_count(count_txt)

    no_bids_flag = bool(lot.get("no_bids") or dynamic.get("no_bids"))

    if current_bid is not None:
        shown = current_bid
    elif next_bid is not None:
        shown = next_bid
    else:
        shown = None

    return {
        "current_bid": current_bid,
        "next_bid": next_bid,
        "shown_amount": shown,
        "bid_text": _first_text(
            lot.get("current_bid_txt"),
            dynamic.get("next_bid_text"),
            static.get("header_price"),
        ),
        "bid_count": bid_count,
        "has_no_bids": no_bids_flag or bid_count == 0,
    }

# -------------------------
# Aggregation
# -------------------------

def dedupe_lots(lots: Iterable[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """lot_number -> record; the first occurrence of each lot wins."""
    by_lot: Dict[str, Dict[str, Any]] = {}
    for lot in lots:
        by_lot.setdefault(lot_key(lot), lot)
    return by_lot

def placeholder_entry(lot_num: str) -> Dict[str, Any]:
    return {
        "lot": int(lot_num),
        "current_bid": None,
        "next_bid": None,
        "shown_amount": None,
        "status": None,
        "estimate": None,
        "bid_text": None,
        "bid_count": None,
        "has_no_bids": True,
    }

def make_entry(lot_num: str, lot: Dict[str, Any]) -> Dict[str, Any]:
    bids = pick_bid(lot)
    return {
        "lot": int(lot_num),
        "current_bid": bids["current_bid"],
        "next_bid": bids["next_bid"],
        "shown_amount": bids["shown_amount"],
        "status": _first_text(_sub(lot, DYNAMIC_KEY).get("item_status")),
        "estimate": _first_text(_sub(lot, STATIC_KEY).get("header_price")),
        "bid_text": bids["bid_text"],
        "bid_count": bids["bid_count"],
        "has_no_bids": bids["has_no_bids"],
    }

def build_entries(lots: Iterable[Dict[str, Any]], targets: Iterable[str]) -> List[Dict[str, Any]]:
    """One entry per requested lot number, sorted by lot."""
    by_lot = dedupe_lots(lots)
    entries = []
    for lot_num in set(targets):
        lot = by_lot.get(lot_num)
        entries.append(make_entry(lot_num, lot) if lot is not None else placeholder_entry(lot_num))
    entries.sort(key=lambda e: e["lot"])
    return entries

def compute_total(entries: Iterable[Dict[str, Any]]) -> float:
    total = 0
    for e in entries:
        if e["has_no_bids"]:
            continue
        amount = e["shown_amount"]
        if isinstance(amount, (int, float)) and not isinstance(amount, bool):
            total += amount
    return total

# -------------------------
# Auction closing time
# -------------------------

def _closing_timestamp(closing_time: Optional[str]) -> Optional[float]:
    if not closing_time:
        return None
    try:
        dt = datetime.fromisoformat(closing_time.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()

def extract_auction_closing(lots: Iterable[Dict[str, Any]], now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
    """
    Closing time of the auction, taken from the first lot that carries one
    (top level, then dynamic, then static data). None when no lot has it.
    """
    now = now or datetime.now(timezone.utc)
    for lot in lots:
        for src in (lot, _sub(lot, DYNAMIC_KEY), _sub(lot, STATIC_KEY)):
            closing_time = _first_text(src.get("closing_time"))
            closing_ts = to_number(src.get("closing_timestamp"))
            if closing_time is None and closing_ts is None:
                continue

            if closing_ts is None:
                closing_ts = _closing_timestamp(closing_time)

            remaining = None
            if closing_ts is not None:
                remaining = max(0, int(round((closing_ts - now.timestamp()) * 1000)))

            return {
                "closing_time": closing_time,
                "closing_timestamp": closing_ts,
                "time_remaining_ms": remaining,
            }
    return None

# -------------------------
# Report
# -------------------------

def build_report(html: str, auction_url: str, targets: Iterable[str], now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    targets = set(targets)

    lots = extract_embedded_objects(html)
    entries = build_entries(lots, targets)
    with_bids = sum(1 for e in entries if not e["has_no_bids"])

    log.info("Found %d lot object(s) on page, %d of %d requested lot(s) have bids",
             len(lots), with_bids, len(entries))

    return {
        "ts": now.isoformat(),
        "auction_url": auction_url,
        "auction_closing": extract_auction_closing(lots, now),
        "lots_requested": sorted(int(t) for t in targets),
        "total": compute_total(entries),
        "lots_with_bids": with_bids,
        "lots_without_bids": len(entries) - with_bids,
        "entries": entries,
    }

def write_report(report: Dict[str, Any], path: str) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w", encoding="utf-8") as f:
        json.dump(report, f, indent=2, ensure_ascii=False)
    return out

def save_snapshot(html: str, auction_url: str, targets: Iterable[str], output_file: str) -> Dict[str, Any]:
    """Build the report for one fetched page and write it to output_file."""
    report = build_report(html, auction_url, targets)
    out = write_report(report, output_file)
    log.info("[OK] Wrote %s (total: %s, lots with bids: %d/%d)",
             out, report["total"], report["lots_with_bids"], len(report["entries"]))
    return report
