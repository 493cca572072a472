#!/usr/bin/env python3
"""
fetch_bids_cli.py

Run one fetch session against the /api/search-bids proxy and dump the bids.

Usage:
    python fetch_bids_cli.py --source rsp --count 30
    python fetch_bids_cli.py --source bsp --count 100 --out data/bsp.json --allow-partial

Notes:
 - The Flask app (app.py) must be running, or point --api-url at another proxy.
 - Exits non-zero when the session fails (unless --allow-partial kept some bids).
"""
import argparse
import json
import logging
import sys
from pathlib import Path

from tqdm import tqdm

import gem_settings
from bid_fetcher import collect_bids
from presets import PRESETS, get_preset


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Fetch GeM bids for a preset through the search proxy")
    ap.add_argument("--source", choices=sorted(PRESETS), default="rsp")
    ap.add_argument("--count", type=int, default=gem_settings.RESULTS_PER_PAGE,
                    help="number of bids to request (multiple of the page size)")
    ap.add_argument("--api-url", default=gem_settings.SEARCH_API_URL)
    ap.add_argument("--out", default=None, help="write bids JSON here instead of stdout")
    ap.add_argument("--allow-partial", action="store_true",
                    help="keep pages fetched before a failure")
    return ap.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=gem_settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(message)s")

    if args.count <= 0 or args.count % gem_settings.RESULTS_PER_PAGE != 0:
        raise SystemExit(f"--count must be a positive multiple of {gem_settings.RESULTS_PER_PAGE}")

    pages = args.count // gem_settings.RESULTS_PER_PAGE
    with tqdm(total=pages, desc=f"{args.source.upper()} pages", unit="page", file=sys.stderr) as bar:
        def on_page(page, total, merged):
            bar.set_postfix(bids=merged)
            bar.update(1)

        outcome = collect_bids(
            get_preset(args.source),
            args.count,
            allow_partial=args.allow_partial,
            api_url=args.api_url,
            on_page=on_page,
        )

    if outcome.bids:
        text = json.dumps(outcome.bids, ensure_ascii=False, indent=2)
        if args.out:
            out = Path(args.out)
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_text(text, encoding="utf-8")
            print(f"Saved {len(outcome.bids)} bids -> {out}", file=sys.stderr)
        else:
            print(text)

    if outcome.error is not None:
        if outcome.partial:
            print(f"⚠️ Partial result ({len(outcome.bids)} bids): {outcome.error.message}", file=sys.stderr)
            return 0
        raise SystemExit(f"Failed to fetch bids: {outcome.error.message}")

    print(f"✅ {len(outcome.bids)} bids (requested {args.count})", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
