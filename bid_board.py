"""
bid_board.py
- Holds what the bid page shows: bids, loading flag, error, requested count
- Each fetch gets its own session id + cancel event; starting a new fetch
  cancels the previous one and its late results are dropped
- bid_card() turns a raw GeM doc into display strings for the template
"""

import itertools
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from dateutil import parser as dateparser

import gem_settings
from bid_fetcher import BidFetchError, FetchCancelled, FetchOutcome, collect_bids
from bid_schema import BidDocument, SearchFilter
from presets import get_preset

logger = logging.getLogger("bid-board")

SAIL_FULL_NAME = "Steel Authority of India Limited"


# ---------------------------------------
# Card formatting
# ---------------------------------------
def format_date(value: Optional[str]) -> str:
    if not value:
        return "N/A"
    try:
        return dateparser.parse(value).strftime("%d/%m/%Y")
    except (ValueError, OverflowError):
        return value


def bid_card(doc: Dict[str, Any]) -> Dict[str, Any]:
    bid = BidDocument.model_validate(doc)
    first = BidDocument.first

    own_id = first(bid.b_id)
    parent_id = first(bid.b_id_parent)
    department = first(bid.ba_official_details_deptName) or ""

    return {
        "key": str(bid.id) if bid.id is not None else own_id,
        "category": first(bid.b_category_name) or "",
        "ministry": first(bid.ba_official_details_minName) or "",
        "department": department.replace(SAIL_FULL_NAME, "SAIL"),
        "start_date": format_date(first(bid.final_start_date_sort)),
        "end_date": format_date(first(bid.final_end_date_sort)),
        "created_by": first(bid.created_by) or "",
        "total_quantity": first(bid.b_total_quantity) or "",
        "id": own_id or "",
        "parent_id": parent_id or "N/A",
        "bid_number": first(bid.b_bid_number) or "",
        "is_amendment": bid.is_amendment,
        # amendments link to the original bid document
        "document_url": f"{gem_settings.GEM_DOCUMENT_URL}/{parent_id or own_id}",
    }


def clamp_requested(value: Any) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return gem_settings.MIN_RESULTS
    step = gem_settings.RESULTS_PER_PAGE
    n = max(gem_settings.MIN_RESULTS, min(gem_settings.MAX_RESULTS, n))
    return (n // step) * step


# ---------------------------------------
# Board state
# ---------------------------------------
class BidBoard:
    def __init__(
        self,
        fetcher: Callable[..., FetchOutcome] = collect_bids,
        allow_partial: Optional[bool] = None,
    ):
        self._fetcher = fetcher
        self._allow_partial = gem_settings.ALLOW_PARTIAL_RESULTS if allow_partial is None else allow_partial
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._cancel: Optional[threading.Event] = None

        self.session_id = 0
        self.source: Optional[str] = None
        self.requested = gem_settings.MIN_RESULTS
        self.bids: List[dict] = []
        self.loading = False
        self.error: Optional[str] = None
        self.partial = False
        self.progress = ""

    def start_session(self, source: str, requested: int) -> int:
        """Supersede whatever is running and reset the visible state."""
        with self._lock:
            if self._cancel is not None:
                self._cancel.set()
            self._cancel = threading.Event()
            self.session_id = next(self._ids)
            self.source = source
            self.requested = requested
            self.bids = []
            self.loading = True
            self.error = None
            self.partial = False
            self.progress = ""
            logger.info("Session %d started: source=%s requested=%d", self.session_id, source, requested)
            return self.session_id

    def _is_current(self, session_id: int) -> bool:
        return session_id == self.session_id

    def run_session(self, session_id: int, base_filter: SearchFilter, **fetch_kwargs: Any) -> None:
        with self._lock:
            if not self._is_current(session_id):
                return
            cancel = self._cancel
            requested = self.requested

        def on_page(page: int, pages: int, merged: int) -> None:
            with self._lock:
                if self._is_current(session_id):
                    self.progress = f"Loaded page {page} of {pages} ({merged} bids)"

        try:
            outcome = self._fetcher(
                base_filter,
                requested,
                allow_partial=self._allow_partial,
                sleep=cancel.wait,
                is_cancelled=cancel.is_set,
                on_page=on_page,
                **fetch_kwargs,
            )
        except Exception as e:
            logger.exception("Session %d crashed: %s", session_id, e)
            outcome = FetchOutcome(error=BidFetchError(str(e)))

        with self._lock:
            if not self._is_current(session_id) or isinstance(outcome.error, FetchCancelled):
                logger.info("Session %d superseded, dropping its result", session_id)
                return
            self.bids = outcome.bids
            self.partial = outcome.partial
            self.error = f"Failed to fetch bids: {outcome.error.message}" if outcome.error else None
            self.loading = False
            self.progress = ""
            logger.info("Session %d finished: %d bids, error=%s", session_id, len(self.bids), self.error)

    def fetch(self, source: str, requested: int, background: bool = True, **fetch_kwargs: Any) -> int:
        base_filter = get_preset(source)
        session_id = self.start_session(source.lower(), clamp_requested(requested))
        if not background:
            self.run_session(session_id, base_filter, **fetch_kwargs)
            return session_id

        worker = threading.Thread(
            target=self.run_session,
            args=(session_id, base_filter),
            kwargs=fetch_kwargs,
            name=f"bid-fetch-{session_id}",
            daemon=True,
        )
        worker.start()
        return session_id

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "session_id": self.session_id,
                "source": self.source,
                "requested": self.requested,
                "loading": self.loading,
                "error": self.error,
                "partial": self.partial,
                "progress": self.progress,
                "count": len(self.bids),
                "bids": list(self.bids),
            }
