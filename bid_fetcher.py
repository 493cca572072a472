"""
bid_fetcher.py

Paginated fetch of GeM bids through the /api/search-bids proxy.

- Pages are requested strictly one after another (page k+1 only if page k was full)
- Each page gets up to `max_retries` attempts with exponential backoff
  (base_delay_ms * 2**attempt, no jitter) between failed attempts
- A page shorter than `page_size` is the last page of the session
- status != 1 in a 2xx body is fatal for the session and is not retried

Errors raised carry the page number and the documents merged so far, so the
caller decides whether a late failure throws everything away or shows what
was collected (see collect_bids).
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

import requests
from pydantic import ValidationError

import gem_settings
from bid_schema import ResultPage, SearchFilter

logger = logging.getLogger("bid-fetcher")

GATEWAY_TIMEOUT_MESSAGE = "Error, possibly GeM is down or in maintainence"


# ---------------------------------------
# Errors
# ---------------------------------------
class BidFetchError(Exception):
    def __init__(self, message: str, page: Optional[int] = None, partial: Optional[List[dict]] = None):
        super().__init__(message)
        self.message = message
        self.page = page
        self.partial: List[dict] = list(partial or [])


class TransportError(BidFetchError):
    """Network failure or a body that is not JSON."""


class HttpStatusError(BidFetchError):
    def __init__(self, message: str, status: int, page: Optional[int] = None, partial: Optional[List[dict]] = None):
        super().__init__(message, page=page, partial=partial)
        self.status = status


class UpstreamStatusError(BidFetchError):
    """2xx response whose declared status is not success (or has no docs)."""


class FetchCancelled(BidFetchError):
    pass


@dataclass
class FetchOutcome:
    bids: List[dict] = field(default_factory=list)
    error: Optional[BidFetchError] = None
    partial: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


# ---------------------------------------
# Single request
# ---------------------------------------
def _http_error_message(resp: requests.Response, page: int) -> str:
    if resp.status_code == 504:
        return GATEWAY_TIMEOUT_MESSAGE

    message = f"HTTP error! Status: {resp.status_code} on page {page}"
    try:
        data = resp.json()
    except ValueError:
        # error body isn't JSON
        return message
    if isinstance(data, dict):
        if data.get("message") is not None:
            return str(data["message"])
        if data.get("error") is not None:
            return str(data["error"])
    return message


def _parse_page(data: Any, page: int) -> List[dict]:
    fallback = f"Received unexpected data structure on page {page}."
    declared = data.get("message") if isinstance(data, dict) else None
    declared = str(declared) if declared else fallback
    try:
        result = ResultPage.model_validate(data)
    except ValidationError:
        raise UpstreamStatusError(declared, page=page)

    if not result.succeeded:
        raise UpstreamStatusError(str(result.message) if result.message else fallback, page=page)
    return result.docs


def request_page(
    session: requests.Session,
    api_url: str,
    search_filter: SearchFilter,
    timeout: Optional[float] = None,
) -> List[dict]:
    """
    POST one filter to the proxy and return its docs.
    Raises TransportError / HttpStatusError / UpstreamStatusError.
    """
    page = search_filter.page
    try:
        resp = session.post(api_url, json=search_filter.to_payload(), timeout=timeout)
    except requests.RequestException as e:
        raise TransportError(f"Network error on page {page}: {e}", page=page) from e

    if not resp.ok:
        raise HttpStatusError(_http_error_message(resp, page), status=resp.status_code, page=page)

    try:
        data = resp.json()
    except ValueError as e:
        raise TransportError(f"Invalid JSON response on page {page}", page=page) from e

    return _parse_page(data, page)


# ---------------------------------------
# Session
# ---------------------------------------
def fetch_bids(
    base_filter: SearchFilter,
    requested: int,
    *,
    api_url: Optional[str] = None,
    session: Optional[requests.Session] = None,
    page_size: Optional[int] = None,
    max_retries: Optional[int] = None,
    base_delay_ms: Optional[int] = None,
    timeout: Optional[float] = None,
    sleep: Callable[[float], Any] = time.sleep,
    is_cancelled: Optional[Callable[[], bool]] = None,
    on_page: Optional[Callable[[int, int, int], None]] = None,
) -> List[dict]:
    """
    Collect up to `requested` bids for `base_filter`, page by page.

    `requested` must be a positive multiple of `page_size`. `sleep` receives
    seconds (time.sleep or threading.Event.wait both fit). `on_page` is called
    with (page, total_pages, merged_count) after every accepted page.
    """
    api_url = api_url or gem_settings.SEARCH_API_URL
    page_size = page_size or gem_settings.RESULTS_PER_PAGE
    max_retries = max_retries or gem_settings.FETCH_MAX_RETRIES
    base_delay_ms = gem_settings.FETCH_BASE_DELAY_MS if base_delay_ms is None else base_delay_ms
    timeout = gem_settings.SEARCH_API_TIMEOUT if timeout is None else timeout
    http = session or requests.Session()

    if requested <= 0 or requested % page_size != 0:
        raise ValueError(f"requested must be a positive multiple of {page_size}, got {requested}")

    pages = requested // page_size
    all_bids: List[dict] = []

    def check_cancelled(page: int) -> None:
        if is_cancelled is not None and is_cancelled():
            raise FetchCancelled(f"Fetch cancelled before page {page}", page=page, partial=all_bids)

    for page in range(1, pages + 1):
        page_filter = base_filter.with_page(page, rows=page_size)
        docs: Optional[List[dict]] = None

        for attempt in range(max_retries):
            check_cancelled(page)
            try:
                docs = request_page(http, api_url, page_filter, timeout=timeout)
                break
            except UpstreamStatusError as e:
                e.partial = list(all_bids)
                raise
            except (TransportError, HttpStatusError) as e:
                if attempt == max_retries - 1:
                    e.partial = list(all_bids)
                    raise
                wait_ms = base_delay_ms * (2 ** attempt)
                logger.info(
                    "Retrying fetch for page %d in %dms... (Attempt %d of %d): %s",
                    page, wait_ms, attempt + 1, max_retries, e.message,
                )
                sleep(wait_ms / 1000.0)

        all_bids.extend(docs)
        if on_page is not None:
            on_page(page, pages, len(all_bids))

        if len(docs) < page_size:
            logger.info("Page %d returned %d < %d docs, last page", page, len(docs), page_size)
            break

    logger.info("Fetched %d bids (requested %d)", len(all_bids), requested)
    return all_bids


def collect_bids(
    base_filter: SearchFilter,
    requested: int,
    allow_partial: bool = False,
    **kwargs: Any,
) -> FetchOutcome:
    """
    Run fetch_bids and fold the result into a FetchOutcome instead of raising.

    allow_partial=False: a failed session has no bids.
    allow_partial=True: a failed session keeps the pages merged before the
    failure and is flagged partial.
    """
    try:
        return FetchOutcome(bids=fetch_bids(base_filter, requested, **kwargs))
    except BidFetchError as e:
        logger.warning("Fetch failed on page %s: %s", e.page, e.message)
        if allow_partial and e.partial:
            return FetchOutcome(bids=list(e.partial), error=e, partial=True)
        return FetchOutcome(error=e)
