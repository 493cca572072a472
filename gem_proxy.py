"""
gem_proxy.py
- Re-encodes a JSON search filter into the form body GeM's search-bids expects:
    payload=<urlencoded JSON>&csrf_bd_gem_nk=<token>
- Attaches browser-like headers + session cookie (from gem_settings)
- Relays the upstream JSON unchanged, or wraps upstream error text with its status
- No retries here; the fetcher owns retrying.
"""

import json
import logging
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote

import requests

import gem_settings

logger = logging.getLogger("gem-proxy")

INTERNAL_ERROR_BODY = {"message": "Internal server error processing request"}

# characters encodeURIComponent leaves alone
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_search_body(search_params: Dict[str, Any], csrf_token: str) -> str:
    json_string = json.dumps(search_params, separators=(",", ":"), ensure_ascii=False)
    encoded = quote(json_string, safe=_URI_COMPONENT_SAFE)
    return f"payload={encoded}&csrf_bd_gem_nk={csrf_token}"


def build_headers() -> Dict[str, str]:
    return {
        "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
        "X-Requested-With": "XMLHttpRequest",
        "User-Agent": gem_settings.GEM_USER_AGENT,
        "Origin": gem_settings.GEM_ORIGIN,
        "Referer": gem_settings.GEM_REFERER,
        "Accept": "application/json, text/javascript, */*; q=0.01",
        "Cookie": gem_settings.GEM_COOKIE,
    }


def forward_search(
    search_params: Dict[str, Any],
    session: Optional[requests.Session] = None,
) -> Tuple[Dict[str, Any], int]:
    """
    Forward one search to GeM. Returns (json_body, http_status) ready to be
    sent back to the caller. Never raises.
    """
    try:
        if not isinstance(search_params, dict):
            raise ValueError(f"search payload must be a JSON object, got {type(search_params).__name__}")

        if gem_settings.credentials_expired():
            logger.warning(
                "GeM session credentials expired at %s; upstream will likely reject the request",
                gem_settings.GEM_SESSION_EXPIRES_AT,
            )

        http = session or requests
        body = encode_search_body(search_params, gem_settings.GEM_CSRF_TOKEN)
        resp = http.post(
            gem_settings.GEM_SEARCH_URL,
            data=body.encode("utf-8"),
            headers=build_headers(),
            timeout=gem_settings.GEM_UPSTREAM_TIMEOUT,
        )

        if not resp.ok:
            logger.info("Upstream rejected page=%s status=%s", search_params.get("page"), resp.status_code)
            return {"message": "External API request failed", "error": resp.text}, resp.status_code

        return resp.json(), 200

    except Exception as e:
        logger.exception("Search proxy error: %s", e)
        return dict(INTERNAL_ERROR_BODY), 500
