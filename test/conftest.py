"""
Shared fixtures: fake proxy responses and GeM documents.
No test touches the network.
"""
from unittest.mock import Mock

import pytest

PROXY_URL = "http://proxy.test/api/search-bids"


def make_docs(n, start=0):
    return [
        {
            "id": f"doc-{i}",
            "b_id": [str(8000000 + i)],
            "b_bid_number": [f"GEM/2025/B/{6800000 + i}"],
            "b_category_name": [f"Item {i}"],
        }
        for i in range(start, start + n)
    ]


def page_body(docs, page=1, status=1, message=""):
    return {
        "status": status,
        "code": 200,
        "message": message,
        "response": {"response": {"numFound": 999, "start": 0, "numFoundExact": True, "docs": docs}},
        "current_page": page,
    }


def make_response(status_code=200, body=None, text=None, json_error=False):
    resp = Mock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    resp.text = text if text is not None else ("" if body is None else str(body))
    if json_error or body is None:
        resp.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
    else:
        resp.json.return_value = body
    return resp


@pytest.fixture
def session():
    return Mock()


@pytest.fixture
def sleep():
    return Mock()
