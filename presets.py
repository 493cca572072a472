"""
presets.py
- Named GeM search filters for the plants shown on the board
- Both share one fetch routine; only the organization differs
"""

from typing import Dict

from bid_schema import SearchFilter

# Steel Authority of India plants watched by the board.
# Only `page` changes between requests of one fetch session.
RSP = SearchFilter(
    searchType="ministry-search",
    ministry="Ministry of Steel",
    organization="Rourkela Steel Plant",
    department="Steel Authority of India Limited",
)

BSP = SearchFilter(
    searchType="ministry-search",
    ministry="Ministry of Steel",
    organization="Bokaro Steel Plant",
    department="Steel Authority of India Limited",
)

PRESETS: Dict[str, SearchFilter] = {
    "rsp": RSP,
    "bsp": BSP,
}

DEFAULT_PRESET = "rsp"


def get_preset(name: str) -> SearchFilter:
    key = (name or "").strip().lower()
    if key not in PRESETS:
        raise KeyError(f"Unknown preset '{name}' (expected one of: {', '.join(PRESETS)})")
    return PRESETS[key]
