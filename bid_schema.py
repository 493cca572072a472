from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# -------------------------
# Search filter (request side)
# -------------------------

class SearchFilter(BaseModel):
    """
    One GeM advance-search request. Field names are the upstream's own
    (camelCase) so model_dump() can be sent as-is.
    """

    model_config = ConfigDict(frozen=True)

    searchType: str = "ministry-search"
    ministry: str = ""
    buyerState: str = ""
    organization: str = ""
    department: str = ""
    bidEndFromMin: str = ""
    bidEndToMin: str = ""
    page: int = 1
    rows: int = 10

    @field_validator("page", "rows")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"must be >= 1, got {v}")
        return v

    def with_page(self, page: int, rows: Optional[int] = None) -> "SearchFilter":
        update = {"page": page}
        if rows is not None:
            update["rows"] = rows
        return self.model_validate({**self.model_dump(), **update})

    def to_payload(self) -> dict:
        return self.model_dump()


# -------------------------
# Result side
# -------------------------

class BidDocument(BaseModel):
    """
    A single bid as returned by the GeM search index. Every value is a
    list (Solr multi-valued fields); nothing is validated beyond presence.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Optional[Any] = None
    b_bid_number: List[Any] = Field(default_factory=list)
    b_category_name: List[Any] = Field(default_factory=list)
    final_start_date_sort: List[Any] = Field(default_factory=list)
    final_end_date_sort: List[Any] = Field(default_factory=list)
    ba_official_details_minName: List[Any] = Field(default_factory=list)
    ba_official_details_deptName: List[Any] = Field(default_factory=list)
    created_by: List[Any] = Field(default_factory=list, alias="b.b_created_by")
    b_total_quantity: List[Any] = Field(default_factory=list)
    b_id: List[Any] = Field(default_factory=list)
    b_id_parent: List[Any] = Field(default_factory=list)

    @field_validator(
        "b_bid_number",
        "b_category_name",
        "final_start_date_sort",
        "final_end_date_sort",
        "ba_official_details_minName",
        "ba_official_details_deptName",
        "created_by",
        "b_total_quantity",
        "b_id",
        "b_id_parent",
        mode="before",
    )
    @classmethod
    def coerce_list(cls, v: Any) -> List[Any]:
        # upstream occasionally sends a bare scalar or null
        if v is None:
            return []
        if isinstance(v, list):
            return v
        return [v]

    @staticmethod
    def first(values: List[Any]) -> Optional[str]:
        if not values or values[0] is None:
            return None
        return str(values[0])

    @property
    def is_amendment(self) -> bool:
        return bool(self.b_id_parent)


class InnerResponse(BaseModel):
    # only docs matters; the counters are informational and not always numeric
    model_config = ConfigDict(extra="allow")

    numFound: Any = None
    start: Any = None
    numFoundExact: Any = None
    docs: List[dict]


class OuterResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    response: InnerResponse


class ResultPage(BaseModel):
    model_config = ConfigDict(extra="allow")

    status: Any = None
    code: Any = None
    message: Any = None
    response: Optional[OuterResponse] = None
    current_page: Any = None

    @property
    def docs(self) -> Optional[List[dict]]:
        if self.response is None:
            return None
        return self.response.response.docs

    @property
    def succeeded(self) -> bool:
        return self.status == 1 and self.docs is not None
