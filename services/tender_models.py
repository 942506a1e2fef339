"""
Tender listing data types
"""
import math
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DateRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: Optional[date] = None
    end: Optional[date] = None

    @property
    def is_empty(self) -> bool:
        return self.start is None and self.end is None


class TenderQuery(BaseModel):
    """Immutable description of one tender listing request.

    A new query is built on every filter or page change; blank filters are
    stored as None so that "no filter" has a single spelling.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    page: int = Field(default=1, ge=1)
    ministry: Optional[str] = None
    department: Optional[str] = None
    city: Optional[str] = None
    search: Optional[str] = None
    date_range: Optional[DateRange] = None
    use_keywords: bool = False

    @field_validator("ministry", "department", "city", "search", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("date_range", mode="after")
    @classmethod
    def _empty_range_to_none(cls, value):
        if value is not None and value.is_empty:
            return None
        return value

    def with_changes(self, **changes) -> "TenderQuery":
        """Return a new query with the given fields replaced (validated)."""
        data = self.model_dump()
        data.update(changes)
        return TenderQuery(**data)

    def rpc_params(self, page_size: int) -> Dict[str, Any]:
        """Arguments for the get_filtered_tenders RPC."""
        params: Dict[str, Any] = {
            "p_user_id": self.user_id,
            "p_page": self.page,
            "p_page_size": page_size,
            "p_use_keywords": self.use_keywords,
        }
        if self.ministry:
            params["p_ministry"] = self.ministry
        if self.department:
            params["p_department"] = self.department
        if self.city:
            params["p_city"] = self.city
        if self.search:
            params["p_search"] = self.search
        if self.date_range and self.date_range.start:
            params["p_start_date"] = self.date_range.start.isoformat()
        if self.date_range and self.date_range.end:
            params["p_end_date"] = self.date_range.end.isoformat()
        return params


class TenderRecord(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    bid_id: Optional[int] = None
    bid_number: Optional[str] = None
    category: Optional[str] = None
    quantity: Optional[int] = None
    ministry: Optional[str] = None
    department: Optional[str] = None
    city: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    download_url: Optional[str] = None
    bid_url: Optional[str] = None


class TenderPage(BaseModel):
    rows: List[TenderRecord] = Field(default_factory=list)
    total_count: int = 0
    page: int = 1
    page_size: int = 10

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return math.ceil(self.total_count / self.page_size)

    @classmethod
    def from_rpc_rows(cls, rows: List[dict], page: int, page_size: int) -> "TenderPage":
        # get_filtered_tenders repeats the overall match count on every row
        total = int(rows[0].get("total_count") or 0) if rows else 0
        return cls(
            rows=[TenderRecord(**row) for row in rows],
            total_count=total,
            page=page,
            page_size=page_size,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rows": [row.model_dump() for row in self.rows],
            "total_count": self.total_count,
            "total_pages": self.total_pages,
            "page": self.page,
            "page_size": self.page_size,
        }
