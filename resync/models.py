"""
Query, pagination and state models for resource synchronization.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# Filter values that mean "no filter" and never reach the query string
EMPTY_FILTER_VALUES = ("", "all")


def is_active_filter(value: Any) -> bool:
    if value is None:
        return False
    return not (isinstance(value, str) and value in EMPTY_FILTER_VALUES)


def _param_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ResourceQuery(BaseModel):
    """Immutable description of one fetch."""

    model_config = ConfigDict(frozen=True)

    endpoint: str = Field(min_length=1)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1)
    order_by: str = "created_at"
    order_direction: Literal["asc", "desc"] = "desc"
    filters: dict[str, Any] = Field(default_factory=dict)

    def active_filters(self) -> dict[str, Any]:
        return {k: v for k, v in self.filters.items() if is_active_filter(v)}

    def to_params(self) -> dict[str, str]:
        """Query string parameters, inactive filters omitted."""
        params = {
            "page": str(self.page),
            "limit": str(self.limit),
            "order_by": self.order_by,
            "order_direction": self.order_direction,
        }
        for key, value in self.active_filters().items():
            params[key] = _param_value(value)
        return params


class Pagination(BaseModel):
    """Pagination window; accepts the server's camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    current_page: int = Field(default=1, ge=1, alias="currentPage")
    total_pages: int = Field(default=1, ge=0, alias="totalPages")
    total_count: int = Field(default=0, ge=0, alias="totalCount")
    limit: int = Field(default=20, ge=1)


class ServerPagination(BaseModel):
    """Pagination block returned by the admin API."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    # 0 and missing values fall back to the defaults when applied
    current_page: int | None = Field(default=None, ge=0, alias="currentPage")
    total_pages: int | None = Field(default=None, ge=0, alias="totalPages")
    total_count: int | None = Field(default=None, ge=0, alias="totalCount")


class ResourceResult(BaseModel):
    """Decoded payload of a successful fetch."""

    data: list[Any] = Field(default_factory=list)
    stats: Any | None = None
    pagination: ServerPagination | None = None


@dataclass
class ResourceState:
    """Client-visible state of one resource. Owned by a single controller."""

    data: list[Any] = field(default_factory=list)
    stats: Any | None = None
    pagination: Pagination = field(default_factory=Pagination)
    filters: dict[str, Any] = field(default_factory=dict)
    loading: bool = True
    error: str | None = None
    loaded: bool = False

    def copy(self) -> "ResourceState":
        return ResourceState(
            data=list(self.data),
            stats=self.stats,
            pagination=self.pagination.model_copy(),
            filters=dict(self.filters),
            loading=self.loading,
            error=self.error,
            loaded=self.loaded,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": list(self.data),
            "stats": self.stats,
            "pagination": {
                "currentPage": self.pagination.current_page,
                "totalPages": self.pagination.total_pages,
                "totalCount": self.pagination.total_count,
                "limit": self.pagination.limit,
            },
            "filters": dict(self.filters),
            "loading": self.loading,
            "error": self.error,
        }
