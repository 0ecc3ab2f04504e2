"""Query description shared by all data gateways."""
from typing import Any

from pydantic import BaseModel, Field


class TableQuery(BaseModel):
    """Filters, ordering and limit for a table select.

    Gateways translate this into PostgREST query params or SQL clauses.
    """

    equals: dict[str, Any] = Field(default_factory=dict)
    gte: dict[str, Any] = Field(default_factory=dict)
    lte: dict[str, Any] = Field(default_factory=dict)
    order_by: str | None = None
    descending: bool = True
    limit: int | None = Field(default=None, ge=1)
