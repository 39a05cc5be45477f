# app/schemas/common.py
import math

from sqlmodel import SQLModel


class Pagination(SQLModel):
    """
    Page metadata returned by admin listings.
    """

    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if limit else 0,
        )


class ErrorResponse(SQLModel):
    """
    Envelope used for every error response.
    """

    success: bool = False
    message: str
    errors: dict[str, list[str]] | None = None
