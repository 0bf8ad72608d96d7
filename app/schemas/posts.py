"""Pydantic schemas for posts: write payloads, responses, and the fixed category set."""

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

Category = Literal[
    "Eventos",
    "SAF",
    "Ensaios",
    "Visitas",
    "Clube do Livro",
    "Aniversariantes",
]

# Display order; count responses always carry every key in this order.
CATEGORIES: tuple[str, ...] = (
    "Eventos",
    "SAF",
    "Ensaios",
    "Visitas",
    "Clube do Livro",
    "Aniversariantes",
)

# Query value meaning "no category filter".
ALL_CATEGORIES = "all"


def parse_event_date(value: object) -> datetime:
    """Parse an ISO-8601 date or date-time; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        s = value.strip()
        if not s:
            raise ValueError("date must be non-empty")
        try:
            parsed = datetime.fromisoformat(s)
        except ValueError as e:
            raise ValueError(f"date must be an ISO-8601 date, got {value!r}") from e
    else:
        raise ValueError("date must be an ISO-8601 string")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class PostWrite(BaseModel):
    """Body for creating or fully replacing a post. author is never read from the client."""

    model_config = {"extra": "ignore"}

    title: str = Field(..., min_length=1, max_length=512)
    text: str = Field(..., min_length=1)
    category: Category
    date: datetime
    images: list[str] = Field(
        default_factory=list,
        description="Image URLs or references, in display order.",
    )

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must be non-empty")
        return v

    @field_validator("text")
    @classmethod
    def require_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("text must be non-empty")
        return v

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v: object) -> datetime:
        return parse_event_date(v)

    @field_validator("images")
    @classmethod
    def validate_images(cls, v: list[str]) -> list[str]:
        cleaned = [s.strip() for s in v]
        if any(not s for s in cleaned):
            raise ValueError("image references must be non-empty strings")
        return cleaned


class PostOut(BaseModel):
    """A post as returned to clients."""

    model_config = {"from_attributes": True}

    id: int
    title: str
    text: str
    category: str
    images: list[str] = Field(default_factory=list)
    date: datetime
    author: str
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PostDeleteResponse(BaseModel):
    """Confirmation of a soft delete, with the now-inactive post."""

    message: str
    post: PostOut
