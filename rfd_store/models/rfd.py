"""RFD (Request for Discussion) record model."""

from datetime import datetime
from typing import List, Optional

from pydantic import field_validator, model_validator
from sqlalchemy import Column, Text
from sqlmodel import Field, SQLModel

from rfd_store.db.types import TZDateTime, TextList

# Upper bound of the INTEGER column holding the RFD number
MAX_RFD_NUMBER = 2_147_483_647

# Text fields that must carry a non-blank value
REQUIRED_TEXT_FIELDS = ("title", "name", "state", "link", "short_link", "rendered_link")

# Fields that describe one upstream revision and only ever change together
REVISION_FIELDS = ("sha", "commit_date", "content", "html")


class RFDBase(SQLModel):
    """Shared RFD fields.

    Every text field is a plain ``str``: absence is an empty string, never
    ``None``. ``number_string`` and ``name`` are derived upstream; they are
    only checked for consistency here.
    """

    number: int = Field(unique=True, gt=0, le=MAX_RFD_NUMBER, description="Public RFD number (business key)")
    number_string: str = Field(unique=True, min_length=1, description="Display form of number, e.g. 0042")
    title: str = Field(min_length=1)
    name: str = Field(unique=True, min_length=1, description="Canonical slug derived from number and title")
    state: str = Field(min_length=1, description="Lifecycle phase, e.g. draft, discussion, published")
    link: str = Field(min_length=1, description="Source document location")
    short_link: str = Field(min_length=1)
    rendered_link: str = Field(min_length=1)
    discussion: str = Field(default="", description="Discussion thread link, empty when unset upstream")
    authors: str = Field(default="", description="Serialized author list")
    html: str = Field(sa_column=Column(Text, nullable=False))
    content: str = Field(sa_column=Column(Text, nullable=False))
    sha: str = Field(description="Source document hash at last sync")
    commit_date: datetime = Field(sa_column=Column(TZDateTime(), nullable=False))
    milestones: List[str] = Field(default_factory=list, sa_column=Column(TextList, nullable=False))
    relevant_complaints: List[str] = Field(default_factory=list, sa_column=Column(TextList, nullable=False))

    @field_validator(*REQUIRED_TEXT_FIELDS)
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("commit_date")
    @classmethod
    def _timezone_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValueError("commit_date must be timezone-aware")
        return value

    @model_validator(mode="after")
    def _number_string_matches_number(self):
        digits = self.number_string
        if not (digits.isascii() and digits.isdigit()) or int(digits) != self.number:
            raise ValueError(
                f"number_string {self.number_string!r} does not denote number {self.number}"
            )
        return self


class RFD(RFDBase, table=True):
    """Persisted RFD record, one row per RFD number."""

    __tablename__ = "rfds"
    # Keep SQLite from reusing ids of deleted rows
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)


class RFDWrite(RFDBase):
    """Full field set accepted by insert and upsert."""

    model_config = {
        "json_schema_extra": {
            "example": {
                "number": 42,
                "number_string": "0042",
                "title": "Versioned Object Storage",
                "name": "RFD 0042 Versioned Object Storage",
                "state": "discussion",
                "link": "https://github.com/example/rfd/tree/0042",
                "short_link": "https://42.rfd.example.com",
                "rendered_link": "https://rfd.example.com/rfd/0042",
                "discussion": "https://github.com/example/rfd/pull/120",
                "authors": "Ada Lovelace <ada@example.com>",
                "html": "<h1>Versioned Object Storage</h1>",
                "content": "= Versioned Object Storage",
                "sha": "9f2c1e0",
                "commit_date": "2020-09-07T00:12:07Z",
                "milestones": ["v1"],
                "relevant_complaints": [],
            }
        }
    }


class RFDRead(RFDBase):
    """RFD record as returned to read-side consumers."""

    id: int

    model_config = {"from_attributes": True}
