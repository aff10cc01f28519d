"""Response schemas for the RFD endpoints."""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class RFDSummary(BaseModel):
    """RFD without the rendered and raw document bodies, for listings."""

    id: int
    number: int
    number_string: str
    title: str
    name: str
    state: str
    link: str
    short_link: str
    rendered_link: str
    discussion: str
    authors: str
    sha: str
    commit_date: datetime
    milestones: List[str] = Field(default_factory=list)
    relevant_complaints: List[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class RFDDeleted(BaseModel):
    """Acknowledgement returned after a delete."""

    number: int
    deleted: bool = True
