from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime

Status = Literal["pending", "in_progress", "completed", "rejected"]


class IssueDraft(BaseModel):
    title: str = Field(max_length=200)
    description: str = Field(max_length=4000)
    location: str = Field(max_length=300)


class IssueOut(BaseModel):
    id: int
    title: str
    description: str
    location: str
    # parsed from location when it is a "lat,lng" pair
    lat: Optional[float] = None
    lng: Optional[float] = None
    status: Status

    reporter_id: Optional[int] = None
    reporter_name: str = "Anonymous"
    image_url: Optional[str] = None

    created_at: datetime
    updated_at: Optional[datetime] = None
    awarded_points: Optional[int] = None
    awarded_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class IssueFilter(BaseModel):
    search: Optional[str] = None
    status: Optional[Status] = None


class IssueStatusPatch(BaseModel):
    status: Status
    # authority-chosen award; falls back to the configured amount
    points: Optional[int] = Field(default=None, ge=1)


class AwardRetryIn(BaseModel):
    points: Optional[int] = Field(default=None, ge=1)


class TransitionOut(BaseModel):
    issue: IssueOut
    outcome: Literal["applied", "noop"]
    awarded_points: Optional[int] = None
