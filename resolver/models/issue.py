# File: resolver/models/issue.py
from __future__ import annotations
from enum import Enum as PyEnum
from sqlalchemy import String, Enum, Integer, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column
from resolver.db.base import Base

class IssueStatus(PyEnum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    rejected = "rejected"

class Issue(Base):
    __tablename__ = "issues"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), index=True)
    description: Mapped[str] = mapped_column(String(4000))
    # free text or "lat,lng"
    location: Mapped[str] = mapped_column(String(300))
    status: Mapped[IssueStatus] = mapped_column(Enum(IssueStatus), default=IssueStatus.pending, index=True)

    reporter_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at: Mapped["DateTime | None"] = mapped_column(DateTime(timezone=True), nullable=True)

    # set once, by the completion award
    awarded_points: Mapped[int | None] = mapped_column(Integer, nullable=True)
    awarded_at: Mapped["DateTime | None"] = mapped_column(DateTime(timezone=True), nullable=True)
