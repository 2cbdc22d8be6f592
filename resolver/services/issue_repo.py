# resolver/services/issue_repo.py
"""Issue persistence and record normalisation.

All reads return ``IssueOut`` records: timestamps are timezone-aware UTC and
the reporter id is resolved to a display name. Search filtering runs over the
fetched result set.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

import requests
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from resolver.core.errors import NotFound, TransientError, ValidationError
from resolver.models.issue import Issue, IssueStatus
from resolver.models.profile import Profile
from resolver.models.user import User
from resolver.schemas.issue import IssueDraft, IssueFilter, IssueOut
from resolver.services import storage

ANONYMOUS = "Anonymous"
UNKNOWN_USER = "Unknown User"


@dataclass
class ImageUpload:
    data: bytes
    content_type: str
    filename: str = "upload.jpg"


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_lat_lng(location: str) -> Optional[tuple[float, float]]:
    parts = [p.strip() for p in (location or "").split(",")]
    if len(parts) != 2:
        return None
    try:
        lat, lng = float(parts[0]), float(parts[1])
    except ValueError:
        return None
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None
    return lat, lng


def _reporter_names(db: Session, issues: Iterable[Issue]) -> dict[int, str]:
    ids = {i.reporter_id for i in issues if i.reporter_id}
    if not ids:
        return {}
    try:
        rows = db.query(Profile.id, Profile.username).filter(Profile.id.in_(ids)).all()
    except OperationalError as e:
        db.rollback()
        logging.warning(f"Reporter lookup failed, falling back to placeholders: {e}")
        return {}
    return {pid: name for pid, name in rows if name}


def to_out(issue: Issue, names: dict[int, str]) -> IssueOut:
    if issue.reporter_id is None:
        reporter_name = ANONYMOUS
    else:
        reporter_name = names.get(issue.reporter_id, UNKNOWN_USER)
    coords = parse_lat_lng(issue.location)
    return IssueOut(
        id=issue.id,
        title=issue.title,
        description=issue.description,
        location=issue.location,
        lat=coords[0] if coords else None,
        lng=coords[1] if coords else None,
        status=issue.status.value,
        reporter_id=issue.reporter_id,
        reporter_name=reporter_name,
        image_url=issue.image_url,
        created_at=_as_utc(issue.created_at),
        updated_at=_as_utc(issue.updated_at),
        awarded_points=issue.awarded_points,
        awarded_at=_as_utc(issue.awarded_at),
    )


def serialize(db: Session, issues: list[Issue]) -> list[IssueOut]:
    names = _reporter_names(db, issues)
    return [to_out(i, names) for i in issues]


def matches(issue: IssueOut, flt: Optional[IssueFilter]) -> bool:
    if flt is None:
        return True
    if flt.status and issue.status != flt.status:
        return False
    term = (flt.search or "").strip().lower()
    if term:
        haystack = (issue.title, issue.description, issue.location)
        if not any(term in (field or "").lower() for field in haystack):
            return False
    return True


def _validate_image(image: ImageUpload) -> None:
    if image.content_type not in storage.ALLOWED:
        raise ValidationError("Unsupported image type")
    if len(image.data) > storage.MAX_BYTES:
        raise ValidationError("Image exceeds 2MB")


def _store_image(owner_id: int, image: ImageUpload) -> Optional[str]:
    """Upload the image; on any storage failure log and continue without it."""
    key = storage.make_object_key(owner_id, image.filename or "upload.jpg")
    try:
        return storage.upload_image(image.data, image.content_type, key)
    except (requests.RequestException, storage.StorageNotConfigured) as e:
        logging.warning(f"Image upload failed, creating issue without image: {e}")
        return None


def create(db: Session, draft: IssueDraft, reporter: User, image: Optional[ImageUpload] = None) -> IssueOut:
    title = (draft.title or "").strip()
    description = (draft.description or "").strip()
    location = (draft.location or "").strip()
    if not (title and description and location):
        raise ValidationError("Please fill in title, description and location")

    image_url = None
    if image is not None and image.data:
        _validate_image(image)
        image_url = _store_image(reporter.id, image)

    obj = Issue(
        title=title,
        description=description,
        location=location,
        status=IssueStatus.pending,
        reporter_id=reporter.id,
        image_url=image_url,
    )
    try:
        db.add(obj)
        db.commit()
        db.refresh(obj)
    except OperationalError as e:
        db.rollback()
        raise TransientError() from e
    return serialize(db, [obj])[0]


def load(db: Session, issue_id: int, fresh: bool = False) -> Issue:
    q = db.query(Issue).filter(Issue.id == issue_id)
    if fresh:
        q = q.populate_existing()
    obj = q.first()
    if not obj:
        raise NotFound("Issue not found")
    return obj


def get(db: Session, issue_id: int) -> IssueOut:
    return serialize(db, [load(db, issue_id)])[0]


def list_by_reporter(db: Session, user_id: int) -> list[IssueOut]:
    issues = (
        db.query(Issue)
        .filter(Issue.reporter_id == user_id)
        .order_by(Issue.created_at.desc(), Issue.id.desc())
        .all()
    )
    return serialize(db, issues)


def list_all(db: Session, flt: Optional[IssueFilter] = None) -> list[IssueOut]:
    issues = db.query(Issue).order_by(Issue.created_at.desc(), Issue.id.desc()).all()
    return [i for i in serialize(db, issues) if matches(i, flt)]


def compare_and_set_status(db: Session, issue_id: int, expected: IssueStatus, target: IssueStatus) -> bool:
    """Set ``target`` only if the stored status is still ``expected``. Commits."""
    try:
        updated = (
            db.query(Issue)
            .filter(Issue.id == issue_id, Issue.status == expected)
            .update(
                {Issue.status: target, Issue.updated_at: datetime.now(timezone.utc)},
                synchronize_session=False,
            )
        )
        db.commit()
    except OperationalError as e:
        db.rollback()
        raise TransientError() from e
    return updated == 1


def claim_award(db: Session, issue_id: int, points: int) -> Optional[Issue]:
    """Mark a completed issue as awarded unless it already was.

    Does not commit: the claim must land in the same transaction as the
    ledger increment. Returns the refreshed issue, or None when there was
    nothing to claim.
    """
    claimed = (
        db.query(Issue)
        .filter(
            Issue.id == issue_id,
            Issue.status == IssueStatus.completed,
            Issue.awarded_at.is_(None),
        )
        .update(
            {Issue.awarded_points: points, Issue.awarded_at: datetime.now(timezone.utc)},
            synchronize_session=False,
        )
    )
    if not claimed:
        return None
    return load(db, issue_id, fresh=True)


def update_status(db: Session, issue_id: int, status: IssueStatus) -> IssueOut:
    """Unconditional status write. The workflow engine uses its own guarded update."""
    obj = load(db, issue_id)
    obj.status = status
    obj.updated_at = datetime.now(timezone.utc)
    try:
        db.commit()
        db.refresh(obj)
    except OperationalError as e:
        db.rollback()
        raise TransientError() from e
    return serialize(db, [obj])[0]
