# File: resolver/routers/issues.py
from fastapi import APIRouter, Depends, Query, UploadFile, File, Request, Form, BackgroundTasks
from sqlalchemy.orm import Session
from typing import List, Optional
from resolver.db.session import get_db
from resolver.core.errors import AwardFailed
from resolver.core.ratelimit import limiter
from resolver.core.security import get_current_user, require_user_type
from resolver.models.user import User
from resolver.schemas.issue import (
    AwardRetryIn,
    IssueDraft,
    IssueFilter,
    IssueOut,
    IssueStatusPatch,
    Status,
    TransitionOut,
)
from resolver.services import issue_repo, storage, workflow
from resolver.services.changes import ChangeEvent, ChangeFeed, get_change_feed

router = APIRouter(prefix="/issues", tags=["issues"])


def _transition_out(result: workflow.TransitionResult) -> TransitionOut:
    return TransitionOut(issue=result.issue, outcome=result.outcome, awarded_points=result.awarded_points)


def _publish_transition(feed: ChangeFeed, result: workflow.TransitionResult):
    feed.publish(ChangeEvent("issues", "UPDATE", result.issue.id))
    if result.awarded_points and result.issue.reporter_id:
        feed.publish(ChangeEvent("profiles", "UPDATE", result.issue.reporter_id))


@router.post("", response_model=IssueOut, status_code=201)
@limiter.limit("10/minute")
def create_issue(
    request: Request,
    background_tasks: BackgroundTasks,
    title: str = Form(..., max_length=200),
    description: str = Form(..., max_length=4000),
    location: str = Form(..., max_length=300),
    image: Optional[UploadFile] = File(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    feed: ChangeFeed = Depends(get_change_feed),
):
    upload = None
    if image is not None and image.filename:
        upload = issue_repo.ImageUpload(
            # one byte past the cap is enough to reject oversized uploads
            data=image.file.read(storage.MAX_BYTES + 1),
            content_type=image.content_type or "",
            filename=image.filename,
        )
    draft = IssueDraft(title=title, description=description, location=location)
    out = issue_repo.create(db, draft, current_user, image=upload)
    background_tasks.add_task(feed.publish, ChangeEvent("issues", "INSERT", out.id))
    return out


@router.get("", response_model=List[IssueOut])
@limiter.limit("60/minute")
def list_issues(
    request: Request,
    search: Optional[str] = Query(default=None),
    status: Optional[Status] = Query(default=None),
    db: Session = Depends(get_db),
):
    return issue_repo.list_all(db, IssueFilter(search=search, status=status))


@router.get("/mine", response_model=List[IssueOut])
def my_issues(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return issue_repo.list_by_reporter(db, current_user.id)


@router.get("/{issue_id}", response_model=IssueOut)
def get_issue(issue_id: int, db: Session = Depends(get_db)):
    return issue_repo.get(db, issue_id)


@router.patch("/{issue_id}/status", response_model=TransitionOut)
def update_status(
    issue_id: int,
    body: IssueStatusPatch,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    feed: ChangeFeed = Depends(get_change_feed),
):
    # authority is enforced inside the workflow, not here
    try:
        result = workflow.transition(db, issue_id, body.status, current_user, points=body.points)
    except AwardFailed:
        # the status change itself is committed
        feed.publish(ChangeEvent("issues", "UPDATE", issue_id))
        raise
    if result.applied:
        background_tasks.add_task(_publish_transition, feed, result)
    return _transition_out(result)


@router.post("/{issue_id}/award", response_model=TransitionOut, dependencies=[Depends(require_user_type("authority"))])
def retry_award(
    issue_id: int,
    background_tasks: BackgroundTasks,
    body: Optional[AwardRetryIn] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    feed: ChangeFeed = Depends(get_change_feed),
):
    points = body.points if body else None
    result = workflow.retry_award(db, issue_id, current_user, points=points)
    if result.applied:
        background_tasks.add_task(_publish_transition, feed, result)
    return _transition_out(result)
