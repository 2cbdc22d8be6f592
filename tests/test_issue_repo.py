from datetime import datetime, timezone

import pytest
import requests

from resolver.core.errors import NotFound, ValidationError
from resolver.models.issue import IssueStatus
from resolver.models.profile import Profile
from resolver.schemas.issue import IssueDraft, IssueFilter
from resolver.services import issue_repo, storage


def _draft(title="T", description="D", location="1,2"):
    return IssueDraft(title=title, description=description, location=location)


def test_create_then_list_by_reporter(db, resident):
    issue_repo.create(db, _draft(), resident)

    issues = issue_repo.list_by_reporter(db, resident.id)
    assert len(issues) == 1
    issue = issues[0]
    assert issue.status == "pending"
    assert issue.title == "T"
    assert issue.created_at.tzinfo is not None
    assert issue.created_at <= datetime.now(timezone.utc)
    assert issue.reporter_name == "Resi"
    assert (issue.lat, issue.lng) == (1.0, 2.0)


def test_list_by_reporter_only_returns_own_issues(db, resident, make_user):
    neighbour = make_user("neighbour@example.com")
    issue_repo.create(db, _draft(title="Mine"), resident)
    issue_repo.create(db, _draft(title="Theirs"), neighbour)
    assert [i.title for i in issue_repo.list_by_reporter(db, resident.id)] == ["Mine"]


@pytest.mark.parametrize("field", ["title", "description", "location"])
def test_blank_fields_are_rejected(db, resident, field):
    values = {"title": "T", "description": "D", "location": "L"}
    values[field] = "   "
    with pytest.raises(ValidationError):
        issue_repo.create(db, IssueDraft(**values), resident)


def test_free_text_location_has_no_coordinates(db, resident):
    issue = issue_repo.create(db, _draft(location="Corner of Main and 5th"), resident)
    assert issue.lat is None and issue.lng is None


@pytest.mark.parametrize(
    "location,expected",
    [
        ("12.5, 77.25", (12.5, 77.25)),
        ("-33.9,151.2", (-33.9, 151.2)),
        ("95,10", None),
        ("Main St, Springfield", None),
        ("1,2,3", None),
    ],
)
def test_parse_lat_lng(location, expected):
    assert issue_repo.parse_lat_lng(location) == expected


def test_search_is_case_insensitive(db, resident):
    issue_repo.create(db, _draft(title="Pothole on Main", description="Deep", location="Main St"), resident)
    issue_repo.create(db, _draft(title="Broken Light", description="Dark corner", location="Elm St"), resident)

    found = issue_repo.list_all(db, IssueFilter(search="pothole"))
    assert [i.title for i in found] == ["Pothole on Main"]

    by_location = issue_repo.list_all(db, IssueFilter(search="ELM"))
    assert [i.title for i in by_location] == ["Broken Light"]


def test_status_filter_is_exact(db, resident):
    first = issue_repo.create(db, _draft(title="One"), resident)
    issue_repo.create(db, _draft(title="Two"), resident)
    issue_repo.update_status(db, first.id, IssueStatus.rejected)

    assert [i.title for i in issue_repo.list_all(db, IssueFilter(status="rejected"))] == ["One"]
    assert [i.title for i in issue_repo.list_all(db, IssueFilter(status="pending"))] == ["Two"]
    assert len(issue_repo.list_all(db)) == 2


def test_reporter_name_fallbacks(db, resident):
    created = issue_repo.create(db, _draft(), resident)

    db.query(Profile).filter(Profile.id == resident.id).delete()
    db.commit()
    assert issue_repo.get(db, created.id).reporter_name == "Unknown User"

    issue = issue_repo.load(db, created.id)
    issue.reporter_id = None
    db.commit()
    assert issue_repo.get(db, created.id).reporter_name == "Anonymous"


def test_get_unknown_issue(db):
    with pytest.raises(NotFound):
        issue_repo.get(db, 12345)


def test_update_status_refreshes_updated_at(db, resident):
    created = issue_repo.create(db, _draft(), resident)
    updated = issue_repo.update_status(db, created.id, IssueStatus.in_progress)
    assert updated.status == "in_progress"
    assert updated.updated_at is not None


def test_image_is_uploaded_before_the_record(db, resident, monkeypatch):
    calls = []

    def fake_upload(data, content_type, path):
        calls.append((content_type, path))
        return f"https://cdn.example.com/{path}"

    monkeypatch.setattr(storage, "upload_image", fake_upload)
    image = issue_repo.ImageUpload(data=b"\x89PNG...", content_type="image/png", filename="hole.png")
    issue = issue_repo.create(db, _draft(), resident, image=image)

    assert len(calls) == 1
    content_type, path = calls[0]
    assert content_type == "image/png"
    assert path.startswith(f"{resident.id}/") and path.endswith(".png")
    assert issue.image_url == f"https://cdn.example.com/{path}"


def test_image_upload_failure_is_not_fatal(db, resident, monkeypatch):
    def failing_upload(data, content_type, path):
        raise requests.ConnectionError("storage unreachable")

    monkeypatch.setattr(storage, "upload_image", failing_upload)
    image = issue_repo.ImageUpload(data=b"jpeg", content_type="image/jpeg")
    issue = issue_repo.create(db, _draft(), resident, image=image)

    assert issue.image_url is None
    assert issue_repo.get(db, issue.id).status == "pending"


def test_unconfigured_storage_skips_image(db, resident):
    image = issue_repo.ImageUpload(data=b"jpeg", content_type="image/jpeg")
    issue = issue_repo.create(db, _draft(), resident, image=image)
    assert issue.image_url is None


def test_unsupported_image_type_is_rejected(db, resident):
    image = issue_repo.ImageUpload(data=b"%PDF", content_type="application/pdf", filename="doc.pdf")
    with pytest.raises(ValidationError):
        issue_repo.create(db, _draft(), resident, image=image)
    assert issue_repo.list_by_reporter(db, resident.id) == []
