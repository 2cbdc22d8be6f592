import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./resolver-test.db")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.pop("VAPID_PRIVATE_KEY", None)
os.environ.pop("SUPABASE_URL", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from resolver.core.security import hash_password, make_tokens
from resolver.db.base import Base
from resolver.db.session import get_db, make_engine
from resolver.main import app
from resolver.models import issue, ledger, push, voucher  # noqa: F401
from resolver.models.profile import Profile
from resolver.models.user import User, UserType

PASSWORD = "password123"
PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'resolver.db'}")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(email, user_type="resident", username=None, points=0, profile=True):
        user = User(
            email=email,
            hashed_password=PASSWORD_HASH,
            user_type=UserType(user_type),
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        if profile:
            db.add(Profile(id=user.id, username=username or email.split("@")[0], points=points))
            db.commit()
        return user

    return _make


@pytest.fixture
def resident(make_user):
    return make_user("resi@example.com", "resident", username="Resi")


@pytest.fixture
def authority(make_user):
    return make_user("ada@example.com", "authority", username="Ada")


@pytest.fixture
def headers_for():
    def _headers(user):
        token = make_tokens(user.email, user.user_type.value)["access_token"]
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def balance_of(session_factory):
    def _balance(user_id):
        s = session_factory()
        try:
            return s.query(Profile.points).filter(Profile.id == user_id).scalar()
        finally:
            s.close()

    return _balance
