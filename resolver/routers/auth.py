# File: resolver/routers/auth.py

import logging
import secrets
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from resolver.db.session import get_db
from resolver.models.user import User, UserType
from resolver.schemas.auth import SignUpIn, SignInIn, RefreshIn, TokenPair
from resolver.core.config import settings
from resolver.core.security import hash_password, verify_password, make_tokens, decode_token, get_current_user
from resolver.services import ledger
from datetime import datetime, timezone

router = APIRouter(prefix="/auth", tags=["auth"])

def _authority_code_ok(code: str | None) -> bool:
    expected = settings.authority_signup_code
    if not expected:
        return True
    return bool(code) and secrets.compare_digest(code, expected)

@router.post("/signup", response_model=TokenPair, status_code=201)
def signup(body: SignUpIn, db: Session = Depends(get_db)):
    email = body.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="Email already registered")
    if body.user_type == "authority" and not _authority_code_ok(body.authority_code):
        raise HTTPException(status_code=403, detail="Invalid authority code")

    user = User(
        email=email,
        hashed_password=hash_password(body.password),
        user_type=UserType(body.user_type),
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    ledger.ensure_profile(db, user, username=body.username.strip())
    return make_tokens(user.email, user.user_type.value)

@router.post("/signin", response_model=TokenPair)
def signin(body: SignInIn, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == body.email.lower()).first()
    if not user or not user.hashed_password:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not verify_password(body.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Your account has been deactivated. Please contact support.")
    user.last_login = datetime.now(timezone.utc)
    db.commit()

    # profiles are provisioned lazily; a failure here is logged, not fatal
    if ledger.ensure_profile(db, user) is None:
        logging.warning(f"Signing in user {user.id} without a profile")
    return make_tokens(user.email, user.user_type.value)

@router.post("/refresh", response_model=TokenPair)
def refresh(body: RefreshIn, db: Session = Depends(get_db)):
    payload = decode_token(body.refresh_token, kind="refresh")
    user = db.query(User).filter(User.email == payload.get("sub")).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Invalid token")
    return make_tokens(user.email, user.user_type.value)

@router.post("/signout")
def signout(current: User = Depends(get_current_user)):
    # tokens are stateless; the client discards them
    return {"ok": True}

@router.get("/me")
def me(current: User = Depends(get_current_user), db: Session = Depends(get_db)):
    profile = ledger.ensure_profile(db, current)
    return {
        "id": current.id,
        "email": current.email,
        "user_type": current.user_type.value,
        "is_active": current.is_active,
        "username": profile.username if profile else None,
        "points": profile.points if profile else 0,
    }
