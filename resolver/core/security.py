# resolver/core/security.py
from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
import time, jwt
from sqlalchemy.orm import Session
from resolver.core.config import settings
from resolver.core.errors import Unauthorized
from passlib.hash import bcrypt_sha256
from resolver.db.session import get_db
from resolver.models.user import User, UserType

ALGO = "HS256"
ACCESS_TTL = 15 * 60
REFRESH_TTL = 7 * 24 * 3600
bearer = HTTPBearer(auto_error=False)

def hash_password(raw: str) -> str:
    return bcrypt_sha256.hash(raw)

def verify_password(raw: str, hashed: str) -> bool:
    return bcrypt_sha256.verify(raw, hashed)

def _make_token(sub: str, user_type: str, kind: str, ttl: int) -> str:
    now = int(time.time())
    payload = {"sub": sub, "user_type": user_type, "kind": kind, "iat": now, "exp": now + ttl}
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGO)

def make_tokens(email: str, user_type: str) -> dict:
    return {
        "access_token": _make_token(email, user_type, "access", ACCESS_TTL),
        "refresh_token": _make_token(email, user_type, "refresh", REFRESH_TTL),
        "token_type": "bearer",
        "expires_in": ACCESS_TTL,
        "user_type": user_type,
    }

def decode_token(token: str, kind: str = "access") -> dict:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[ALGO])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    if payload.get("kind") != kind:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return payload

def _user_from_payload(db: Session, payload: dict) -> User:
    email = payload.get("sub")
    if not email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")
    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="user_inactive")
    return user

def get_current_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
                     db: Session = Depends(get_db)) -> User:
    if not creds:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return _user_from_payload(db, decode_token(creds.credentials))

def require_user_type(*types):
    """UX-level gate for routes; the services re-check capabilities themselves."""
    values = [t.value if isinstance(t, UserType) else t for t in types]
    def _dep(user: User = Depends(get_current_user)):
        if user.user_type.value not in values:
            raise Unauthorized()
        return user
    return _dep
