#resolver/services/storage.py
import requests, uuid
from resolver.core.config import settings

BUCKET = settings.supabase_bucket

MAX_BYTES = 2 * 1024 * 1024
ALLOWED = {"image/jpeg", "image/png", "image/webp", "image/gif"}


class StorageNotConfigured(RuntimeError):
    pass


def upload_image(data: bytes, content_type: str, path: str) -> str:
    """Uploads to Supabase Storage via REST; returns public URL (bucket must be public)."""
    if not (settings.supabase_url and settings.supabase_service_role):
        raise StorageNotConfigured("SUPABASE_URL / SUPABASE_SERVICE_ROLE not set")
    url = f"{settings.supabase_url}/storage/v1/object/{BUCKET}/{path}"
    r = requests.post(url, headers={
        "Authorization": f"Bearer {settings.supabase_service_role}",
        "Content-Type": content_type,
        "x-upsert": "true",
    }, data=data, timeout=30)
    r.raise_for_status()
    # public URL pattern:
    return public_url(path)

def public_url(path: str) -> str:
    return f"{settings.supabase_url}/storage/v1/object/public/{BUCKET}/{path}"

def make_object_key(owner_id: int, filename: str) -> str:
    ext = (filename.rsplit(".",1)[-1] if "." in filename else "jpg").lower()
    return f"{owner_id}/{uuid.uuid4().hex}.{ext}"
