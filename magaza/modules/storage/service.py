from supabase import Client
from magaza.core.errors import get_error_category, get_error_message
from typing import Dict
from fastapi import HTTPException, UploadFile
from datetime import datetime, timezone
import os
import logging

logger = logging.getLogger(__name__)

AUTOMATION_FILES_BUCKET = "automation-files"
AUTOMATION_FILE_SIZE_LIMIT = 100 * 1024 * 1024
AUTOMATION_FILE_TYPES: Dict[str, str] = {
    ".zip": "application/zip",
    ".rar": "application/x-rar-compressed",
    ".7z": "application/x-7z-compressed",
    ".json": "application/json",
    ".js": "application/javascript",
    ".py": "text/x-python",
    ".php": "application/x-php",
    ".txt": "text/plain",
    ".md": "text/markdown",
}

AVATAR_BUCKET = "profile-avatars"
AVATAR_SIZE_LIMIT = 5 * 1024 * 1024
AVATAR_TYPES: Dict[str, str] = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
}

BUCKETS = {
    AUTOMATION_FILES_BUCKET: {
        "public": True,
        "file_size_limit": AUTOMATION_FILE_SIZE_LIMIT,
        "allowed_mime_types": sorted(set(AUTOMATION_FILE_TYPES.values())),
    },
    AVATAR_BUCKET: {
        "public": True,
        "file_size_limit": AVATAR_SIZE_LIMIT,
        "allowed_mime_types": sorted(set(AVATAR_TYPES.values())),
    },
}


def file_extension(filename: str, allowed: Dict[str, str]) -> str:
    ext = os.path.splitext(filename or "")[1].lower()
    if ext not in allowed:
        raise HTTPException(
            status_code=400,
            detail=f"Desteklenmeyen dosya türü. İzin verilenler: {', '.join(sorted(allowed))}"
        )
    return ext


async def read_limited(file: UploadFile, limit: int) -> bytes:
    content = await file.read()
    if len(content) > limit:
        raise HTTPException(
            status_code=413,
            detail=f"Dosya boyutu en fazla {limit // (1024 * 1024)} MB olabilir."
        )
    if not content:
        raise HTTPException(status_code=400, detail="Dosya boş olamaz.")
    return content


class StorageService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def ensure_bucket(self, bucket_name: str) -> Dict[str, bool]:
        """Create the bucket, or refresh its size limit when it already exists."""
        options = BUCKETS[bucket_name]
        try:
            existing = None
            try:
                existing = self.supabase.storage.get_bucket(bucket_name)
            except Exception as e:
                if "not found" not in str(e).lower():
                    raise
                logger.info(f"Bucket {bucket_name} not found, creating")

            if not existing:
                self.supabase.storage.create_bucket(bucket_name, options=options)
                logger.info(f"Bucket {bucket_name} created")
                return {"success": True, "created": True}

            try:
                self.supabase.storage.update_bucket(bucket_name, {
                    "public": getattr(existing, "public", None) if getattr(existing, "public", None) is not None else True,
                    "file_size_limit": options["file_size_limit"],
                })
            except Exception as e:
                logger.warning(f"Bucket {bucket_name} size limit update skipped: {e}")
            return {"success": True, "created": False}
        except Exception as e:
            logger.error(f"Bucket operation failed for {bucket_name}: {e}")
            raise HTTPException(
                status_code=500,
                detail=get_error_message(e, get_error_category(e), "Bucket operation")
            )

    async def upload_avatar(self, user_id: str, file: UploadFile) -> str:
        ext = file_extension(file.filename, AVATAR_TYPES)
        content = await read_limited(file, AVATAR_SIZE_LIMIT)
        path = f"{user_id}/avatar{ext}"
        bucket = self.supabase.storage.from_(AVATAR_BUCKET)
        try:
            bucket.upload(path, content, {"content-type": AVATAR_TYPES[ext], "upsert": "true"})
        except Exception as e:
            logger.error(f"Avatar upload failed for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Profil fotoğrafı yüklenemedi.")
        public_url = bucket.get_public_url(path)
        self.supabase.table("user_profiles")\
            .update({"avatar_url": public_url, "updated_at": datetime.now(timezone.utc).isoformat()})\
            .eq("id", user_id)\
            .execute()
        return public_url

