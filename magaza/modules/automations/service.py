from supabase import Client
from magaza.config import settings
from magaza.core.validators import partial_mask_username, slugify_title
from magaza.modules.automations.schemas import (
    AutomationCreate, AutomationUpdate, AutomationResponse, InitialDataResponse,
    FileUploadResponse, DownloadResponse, PurchasedResponse, ReviewCreate, ReviewResponse,
)
from magaza.modules.automations.s3_storage import S3Storage
from magaza.modules.categories.service import CategoryService
from magaza.modules.storage.service import (
    AUTOMATION_FILES_BUCKET, AUTOMATION_FILE_SIZE_LIMIT, AUTOMATION_FILE_TYPES,
    file_extension, read_limited,
)
from typing import List, Optional, Dict, Any, Union
from datetime import datetime, timezone
from fastapi import HTTPException, UploadFile
import os
import math
import logging

logger = logging.getLogger(__name__)

BLOCKED_SLUGS = {"test", "debug", "demo", "example"}
DOWNLOAD_URL_TTL_SEC = 3600

LIST_COLUMNS = (
    "id,developer_id,title,slug,description,price,image_url,image_path,total_sales,rating_avg,"
    "created_at,is_published,admin_approved, category:categories(id,name,slug), "
    "developer:user_profiles(id,username,avatar_url)"
)
DETAIL_COLUMNS = (
    "id,developer_id,title,slug,description,long_description,price,image_url,image_path,file_path,"
    "demo_url,documentation,tags,is_featured,total_sales,rating_avg,rating_count,created_at,updated_at,"
    "is_published,admin_approved, category:categories(id,name,slug,color,created_at), "
    "developer:user_profiles(id,username,avatar_url)"
)
REVIEW_COLUMNS = "id,automation_id,user_id,rating,comment,created_at,updated_at, user:user_profiles(id,username,avatar_url)"


def first_related(value):
    """Embedded relations come back as an object or a one-element list"""
    if isinstance(value, list):
        return value[0] if value else None
    return value


def flatten_relations(row: Dict[str, Any], *relations: str) -> Dict[str, Any]:
    row = dict(row)
    for relation in relations:
        if relation in row:
            row[relation] = first_related(row[relation])
    return row


def is_blocked_slug(slug: Optional[str]) -> bool:
    return (slug or "").lower() in BLOCKED_SLUGS


def parse_price(value: Union[float, str, None]) -> float:
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="Geçersiz fiyat formatı.")
    if math.isnan(price) or price < 0:
        raise HTTPException(status_code=400, detail="Geçersiz fiyat formatı.")
    return price


def parse_tags(value: Union[List[str], str, None]) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [tag.strip() for tag in value if tag and tag.strip()]


class AutomationService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.categories = CategoryService(supabase)

        self.s3_storage = None
        if all([settings.aws_access_key_id, settings.aws_secret_access_key, settings.s3_bucket_name]):
            try:
                self.s3_storage = S3Storage()
            except Exception as e:
                logger.warning(f"S3 storage initialization failed ({e}), will use Supabase Storage")

    # Storefront

    def list_automations(self, category: Optional[str] = None) -> List[Dict[str, Any]]:
        """Published, approved automations, newest first. Optional category slug filter."""
        query = self.supabase.table("automations")\
            .select(LIST_COLUMNS)\
            .eq("is_published", True)\
            .eq("admin_approved", True)
        if category:
            found = self.supabase.table("categories")\
                .select("id")\
                .eq("slug", category)\
                .limit(1)\
                .execute()
            if not found.data:
                return []
            query = query.eq("category_id", found.data[0]["id"])
        try:
            result = query.order("created_at", desc=True).limit(100).execute()
        except Exception as e:
            logger.error(f"Automation list failed: {e}")
            raise HTTPException(status_code=500, detail="Otomasyonlar alınamadı.")
        return [
            flatten_relations(row, "category", "developer")
            for row in result.data or []
            if not is_blocked_slug(row.get("slug"))
        ]

    def get_initial_data(self) -> InitialDataResponse:
        automations = self.list_automations()
        categories = self.supabase.table("categories")\
            .select("id,name,slug")\
            .order("name")\
            .execute().data or []
        return InitialDataResponse(
            automations=automations,
            categories=categories,
            debug={
                "automations_count": len(automations),
                "categories_count": len(categories),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

    def get_by_slug(self, slug: str) -> AutomationResponse:
        if is_blocked_slug(slug):
            raise HTTPException(status_code=404, detail="Otomasyon bulunamadı")
        result = self.supabase.table("automations")\
            .select(DETAIL_COLUMNS)\
            .eq("slug", slug)\
            .eq("is_published", True)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            raise HTTPException(status_code=404, detail="Otomasyon bulunamadı")
        return AutomationResponse(**flatten_relations(result.data, "category", "developer"))

    def _get_row(self, automation_id: str, columns: str = "*") -> Dict[str, Any]:
        result = self.supabase.table("automations")\
            .select(columns)\
            .eq("id", automation_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            raise HTTPException(status_code=404, detail="Otomasyon bulunamadı")
        return result.data

    # Purchases and downloads

    def has_purchased(self, user_id: str, automation_id: str) -> bool:
        result = self.supabase.table("purchases")\
            .select("id")\
            .eq("user_id", user_id)\
            .eq("automation_id", automation_id)\
            .eq("status", "completed")\
            .limit(1)\
            .execute()
        return bool(result.data)

    def purchased_status(self, user_id: str, automation_id: str) -> PurchasedResponse:
        return PurchasedResponse(automation_id=automation_id, purchased=self.has_purchased(user_id, automation_id))

    def create_download(self, user_id: str, automation_id: str, is_admin: bool = False) -> DownloadResponse:
        """Signed one-hour URL for purchasers, the owning developer and admins"""
        automation = self._get_row(automation_id, "id, developer_id, file_path")
        is_owner = automation.get("developer_id") == user_id
        if not (is_admin or is_owner or self.has_purchased(user_id, automation_id)):
            raise HTTPException(status_code=403, detail="Dosyayı indirebilmek için ürünü satın almalısınız")

        file_path = automation.get("file_path")
        if not file_path:
            raise HTTPException(status_code=404, detail="İndirilecek dosya bulunamadı")

        if self.s3_storage and file_path.startswith(self.s3_storage.url_prefix):
            url = self.s3_storage.create_download_url(
                self.s3_storage.key_from_path(file_path), expires_in=DOWNLOAD_URL_TTL_SEC
            )
        else:
            try:
                signed = self.supabase.storage.from_(AUTOMATION_FILES_BUCKET)\
                    .create_signed_url(file_path, DOWNLOAD_URL_TTL_SEC)
            except Exception as e:
                logger.error(f"Signed URL failed for {automation_id}: {e}")
                raise HTTPException(status_code=404, detail="İndirilecek dosya bulunamadı")
            url = (signed.get("signedURL") or signed.get("signedUrl")) if signed else None
            if not url:
                raise HTTPException(status_code=404, detail="İndirilecek dosya bulunamadı")

        try:
            self.supabase.table("download_logs").insert({
                "user_id": user_id,
                "automation_id": automation_id,
            }).execute()
        except Exception as e:
            logger.warning(f"Download log insert failed for {automation_id}: {e}")

        return DownloadResponse(
            automation_id=automation_id,
            url=url,
            file_name=os.path.basename(file_path),
            expires_in=DOWNLOAD_URL_TTL_SEC,
        )

    # Developer CRUD

    def list_mine(self, developer_id: str) -> List[AutomationResponse]:
        result = self.supabase.table("automations")\
            .select("*, category:categories(id,name,slug)")\
            .eq("developer_id", developer_id)\
            .order("created_at", desc=True)\
            .execute()
        return [AutomationResponse(**flatten_relations(row, "category")) for row in result.data or []]

    def create_automation(self, data: AutomationCreate, developer_id: str) -> AutomationResponse:
        slug = slugify_title(data.title)
        if not slug:
            raise HTTPException(status_code=400, detail="Başlıktan geçerli bir adres oluşturulamadı.")
        payload = {
            "developer_id": developer_id,
            "title": data.title,
            "slug": slug,
            "description": data.description,
            "long_description": data.long_description,
            "price": parse_price(data.price),
            "category_id": self.categories.resolve_category_id(data.category_id),
            "image_path": data.image_path,
            "image_url": data.image_url,
            "file_path": data.file_path,
            "demo_url": data.demo_url,
            "documentation": data.documentation,
            "tags": parse_tags(data.tags),
            "is_published": data.is_published,
            "admin_approved": False,
        }
        try:
            result = self.supabase.table("automations").insert(payload).execute()
        except Exception as e:
            if "23505" in str(e) or "duplicate" in str(e).lower():
                raise HTTPException(status_code=409, detail="Bu başlıkla bir otomasyon zaten mevcut.")
            logger.error(f"Automation insert failed for developer {developer_id}: {e}")
            raise HTTPException(status_code=500, detail="Otomasyon oluşturulamadı.")
        if not result.data:
            raise HTTPException(status_code=500, detail="Otomasyon oluşturulamadı.")
        logger.info(f"Automation {result.data[0]['id']} created by {developer_id}")
        return AutomationResponse(**result.data[0])

    def _get_owned(self, automation_id: str, developer_id: str) -> Dict[str, Any]:
        automation = self._get_row(automation_id)
        if automation.get("developer_id") != developer_id:
            raise HTTPException(status_code=403, detail="Bu otomasyon üzerinde yetkiniz yok.")
        return automation

    def update_automation(self, automation_id: str, data: AutomationUpdate, developer_id: str) -> AutomationResponse:
        """Owner update; the slug stays as created"""
        self._get_owned(automation_id, developer_id)
        update_data = data.model_dump(exclude_unset=True)
        update_data.pop("slug", None)
        if "price" in update_data:
            update_data["price"] = parse_price(update_data["price"])
        if "tags" in update_data:
            update_data["tags"] = parse_tags(update_data["tags"])
        if "category_id" in update_data:
            update_data["category_id"] = self.categories.resolve_category_id(update_data["category_id"])
        if "title" in update_data:
            if not update_data["title"] or not update_data["title"].strip():
                raise HTTPException(status_code=400, detail="Başlık gereklidir")
            update_data["title"] = update_data["title"].strip()
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

        result = self.supabase.table("automations")\
            .update(update_data)\
            .eq("id", automation_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Otomasyon güncellenemedi.")
        return AutomationResponse(**result.data[0])

    def delete_automation(self, automation_id: str, developer_id: str) -> bool:
        automation = self._get_owned(automation_id, developer_id)
        self.supabase.table("automations").delete().eq("id", automation_id).execute()
        file_path = automation.get("file_path") or ""
        if self.s3_storage and file_path.startswith(self.s3_storage.url_prefix):
            self.s3_storage.delete_file(self.s3_storage.key_from_path(file_path))
        logger.info(f"Automation {automation_id} deleted by {developer_id}")
        return True

    async def upload_file(self, automation_id: str, developer_id: str, file: UploadFile) -> FileUploadResponse:
        """Store the deliverable in S3 when configured, otherwise in Supabase Storage"""
        self._get_owned(automation_id, developer_id)
        ext = file_extension(file.filename, AUTOMATION_FILE_TYPES)
        content = await read_limited(file, AUTOMATION_FILE_SIZE_LIMIT)
        content_type = AUTOMATION_FILE_TYPES[ext]
        key = f"{developer_id}/{automation_id}{ext}"

        if self.s3_storage:
            try:
                file_path = self.s3_storage.upload_file(content, key, content_type)
            except Exception as e:
                logger.error(f"S3 upload failed for {automation_id}: {e}")
                raise HTTPException(status_code=500, detail="Dosya yüklenemedi.")
        else:
            try:
                self.supabase.storage.from_(AUTOMATION_FILES_BUCKET).upload(
                    key,
                    content,
                    file_options={"content-type": content_type, "upsert": "true"}
                )
                file_path = key
            except Exception as e:
                logger.error(f"Supabase Storage upload failed for {automation_id}: {e}")
                raise HTTPException(status_code=500, detail="Dosya yüklenemedi.")

        self.supabase.table("automations")\
            .update({"file_path": file_path, "updated_at": datetime.now(timezone.utc).isoformat()})\
            .eq("id", automation_id)\
            .execute()
        return FileUploadResponse(automation_id=automation_id, file_path=file_path, message="Dosya yüklendi.")


class ReviewService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_reviews(self, automation_id: str) -> List[ReviewResponse]:
        result = self.supabase.table("reviews")\
            .select(REVIEW_COLUMNS)\
            .eq("automation_id", automation_id)\
            .order("created_at", desc=True)\
            .limit(20)\
            .execute()
        reviews = []
        for row in result.data or []:
            row = flatten_relations(row, "user")
            if row.get("user"):
                row["user"] = {**row["user"], "username": partial_mask_username(row["user"].get("username"))}
            reviews.append(ReviewResponse(**row))
        return reviews

    def create_review(self, automation_id: str, user_id: str, data: ReviewCreate) -> ReviewResponse:
        purchased = self.supabase.table("purchases")\
            .select("id")\
            .eq("user_id", user_id)\
            .eq("automation_id", automation_id)\
            .eq("status", "completed")\
            .limit(1)\
            .execute()
        if not purchased.data:
            raise HTTPException(status_code=403, detail="Yorum yapabilmek için ürünü satın almalısınız")

        existing = self.supabase.table("reviews")\
            .select("id")\
            .eq("automation_id", automation_id)\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        if existing.data:
            raise HTTPException(status_code=409, detail="Bu ürün için zaten yorum yaptınız")

        comment = data.comment.strip() if data.comment else None
        try:
            result = self.supabase.table("reviews").insert({
                "automation_id": automation_id,
                "user_id": user_id,
                "rating": data.rating,
                "comment": comment or None,
            }).execute()
        except Exception as e:
            if "23505" in str(e):
                raise HTTPException(status_code=409, detail="Bu ürün için zaten yorum yaptınız")
            logger.error(f"Review insert failed for {automation_id}: {e}")
            raise HTTPException(status_code=500, detail="Yorum kaydedilemedi.")
        if not result.data:
            raise HTTPException(status_code=500, detail="Yorum kaydedilemedi.")

        self._refresh_rating(automation_id)
        return ReviewResponse(**result.data[0])

    def _refresh_rating(self, automation_id: str):
        try:
            ratings = self.supabase.table("reviews")\
                .select("rating")\
                .eq("automation_id", automation_id)\
                .execute().data or []
            count = len(ratings)
            avg = round(sum(r["rating"] for r in ratings) / count, 2) if count else None
            self.supabase.table("automations")\
                .update({"rating_avg": avg, "rating_count": count})\
                .eq("id", automation_id)\
                .execute()
        except Exception as e:
            logger.error(f"Rating refresh failed for {automation_id}: {e}")
