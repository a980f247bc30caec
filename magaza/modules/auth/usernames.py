"""
Username generation for profiles created from auth metadata (OAuth sign-ups,
e-mail confirmations) where the user never picked a username.
"""

from supabase import Client
from typing import Any, Dict, List, Optional
import random
import re
import string
import time
import logging

logger = logging.getLogger(__name__)

FALLBACK_PREFIX = "kullanici"
DEFAULT_FULL_NAME = "Yeni Kullanıcı"
RANDOM_ATTEMPTS = 10

_BASE36 = string.digits + string.ascii_lowercase


def _base36(number: int) -> str:
    if number == 0:
        return "0"
    out = ""
    while number:
        number, rem = divmod(number, 36)
        out = _BASE36[rem] + out
    return out


def random_suffix(length: int = 6) -> str:
    return "".join(random.choice(_BASE36) for _ in range(length))


def normalize_username(value: Any) -> str:
    value = str(value or "").lower()
    value = re.sub(r"[^a-z0-9]+", "-", value)
    value = value.strip("-")
    return re.sub(r"-{2,}", "-", value)


def build_username_candidates(email: Optional[str], metadata: Optional[Dict[str, Any]] = None) -> List[str]:
    metadata = metadata or {}
    candidates: List[str] = []

    for key in ("username", "user_name", "preferred_username", "login", "nickname", "sub"):
        normalized = normalize_username(metadata.get(key))
        if len(normalized) >= 3:
            candidates.append(normalized)

    full_name = metadata.get("full_name") or metadata.get("name")
    if full_name:
        parts = str(full_name).split()
        if parts:
            first = normalize_username(parts[0])
            if len(parts) >= 2:
                initial = normalize_username(parts[-1][:1])
                if first and initial:
                    candidates.append(f"{first}{initial}")
            if len(first) >= 3:
                candidates.append(first)

    if email:
        local_part = normalize_username(email.split("@")[0])
        if len(local_part) >= 3:
            candidates.append(local_part)

    candidates.append(f"{FALLBACK_PREFIX}{random_suffix()}")
    # dict preserves insertion order
    return [c for c in dict.fromkeys(candidates) if c]


def _username_taken(supabase: Client, username: str) -> bool:
    result = supabase.table("user_profiles")\
        .select("id")\
        .eq("username", username)\
        .maybe_single()\
        .execute()
    return bool(result and result.data)


def pick_available_username(supabase: Client, candidates: List[str]) -> str:
    for candidate in candidates:
        try:
            if not _username_taken(supabase, candidate):
                return candidate
        except Exception as e:
            logger.warning(f"Username check failed for {candidate}: {e}")
    for _ in range(RANDOM_ATTEMPTS):
        candidate = f"{FALLBACK_PREFIX}{random_suffix(8)}"
        try:
            if not _username_taken(supabase, candidate):
                return candidate
        except Exception as e:
            logger.warning(f"Username check failed for {candidate}: {e}")
    return f"{FALLBACK_PREFIX}{_base36(int(time.time() * 1000))}{random_suffix(2)}"


def profile_defaults(user: Dict[str, Any]) -> Dict[str, Any]:
    """Profile fields derived from auth metadata for a first-time user."""
    metadata = user.get("user_metadata") or {}
    email = user.get("email") or ""
    full_name = (
        metadata.get("full_name")
        or metadata.get("name")
        or metadata.get("user_name")
        or (email.split("@")[0] if email else None)
        or DEFAULT_FULL_NAME
    )
    return {
        "full_name": full_name,
        "avatar_url": metadata.get("avatar_url") or metadata.get("picture") or metadata.get("avatar"),
        "phone": metadata.get("phone"),
        "email": email or None,
        "is_developer": False,
        "developer_approved": False,
    }
