"""
Input validation helpers shared by the API modules.

Validators return a Turkish error message, or None when the value is valid.
"""

import re
import uuid
from typing import Optional

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_REGEX = re.compile(r"^[a-zA-Z0-9_-]+$")
IBAN_REGEX = re.compile(r"^TR[0-9]{24}$")
TC_NO_REGEX = re.compile(r"^[0-9]{11}$")

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
PASSWORD_MIN_LENGTH = 8

DEFAULT_DISPLAY_NAME = "Kullanıcı"

# Türkiye IBAN prefixes (TR + 2 digits) mapped to bank names
BANK_PREFIXES = {}
for _start, _end, _bank in (
    (1, 11, "Türkiye Cumhuriyet Merkez Bankası"),
    (12, 14, "Türkiye Halk Bankası"),
    (15, 19, "Vakıfbank"),
    (20, 31, "Türkiye Halk Bankası"),
    (32, 44, "Türkiye İş Bankası"),
    (45, 61, "Akbank"),
    (62, 65, "Ziraat Bankası"),
    (66, 87, "Garanti BBVA"),
    (88, 99, "Yapı Kredi"),
):
    for _n in range(_start, _end + 1):
        BANK_PREFIXES[f"TR{_n:02d}"] = _bank

_TURKISH_TRANSLATION = str.maketrans({
    "ğ": "g", "ü": "u", "ş": "s", "ı": "i", "ö": "o", "ç": "c",
    "Ğ": "g", "Ü": "u", "Ş": "s", "İ": "i", "Ö": "o", "Ç": "c",
})


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def validate_email(email: Optional[str]) -> Optional[str]:
    if not email or not email.strip():
        return "E-posta adresi gereklidir."
    if not EMAIL_REGEX.match(email.strip()):
        return "Geçerli bir e-posta adresi giriniz."
    return None


def validate_username(username: Optional[str]) -> Optional[str]:
    value = (username or "").strip()
    if not value:
        return "Kullanıcı adı gereklidir."
    if len(value) < USERNAME_MIN_LENGTH:
        return f"Kullanıcı adı en az {USERNAME_MIN_LENGTH} karakter olmalıdır."
    if len(value) > USERNAME_MAX_LENGTH:
        return f"Kullanıcı adı en fazla {USERNAME_MAX_LENGTH} karakter olabilir."
    if not USERNAME_REGEX.match(value):
        return "Kullanıcı adı sadece harf, rakam, alt çizgi ve tire içerebilir."
    return None


def validate_password(password: Optional[str]) -> Optional[str]:
    if not password:
        return "Şifre gereklidir."
    if len(password) < PASSWORD_MIN_LENGTH:
        return f"Şifre en az {PASSWORD_MIN_LENGTH} karakter olmalıdır."
    if not re.search(r"[A-ZĞÜŞİÖÇ]", password):
        return "Şifre en az bir büyük harf içermelidir."
    if not re.search(r"[a-zğüşıöç]", password):
        return "Şifre en az bir küçük harf içermelidir."
    if not re.search(r"[0-9]", password):
        return "Şifre en az bir rakam içermelidir."
    if not re.search(r"[^A-Za-z0-9ğüşıöçĞÜŞİÖÇ]", password):
        return "Şifre en az bir özel karakter içermelidir."
    return None


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """Keep digits only and drop the leading 0 of an 11 digit number. Raises ValueError when invalid."""
    if phone is None or not str(phone).strip():
        return None
    digits = re.sub(r"\D", "", str(phone))
    if len(digits) not in (10, 11):
        raise ValueError("Geçerli bir telefon numarası giriniz (10 veya 11 haneli).")
    if len(digits) == 11 and digits.startswith("0"):
        digits = digits[1:]
    return digits


def clean_iban(iban: Optional[str]) -> str:
    return re.sub(r"[\s\-_.,]", "", iban or "").upper()


def validate_iban(iban: Optional[str]) -> bool:
    if not iban:
        return False
    return bool(IBAN_REGEX.match(clean_iban(iban)))


def get_bank_name_from_iban(iban: Optional[str]) -> Optional[str]:
    if not iban or len(iban) < 4:
        return None
    cleaned = re.sub(r"[\s-]", "", iban).upper()
    if not cleaned.startswith("TR"):
        return None
    return BANK_PREFIXES.get(cleaned[:4])


def validate_tc_no(tc_no: Optional[str]) -> bool:
    return bool(tc_no) and bool(TC_NO_REGEX.match(tc_no.strip()))


def mask_username(username: Optional[str]) -> str:
    """'johndoe' -> 'joh***doe', 'abc' -> 'a***c', 'ab' -> 'ab***'."""
    if not username:
        return DEFAULT_DISPLAY_NAME
    value = username.strip()
    if len(value) <= 2:
        return f"{value}***"
    if len(value) <= 4:
        return f"{value[0]}***{value[-1]}"
    return f"{value[:3]}***{value[-3:]}"


def partial_mask_username(username: Optional[str]) -> str:
    """'johndoe' -> 'joh***oe', 'abcde' -> 'ab***e'."""
    if not username:
        return DEFAULT_DISPLAY_NAME
    value = username.strip()
    if len(value) <= 3:
        return f"{value[:1]}***"
    if len(value) <= 6:
        return f"{value[:2]}***{value[-1]}"
    return f"{value[:3]}***{value[-2:]}"


def slugify_title(title: str) -> str:
    """Turkish-aware slug: 'Çok Güzel Şablon!' -> 'cok-guzel-sablon'."""
    value = (title or "").translate(_TURKISH_TRANSLATION).lower()
    value = re.sub(r"[^a-z0-9]+", "-", value)
    return value.strip("-")


def is_uuid(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


def escape_like(value: str) -> str:
    """Literal match for ilike: `\\`, `%` and `_` lose their pattern meaning"""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
