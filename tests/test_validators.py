"""
Tests for the shared input validators
"""

import pytest

from magaza.core.validators import (
    clean_iban, get_bank_name_from_iban, escape_like, is_uuid, mask_username,
    normalize_email, normalize_phone, partial_mask_username, slugify_title,
    validate_email, validate_iban, validate_password, validate_tc_no, validate_username,
)

VALID_IBAN = "TR33 0006 1005 1978 6457 8413 26"


class TestEmailAndUsername:
    """E-mail and username validation"""

    def test_normalize_email(self):
        assert normalize_email("  Ali@Example.COM ") == "ali@example.com"
        assert normalize_email(None) == ""

    def test_validate_email(self):
        assert validate_email("ali@example.com") is None
        assert validate_email("") == "E-posta adresi gereklidir."
        assert validate_email("ali@example") == "Geçerli bir e-posta adresi giriniz."

    @pytest.mark.parametrize("username", ["ali", "ali_veli-42", "a" * 30])
    def test_valid_usernames(self, username):
        assert validate_username(username) is None

    def test_invalid_usernames(self):
        assert validate_username("") == "Kullanıcı adı gereklidir."
        assert "en az 3" in validate_username("ab")
        assert "en fazla 30" in validate_username("a" * 31)
        assert "sadece harf" in validate_username("ali veli")


class TestPassword:
    """Strong password policy"""

    def test_strong_password_passes(self):
        assert validate_password("Guclu.Sifre1") is None

    @pytest.mark.parametrize("password,fragment", [
        ("", "gereklidir"),
        ("Ab1!", "en az 8"),
        ("abcdefg1!", "büyük harf"),
        ("ABCDEFG1!", "küçük harf"),
        ("Abcdefgh!", "rakam"),
        ("Abcdefgh1", "özel karakter"),
    ])
    def test_weak_passwords(self, password, fragment):
        assert fragment in validate_password(password)


class TestPhoneIbanAndTc:
    """Turkish phone, IBAN and identity number checks"""

    def test_phone_drops_leading_zero(self):
        assert normalize_phone("0532 123 45 67") == "5321234567"
        assert normalize_phone("532-123-45-67") == "5321234567"
        assert normalize_phone("   ") is None

    def test_phone_with_wrong_length_raises(self):
        with pytest.raises(ValueError):
            normalize_phone("123")

    def test_iban_cleaning_and_validation(self):
        assert clean_iban("tr33-0006.1005 1978") == "TR3300061005" + "1978"
        assert validate_iban(VALID_IBAN) is True
        assert validate_iban("DE89370400440532013000") is False
        assert validate_iban(None) is False

    def test_bank_name_from_prefix(self):
        assert get_bank_name_from_iban(VALID_IBAN) == "Türkiye İş Bankası"
        assert get_bank_name_from_iban("TR64 0000") == "Ziraat Bankası"
        assert get_bank_name_from_iban("DE89370400440532013000") is None
        assert get_bank_name_from_iban("TR00 1234") is None

    def test_tc_no(self):
        assert validate_tc_no("12345678901") is True
        assert validate_tc_no("1234567890") is False
        assert validate_tc_no("1234567890a") is False


class TestMaskingAndSlugs:
    """Reviewer name masking and slug generation"""

    def test_mask_username(self):
        assert mask_username("johndoe") == "joh***doe"
        assert mask_username("abc") == "a***c"
        assert mask_username("ab") == "ab***"
        assert mask_username(None) == "Kullanıcı"

    def test_partial_mask(self):
        assert partial_mask_username("johndoe") == "joh***oe"
        assert partial_mask_username("abcde") == "ab***e"
        assert partial_mask_username("abc") == "a***"

    def test_escape_like(self):
        assert escape_like("ali_1") == "ali\\_1"
        assert escape_like("50%") == "50\\%"
        assert escape_like("a\\b") == "a\\\\b"

    def test_turkish_slug(self):
        assert slugify_title("Çok Güzel Şablon!") == "cok-guzel-sablon"
        assert slugify_title("  İş Akışı 2.0  ") == "is-akisi-2-0"

    def test_is_uuid(self):
        assert is_uuid("0b6d9f4c-2c4e-4a8e-9d0a-1f2e3d4c5b6a") is True
        assert is_uuid("not-a-uuid") is False
        assert is_uuid(None) is False
