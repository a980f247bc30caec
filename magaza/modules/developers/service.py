from supabase import Client
from magaza.config import settings
from magaza.core.validators import clean_iban, validate_iban, get_bank_name_from_iban, validate_tc_no
from magaza.modules.developers.schemas import (
    DeveloperRegisterResponse, PaymentInfo, PaymentInfoUpdate,
    StripeConnectRequest, StripeConnectResponse, StripeStatusResponse, EarningsResponse,
)
from magaza.modules.payments.fees import money, to_decimal
from magaza.modules.payments.service import configure_stripe
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from fastapi import HTTPException
import stripe
import logging

logger = logging.getLogger(__name__)

PAYMENT_INFO_COLUMNS = "full_name,tc_no,tax_office,iban,bank_name"


class DeveloperService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _profile(self, user_id: str, columns: str = "*") -> Optional[Dict[str, Any]]:
        result = self.supabase.table("user_profiles")\
            .select(columns)\
            .eq("id", user_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            return None
        return result.data

    def register(self, user_id: str, agreed: bool) -> DeveloperRegisterResponse:
        if not agreed:
            raise HTTPException(status_code=400, detail="Geliştirici sözleşmesini kabul etmelisiniz")
        profile = self._profile(user_id, "id, is_developer")
        if not profile:
            raise HTTPException(status_code=404, detail="Profil bulunamadı.")
        if profile.get("is_developer"):
            return DeveloperRegisterResponse(
                success=True, already_developer=True, message="Zaten geliştirici hesabınız var"
            )
        try:
            self.supabase.table("user_profiles")\
                .update({"is_developer": True, "updated_at": datetime.now(timezone.utc).isoformat()})\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            logger.error(f"Developer registration failed for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="İşlem başarısız")
        logger.info(f"User {user_id} registered as developer")
        return DeveloperRegisterResponse(success=True, message="Geliştirici hesabınız oluşturuldu!")

    # Payout details

    def get_payment_info(self, user_id: str) -> PaymentInfo:
        profile = self._profile(user_id, PAYMENT_INFO_COLUMNS)
        return PaymentInfo(**(profile or {}))

    def update_payment_info(self, user_id: str, data: PaymentInfoUpdate) -> PaymentInfo:
        full_name = data.full_name.strip()
        tc_no = data.tc_no.strip()
        tax_office = data.tax_office.strip()
        if not full_name:
            raise HTTPException(status_code=400, detail="Ad Soyad zorunludur")
        if not validate_tc_no(tc_no):
            raise HTTPException(status_code=400, detail="Geçerli bir TC Kimlik No giriniz (11 haneli)")
        if not tax_office:
            raise HTTPException(status_code=400, detail="Vergi Dairesi zorunludur")
        if not data.iban.strip():
            raise HTTPException(status_code=400, detail="IBAN zorunludur")
        if not validate_iban(data.iban):
            raise HTTPException(status_code=400, detail="Geçerli bir IBAN giriniz")
        bank_name = get_bank_name_from_iban(data.iban)
        if not bank_name:
            raise HTTPException(status_code=400, detail="IBAN'dan banka adı tespit edilemedi")

        payload = {
            "full_name": full_name,
            "tc_no": tc_no,
            "tax_office": tax_office,
            "iban": clean_iban(data.iban),
            "bank_name": bank_name,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            result = self.supabase.table("user_profiles")\
                .update(payload)\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            logger.error(f"Payment info save failed for {user_id}: {e}")
            message = str(e)
            if "42703" in message or "column" in message or "does not exist" in message:
                raise HTTPException(
                    status_code=500,
                    detail="Veritabanı kolonları eksik. Lütfen SQL migration dosyasını çalıştırın."
                )
            raise HTTPException(status_code=500, detail="Kayıt başarısız. Lütfen tekrar deneyin.")
        if not result.data:
            raise HTTPException(status_code=500, detail="Kayıt başarısız. Veri döndürülmedi.")
        return PaymentInfo(**{k: result.data[0].get(k) for k in PaymentInfo.model_fields})

    # Stripe Connect

    def _stripe_row(self, developer_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("stripe_accounts")\
            .select("*")\
            .eq("developer_id", developer_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            return None
        return result.data

    def connect_stripe(self, developer_id: str, email: Optional[str], body: StripeConnectRequest) -> StripeConnectResponse:
        """Express account for the developer plus an onboarding link while it is incomplete"""
        configure_stripe()
        existing = self._stripe_row(developer_id)
        account_id = existing.get("stripe_account_id") if existing else None

        try:
            if account_id:
                account = stripe.Account.retrieve(account_id)
            else:
                account = stripe.Account.create(
                    type="express",
                    country="TR",
                    email=email,
                    capabilities={
                        "card_payments": {"requested": True},
                        "transfers": {"requested": True},
                    },
                )
                account_id = account.id
                logger.info(f"Created Stripe account {account_id} for developer {developer_id}")

            base_url = settings.platform_base_url.rstrip("/")
            onboarding_url = None
            if not (account.details_submitted and account.charges_enabled and account.payouts_enabled):
                link = stripe.AccountLink.create(
                    account=account_id,
                    refresh_url=body.refresh_url or f"{base_url}/developer/stripe-onboarding?refresh=1",
                    return_url=body.return_url or f"{base_url}/developer/stripe-onboarding?success=1",
                    type="account_onboarding",
                )
                onboarding_url = link.url
        except stripe.StripeError as e:
            logger.error(f"Stripe Connect failed for developer {developer_id}: {e}")
            raise HTTPException(status_code=502, detail="Stripe hesabı oluşturulamadı")

        row = {
            "developer_id": developer_id,
            "stripe_account_id": account_id,
            "onboarding_complete": bool(account.details_submitted),
            "charges_enabled": bool(account.charges_enabled),
            "payouts_enabled": bool(account.payouts_enabled),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            self.supabase.table("stripe_accounts").upsert(row, on_conflict="developer_id").execute()
        except Exception as e:
            logger.error(f"Stripe account upsert error for {developer_id}: {e}")
            raise HTTPException(status_code=500, detail="Stripe hesabı kaydedilemedi")

        return StripeConnectResponse(
            stripe_account_id=account_id,
            onboarding_url=onboarding_url,
            onboarding_complete=row["onboarding_complete"],
            charges_enabled=row["charges_enabled"],
            payouts_enabled=row["payouts_enabled"],
        )

    def stripe_status(self, developer_id: str) -> StripeStatusResponse:
        row = self._stripe_row(developer_id)
        if not row or not row.get("stripe_account_id"):
            return StripeStatusResponse(connected=False)
        return StripeStatusResponse(
            connected=True,
            stripe_account_id=row["stripe_account_id"],
            onboarding_complete=bool(row.get("onboarding_complete")),
            charges_enabled=bool(row.get("charges_enabled")),
            payouts_enabled=bool(row.get("payouts_enabled")),
            details_submitted=row.get("details_submitted"),
            updated_at=row.get("updated_at"),
        )

    # Earnings

    def earnings(self, developer_id: str) -> EarningsResponse:
        automations = self.supabase.table("automations")\
            .select("id, title, total_sales")\
            .eq("developer_id", developer_id)\
            .execute().data or []
        titles = {a["id"]: a.get("title") for a in automations}
        total_sales = sum(a.get("total_sales") or 0 for a in automations)

        sales = []
        if titles:
            sales = self.supabase.table("purchases")\
                .select("id, automation_id, price, platform_commission, completed_at, purchased_at")\
                .in_("automation_id", list(titles))\
                .eq("status", "completed")\
                .order("completed_at", desc=True)\
                .execute().data or []

        gross = sum((to_decimal(s.get("price") or 0) for s in sales), to_decimal(0))
        commission = sum((to_decimal(s.get("platform_commission") or 0) for s in sales), to_decimal(0))
        for sale in sales:
            sale["title"] = titles.get(sale.get("automation_id"))

        return EarningsResponse(
            total_products=len(automations),
            total_sales=total_sales,
            gross=money(gross),
            platform_commission=money(commission),
            net=money(gross - commission),
            sales=sales,
        )
