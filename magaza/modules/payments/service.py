from supabase import Client
from magaza.config import settings
from magaza.modules.automations.service import flatten_relations
from magaza.modules.payments.fees import split_fee, to_kurus, money, money_str
from magaza.modules.payments.schemas import (
    CheckoutResponse, CartCheckoutResponse, GuestCheckoutRequest, GuestCheckoutResponse,
)
from typing import List, Optional, Dict, Any
from datetime import datetime, timezone
from fastapi import HTTPException
import stripe
import logging

logger = logging.getLogger(__name__)

CHECKOUT_COLUMNS = "*, developer:user_profiles!automations_developer_id_fkey(*), stripe_account:stripe_accounts(*)"
GUEST_FIELDS = ("guest_email", "guest_name", "guest_phone", "guest_address")


def configure_stripe():
    if not settings.stripe_configured:
        raise HTTPException(status_code=500, detail="Stripe yapılandırması eksik")
    stripe.api_key = settings.stripe_secret_key
    stripe.api_version = settings.stripe_api_version


def connected_account_id(automation: Dict[str, Any]) -> Optional[str]:
    account = automation.get("stripe_account") or {}
    return account.get("stripe_account_id")


class PaymentService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _load_automations(self, automation_ids: List[str]) -> List[Dict[str, Any]]:
        result = self.supabase.table("automations")\
            .select(CHECKOUT_COLUMNS)\
            .in_("id", automation_ids)\
            .execute()
        return [flatten_relations(row, "developer", "stripe_account") for row in result.data or []]

    def _insert_purchase(self, row: Dict[str, Any]):
        try:
            self.supabase.table("purchases").insert(row).execute()
        except Exception as e:
            logger.error(f"Purchase record error for automation {row.get('automation_id')}: {e}")

    def create_checkout(self, automation_id: str, user_id: str) -> CheckoutResponse:
        """PaymentIntent with a destination charge to the developer's connected account"""
        automations = self._load_automations([automation_id])
        if not automations:
            raise HTTPException(status_code=404, detail="Otomasyon bulunamadı")
        automation = automations[0]

        destination = connected_account_id(automation)
        if not destination:
            raise HTTPException(status_code=400, detail="Geliştirici Stripe hesabı bağlamamış")

        configure_stripe()
        split = split_fee(automation.get("price") or 0)
        try:
            intent = stripe.PaymentIntent.create(
                amount=to_kurus(split.amount),
                currency="try",
                application_fee_amount=to_kurus(split.platform_fee),
                transfer_data={"destination": destination},
                metadata={
                    "automation_id": automation_id,
                    "user_id": user_id,
                    "developer_id": automation.get("developer_id"),
                    "platform_fee": money_str(split.platform_fee),
                    "developer_earnings": money_str(split.developer_earnings),
                },
                description=f"{automation.get('title')} - Otomasyon Satın Alma",
            )
        except stripe.StripeError as e:
            logger.error(f"PaymentIntent create failed for {automation_id}: {e}")
            raise HTTPException(status_code=502, detail="Ödeme başlatılamadı. Lütfen tekrar deneyin.")

        self._insert_purchase({
            "user_id": user_id,
            "automation_id": automation_id,
            "price": money(split.amount),
            "platform_commission": money(split.platform_fee),
            "status": "pending",
            "stripe_payment_intent_id": intent.id,
        })
        logger.info(f"Checkout started: intent={intent.id} automation={automation_id} user={user_id}")

        return CheckoutResponse(
            client_secret=intent.client_secret,
            payment_intent_id=intent.id,
            amount=money(split.amount),
            currency="TRY",
            platform_fee=money(split.platform_fee),
            developer_earnings=money(split.developer_earnings),
        )

    def create_cart_checkout(self, automation_ids: List[str], user_id: str,
                             customer_email: Optional[str] = None) -> CartCheckoutResponse:
        """Hosted Checkout Session for a cart; every item must belong to one connected account"""
        automations = self._load_automations(automation_ids)
        if not automations:
            raise HTTPException(status_code=404, detail="Otomasyon(lar) bulunamadı")

        groups: Dict[str, List[str]] = {}
        for automation in automations:
            groups.setdefault(connected_account_id(automation) or "none", []).append(automation["id"])
        if len(groups) != 1:
            raise HTTPException(
                status_code=400,
                detail={"message": "Sepette farklı geliştiricilere ait ürünler var", "groups": groups},
            )
        destination = next(iter(groups))
        if destination == "none":
            raise HTTPException(status_code=400, detail="Geliştirici Stripe hesabı bağlamamış")

        configure_stripe()
        split = split_fee(sum(money(a.get("price") or 0) for a in automations))
        line_items = []
        for automation in automations:
            product_data = {"name": automation.get("title")}
            if automation.get("description"):
                product_data["description"] = automation["description"]
            line_items.append({
                "price_data": {
                    "currency": "try",
                    "product_data": product_data,
                    "unit_amount": to_kurus(automation.get("price") or 0),
                },
                "quantity": 1,
            })

        joined_ids = ",".join(a["id"] for a in automations)
        base_url = settings.platform_base_url.rstrip("/")
        session_params = {
            "mode": "payment",
            "success_url": f"{base_url}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{base_url}/checkout/cancel",
            "line_items": line_items,
            "payment_intent_data": {
                "application_fee_amount": to_kurus(split.platform_fee),
                "transfer_data": {"destination": destination},
                "metadata": {
                    "automation_ids": joined_ids,
                    "user_id": user_id,
                    "platform_fee": money_str(split.platform_fee),
                    "developer_earnings": money_str(split.developer_earnings),
                },
                "description": f"Sepet Ödemesi ({len(automations)} ürün)",
            },
            "metadata": {"automation_ids": joined_ids, "user_id": user_id},
        }
        if customer_email:
            session_params["customer_email"] = customer_email
        try:
            session = stripe.checkout.Session.create(**session_params)
        except stripe.StripeError as e:
            logger.error(f"Checkout session create failed for user {user_id}: {e}")
            raise HTTPException(status_code=502, detail="Ödeme başlatılamadı. Lütfen tekrar deneyin.")

        payment_intent = session.payment_intent if isinstance(session.payment_intent, str) else None
        for automation in automations:
            item = split_fee(automation.get("price") or 0)
            self._insert_purchase({
                "user_id": user_id,
                "automation_id": automation["id"],
                "price": money(item.amount),
                "platform_commission": money(item.platform_fee),
                "status": "pending",
                "stripe_payment_intent_id": payment_intent,
                "stripe_checkout_session_id": session.id,
            })
        logger.info(f"Cart checkout started: session={session.id} items={len(automations)} user={user_id}")

        return CartCheckoutResponse(
            session_id=session.id,
            checkout_url=session.url,
            amount=money(split.amount),
            currency="TRY",
            platform_fee=money(split.platform_fee),
            developer_earnings=money(split.developer_earnings),
            automation_ids=[a["id"] for a in automations],
        )

    def create_guest_order(self, body: GuestCheckoutRequest) -> GuestCheckoutResponse:
        """Pending purchases for a buyer without an account"""
        if not body.items:
            raise HTTPException(status_code=400, detail="Sepet boş olamaz")
        customer = body.customer_info
        if not customer or not customer.email or not customer.name or not customer.phone:
            raise HTTPException(status_code=400, detail="Müşteri bilgileri eksik")

        subtotal = sum(money(item.price) for item in body.items)
        tax = money(subtotal * settings.guest_tax_rate)
        total = money(subtotal + tax)

        purchased_at = datetime.now(timezone.utc).isoformat()
        rows = [{
            "automation_id": item.id,
            "user_id": None,
            "price": money(item.price),
            "status": "pending",
            "purchased_at": purchased_at,
            "guest_email": customer.email.strip().lower(),
            "guest_name": customer.name.strip(),
            "guest_phone": customer.phone.strip(),
            "guest_address": customer.address or None,
        } for item in body.items]

        try:
            orders = self.supabase.table("purchases").insert(rows).execute().data or []
        except Exception as e:
            logger.warning(f"Guest order insert failed, retrying without guest fields: {e}")
            basic_rows = [{k: v for k, v in row.items() if k not in GUEST_FIELDS} for row in rows]
            try:
                orders = self.supabase.table("purchases").insert(basic_rows).execute().data or []
            except Exception as retry_error:
                logger.error(f"Guest order insert failed: {retry_error}")
                raise HTTPException(
                    status_code=500,
                    detail="Sipariş oluşturulamadı. Lütfen veritabanı yapılandırmasını kontrol edin."
                )

        return GuestCheckoutResponse(
            success=True,
            order_id=orders[0].get("id") if orders else None,
            orders=orders,
            subtotal=money(subtotal),
            tax=tax,
            total=total,
            message="Sipariş başarıyla oluşturuldu",
        )
