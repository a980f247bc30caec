"""
Stripe webhook processing.

Delivery is at-least-once, so the handlers only move purchases out of
`pending` and count sales for rows they actually moved.
"""

from supabase import Client
from magaza.config import settings
from magaza.modules.payments.fees import to_decimal, money
from magaza.modules.payments.service import configure_stripe
from magaza.modules.payments.schemas import WebhookResponse
from typing import List, Dict, Any
from datetime import datetime, timezone
from fastapi import HTTPException
import stripe
import logging

logger = logging.getLogger(__name__)


def automation_ids_from_metadata(metadata: Dict[str, Any]) -> List[str]:
    """Cart payments carry `automation_ids` (comma separated), single payments `automation_id`"""
    csv = metadata.get("automation_ids")
    if csv:
        return [part.strip() for part in csv.split(",") if part.strip()]
    single = metadata.get("automation_id")
    return [single] if single else []


class WebhookService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def construct_event(self, payload: bytes, signature: str):
        if not settings.stripe_webhook_configured:
            raise HTTPException(status_code=500, detail="Stripe yapılandırması eksik")
        configure_stripe()
        try:
            return stripe.Webhook.construct_event(
                payload=payload, sig_header=signature, secret=settings.stripe_webhook_secret
            )
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.error(f"Webhook signature verification failed: {e}")
            raise HTTPException(status_code=400, detail="Webhook signature verification failed")

    def handle(self, payload: bytes, signature: str) -> WebhookResponse:
        event = self.construct_event(payload, signature)
        event_type = event["type"]
        obj = event["data"]["object"]

        if event_type == "payment_intent.succeeded":
            self.payment_succeeded(obj)
        elif event_type == "payment_intent.payment_failed":
            self.payment_failed(obj)
        elif event_type == "checkout.session.completed":
            self.checkout_completed(obj)
        elif event_type == "account.updated":
            self.account_updated(obj)
        else:
            logger.info(f"Ignoring webhook event {event_type}")

        return WebhookResponse(received=True, event=event_type)

    def _purchases_for_intent(self, intent_id: str) -> List[Dict[str, Any]]:
        try:
            result = self.supabase.table("purchases")\
                .select("id, automation_id, status, platform_commission")\
                .eq("stripe_payment_intent_id", intent_id)\
                .execute()
        except Exception as e:
            logger.error(f"Purchase select error for {intent_id}: {e}")
            return []
        return result.data or []

    def _purchases_for_session_of(self, intent_id: str) -> List[Dict[str, Any]]:
        """Cart purchases are created before Stripe assigns the intent; find them by session"""
        try:
            sessions = stripe.checkout.Session.list(payment_intent=intent_id, limit=1)
        except stripe.StripeError as e:
            logger.error(f"Checkout session lookup failed for {intent_id}: {e}")
            return []
        if not sessions.data:
            return []
        session_id = sessions.data[0].id
        try:
            result = self.supabase.table("purchases")\
                .update({"stripe_payment_intent_id": intent_id})\
                .eq("stripe_checkout_session_id", session_id)\
                .execute()
        except Exception as e:
            logger.error(f"Purchase link error for session {session_id}: {e}")
            return []
        return result.data or []

    def payment_succeeded(self, intent: Dict[str, Any]):
        intent_id = intent["id"]
        metadata = intent.get("metadata") or {}

        purchases = self._purchases_for_intent(intent_id)
        if not purchases and metadata.get("automation_ids"):
            purchases = self._purchases_for_session_of(intent_id)

        completed_at = datetime.now(timezone.utc).isoformat()
        transitioned = 0
        for purchase in purchases:
            if purchase.get("status") != "pending":
                continue
            try:
                updated = self.supabase.table("purchases")\
                    .update({"status": "completed", "completed_at": completed_at})\
                    .eq("id", purchase["id"])\
                    .eq("status", "pending")\
                    .execute()
            except Exception as e:
                logger.error(f"Purchase update error for {purchase['id']}: {e}")
                continue
            if not updated.data:
                continue
            transitioned += 1

            commission = purchase.get("platform_commission")
            if commission is None:
                commission = metadata.get("platform_fee") or 0
            try:
                self.supabase.table("platform_earnings").insert({
                    "purchase_id": purchase["id"],
                    "amount": money(to_decimal(commission)),
                    "currency": "try",
                    "status": "completed",
                }).execute()
            except Exception as e:
                logger.error(f"Platform earnings error for {purchase['id']}: {e}")

        if purchases and not transitioned:
            logger.info(f"Payment {intent_id} already processed, skipping sales counters")
            return

        for automation_id in automation_ids_from_metadata(metadata):
            try:
                self.supabase.rpc("increment_automation_sales", {"automation_id": automation_id}).execute()
            except Exception as e:
                logger.error(f"Automation sales update error for {automation_id}: {e}")

        logger.info(f"Payment succeeded: {intent_id}, amount: {(intent.get('amount') or 0) / 100} TRY")

    def payment_failed(self, intent: Dict[str, Any]):
        try:
            self.supabase.table("purchases")\
                .update({"status": "failed"})\
                .eq("stripe_payment_intent_id", intent["id"])\
                .eq("status", "pending")\
                .execute()
        except Exception as e:
            logger.error(f"Purchase update error for {intent['id']}: {e}")
        logger.info(f"Payment failed: {intent['id']}")

    def checkout_completed(self, session: Dict[str, Any]):
        intent_id = session.get("payment_intent")
        if not intent_id:
            return
        try:
            self.supabase.table("purchases")\
                .update({"stripe_payment_intent_id": intent_id})\
                .eq("stripe_checkout_session_id", session["id"])\
                .execute()
        except Exception as e:
            logger.error(f"Purchase link error for session {session['id']}: {e}")

    def account_updated(self, account: Dict[str, Any]):
        try:
            self.supabase.table("stripe_accounts")\
                .update({
                    "charges_enabled": account.get("charges_enabled"),
                    "payouts_enabled": account.get("payouts_enabled"),
                    "details_submitted": account.get("details_submitted"),
                })\
                .eq("stripe_account_id", account["id"])\
                .execute()
        except Exception as e:
            logger.error(f"Stripe account update error for {account['id']}: {e}")
        logger.info(f"Account updated: {account['id']}")
