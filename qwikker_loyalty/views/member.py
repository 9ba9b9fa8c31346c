"""
Member-facing endpoints (wallet pass holders).

Flow for a visit:
    1. Member scans the till QR -> POST /loyalty/earn
    2. At the threshold -> POST /loyalty/redemption/consume
    3. The app polls GET /loyalty/redemption/status during the display window
"""

from django.http import JsonResponse
from django.utils import timezone
from django.utils.dateparse import parse_date

from qwikker_loyalty.services import ledger, reporting
from qwikker_loyalty.services.program import get_public_program
from qwikker_loyalty.utils import client_ip

from . import serializers
from .base import LoyaltyApiView, require


class JoinView(LoyaltyApiView):
    def post(self, request):
        data = self.json_body()
        public_id, wallet_pass_id = require(data, "public_id", "wallet_pass_id")

        try:
            date_of_birth = parse_date(str(data.get("date_of_birth") or ""))
        except ValueError:
            date_of_birth = None

        result = ledger.join(
            public_id,
            wallet_pass_id,
            self.city,
            first_name=data.get("first_name") or "",
            last_name=data.get("last_name") or "",
            email=data.get("email") or "",
            date_of_birth=date_of_birth,
        )
        if result.already_member:
            return JsonResponse(
                {"success": True, "membership_id": result.membership.pk, "already_member": True}
            )

        issued = result.issued_pass
        return JsonResponse(
            {
                "success": True,
                "membership_id": result.membership.pk,
                "walletpush_serial": issued.serial if issued else None,
                "apple_url": issued.apple_url if issued else None,
                "google_url": issued.google_url if issued else None,
                "has_wallet_pass": issued is not None,
            },
            status=201,
        )


class EarnView(LoyaltyApiView):
    def post(self, request):
        data = self.json_body()
        public_id, token, wallet_pass_id = require(data, "public_id", "token", "wallet_pass_id")

        result = ledger.earn(
            public_id,
            token,
            wallet_pass_id,
            self.city,
            ip=client_ip(request),
            amount=data.get("amount", 1),
            idempotency_key=data.get("idempotency_key") or request.headers.get("Idempotency-Key", ""),
        )

        body = {
            "success": result.success,
            "new_balance": result.new_balance,
            "threshold": result.threshold,
            "reward_unlocked": result.reward_unlocked,
            "proximity_message": result.proximity_message,
            "next_eligible_at": result.next_eligible_at,
        }
        if not result.success:
            body.update({"error": result.error, "reason": result.reason})
        if result.replayed:
            body["replayed"] = True
        return JsonResponse(body)


class ConsumeView(LoyaltyApiView):
    def post(self, request):
        data = self.json_body()
        membership_id, wallet_pass_id = require(data, "membership_id", "wallet_pass_id")

        result = ledger.redeem(
            membership_id,
            wallet_pass_id,
            self.city,
            idempotency_key=data.get("idempotency_key") or request.headers.get("Idempotency-Key", ""),
        )
        body = {
            "success": True,
            "redemption_id": result.redemption_id,
            "reward_description": result.reward_description,
            "consumed_at": result.consumed_at,
            "display_expires_at": result.display_expires_at,
            "new_balance": result.new_balance,
            "threshold": result.threshold,
        }
        if result.replayed:
            body["replayed"] = True
        return JsonResponse(body)


class RedemptionStatusView(LoyaltyApiView):
    def get(self, request):
        redemption_id, wallet_pass_id = require(request.GET, "redemption_id", "wallet_pass_id")
        redemption = ledger.redemption_status(redemption_id, wallet_pass_id)
        now = timezone.now()
        return JsonResponse(
            {
                "id": str(redemption.pk),
                "status": redemption.status,
                "reward_description": redemption.reward_description,
                "display_expires_at": redemption.display_expires_at,
                "display_active": redemption.is_display_active(now),
                "time_remaining_ms": redemption.time_remaining_ms(now),
            }
        )


class MyMembershipsView(LoyaltyApiView):
    def get(self, request):
        (wallet_pass_id,) = require(request.GET, "wallet_pass_id")
        memberships = reporting.memberships_for_wallet(wallet_pass_id, self.city)
        return JsonResponse({"memberships": [serializers.membership_card(m) for m in memberships]})


class PublicProgramView(LoyaltyApiView):
    def get(self, request):
        (business_id,) = require(request.GET, "business_id")
        program = get_public_program(business_id, self.city)
        return JsonResponse({"program": serializers.program_public(program)})
