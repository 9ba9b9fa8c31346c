"""
Shared plumbing for the loyalty JSON endpoints.

LoyaltyError and GateError raised by services are turned into
``{"error": message, "code": code, ...}`` bodies with a matching status.
"""

from __future__ import annotations

import json
import logging

from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from qwikker_loyalty.exceptions import LoyaltyError
from qwikker_loyalty.gates import GateError
from qwikker_loyalty.services.program import get_business_for_user

logger = logging.getLogger("qwikker_loyalty.api")

ERROR_STATUS = {
    "BUSINESS_NOT_FOUND": 404,
    "TIER_REQUIRED": 403,
    "PROGRAM_NOT_FOUND": 404,
    "PROGRAM_NOT_ACTIVE": 400,
    "PROGRAM_ENDED": 400,
    "PROGRAM_NOT_DRAFT": 400,
    "INVALID_PROGRAM": 400,
    "INCOMPLETE_PROGRAM": 400,
    "NO_LIVE_PROGRAM": 400,
    "MEMBERSHIP_NOT_FOUND": 404,
    "ALREADY_MEMBER": 409,
    "CITY_MISMATCH": 403,
    "INVALID_AMOUNT": 400,
    "REQUEST_NOT_FOUND": 404,
    "REQUEST_PENDING": 409,
    "NO_CHANGES": 400,
    "MISSING_CREDENTIALS": 400,
    "REDEMPTION_NOT_FOUND": 404,
    "IDEMPOTENCY_KEY_REUSED": 409,
    "INVALID_STATUS": 400,
}

GATE_STATUS = {
    "L1_ProgramTransition": 400,
    "L2_CounterToken": 403,
    "L3_EarnEligibility": 400,
    "L4_RewardThreshold": 400,
    "L5_EarnRateLimit": 429,
    "L6_IpVelocity": 429,
    "L7_ConsumeRateLimit": 429,
}


class ApiError(Exception):
    """Request-level failure (auth, tenancy, malformed input)."""

    def __init__(self, message: str, status: int = 400):
        self.message = message
        self.status = status
        super().__init__(message)


def error_response(message: str, status: int, extra: dict | None = None) -> JsonResponse:
    """JSON error body. Keys in ``extra`` never shadow the HTTP status."""
    return JsonResponse({"error": message, **(extra or {})}, status=status)


def require(data: dict, *names: str) -> list:
    """Values of required keys, or ApiError naming them all."""
    values = [data.get(name) for name in names]
    if any(value in (None, "") for value in values):
        raise ApiError(f"{', '.join(names)} {'is' if len(names) == 1 else 'are'} required")
    return values


@method_decorator(csrf_exempt, name="dispatch")
class LoyaltyApiView(View):
    """
    Base view for loyalty endpoints.

    Subclasses implement get/post/patch and read ``self.city``; errors from
    the service layer are mapped by ``dispatch``.
    """

    def dispatch(self, request, *args, **kwargs):
        try:
            self.city = getattr(request, "city", None)
            if not self.city:
                raise ApiError("Unknown city", status=400)
            self.authorize(request)
            return super().dispatch(request, *args, **kwargs)
        except ApiError as exc:
            return error_response(exc.message, exc.status)
        except LoyaltyError as exc:
            return error_response(
                exc.message, ERROR_STATUS.get(exc.code, 400), {"code": exc.code, **exc.data}
            )
        except GateError as exc:
            logger.info("%s rejected by %s: %s", request.path, exc.gate_name, exc.message)
            return error_response(
                exc.message,
                GATE_STATUS.get(exc.gate_name, 400),
                {"code": exc.gate_name, **exc.details},
            )
        except Exception:
            logger.exception("%s %s failed", request.method, request.path)
            return error_response("Internal server error", 500)

    def authorize(self, request):
        """Hook for auth checks. Raise ApiError to refuse."""

    def json_body(self) -> dict:
        try:
            data = json.loads(self.request.body or b"{}")
        except (json.JSONDecodeError, ValueError):
            raise ApiError("Invalid JSON")
        if not isinstance(data, dict):
            raise ApiError("Invalid JSON")
        return data


class BusinessApiView(LoyaltyApiView):
    """Endpoints for a logged-in business owner; sets ``self.business``."""

    def authorize(self, request):
        if not request.user.is_authenticated:
            raise ApiError("Unauthorized", status=401)
        self.business = get_business_for_user(request.user, self.city)


class StaffApiView(LoyaltyApiView):
    """City admin endpoints (``is_staff`` users)."""

    def authorize(self, request):
        if not request.user.is_authenticated:
            raise ApiError("Unauthorized", status=401)
        if not request.user.is_staff:
            raise ApiError("Forbidden", status=403)
