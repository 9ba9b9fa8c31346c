"""
Business dashboard endpoints.

All require a logged-in user who owns a Business in the request city.
"""

from django.http import HttpResponse, JsonResponse
from django.utils import timezone

from qwikker_loyalty.services import ledger, program as programs, reporting
from qwikker_loyalty.utils import parse_since_days

from . import serializers
from .base import BusinessApiView, require


class ProgramDetailView(BusinessApiView):
    def get(self, request):
        program = programs.get_program_for_business(self.business)
        return JsonResponse({"program": serializers.program_owner(program)})


class ProgramUpsertView(BusinessApiView):
    def post(self, request):
        program, created = programs.upsert_program(self.business, self.json_body())
        return JsonResponse(
            {"program": serializers.program_owner(program), "created": created},
            status=201 if created else 200,
        )


class ProgramUpdateView(BusinessApiView):
    def post(self, request):
        program = programs.update_program(self.business, self.json_body())
        return JsonResponse({"program": serializers.program_owner(program)})


class ProgramStatusView(BusinessApiView):
    """POST pause/resume/end. ``action`` is set in urls.py."""

    action = None

    def post(self, request):
        handler = {
            "pause": programs.pause_program,
            "resume": programs.resume_program,
            "end": programs.end_program,
        }[self.action]
        program = handler(self.business)
        return JsonResponse({"success": True, "status": program.status})


class RotateTokenView(BusinessApiView):
    def post(self, request):
        program = programs.rotate_counter_token(self.business)
        return JsonResponse(
            {
                "success": True,
                "counter_qr_token": program.counter_qr_token,
                "rotated_at": program.counter_qr_token_rotated_at,
            }
        )


class RequestSubmitView(BusinessApiView):
    def post(self, request):
        pass_request = programs.submit_request(self.business)
        return JsonResponse(
            {"success": True, "request_id": pass_request.pk, "status": "submitted"},
            status=201,
        )


class RequestEditView(BusinessApiView):
    def post(self, request):
        data = self.json_body()
        (changes,) = require(data, "changes")
        pass_request = programs.request_edit(
            self.business,
            changes if isinstance(changes, dict) else {},
            change_description=data.get("change_description") or "",
        )
        return JsonResponse(
            {
                "success": True,
                "request_id": pass_request.pk,
                "changed_fields": pass_request.changed_fields,
            },
            status=201,
        )


class MembersView(BusinessApiView):
    def get(self, request):
        program = programs.get_program_for_business(self.business)
        rows = reporting.member_rows(
            program,
            status=request.GET.get("status") or None,
            since_days=parse_since_days(request.GET.get("since")),
        )

        if request.GET.get("format") == "csv":
            response = HttpResponse(reporting.members_csv(rows), content_type="text/csv")
            filename = f"loyalty-members-{timezone.localdate().isoformat()}.csv"
            response["Content-Disposition"] = f'attachment; filename="{filename}"'
            return response

        return JsonResponse({"members": [serializers.member_row(row) for row in rows]})


class RedemptionsView(BusinessApiView):
    def get(self, request):
        items = reporting.recent_redemptions(
            self.business, since_days=parse_since_days(request.GET.get("since"))
        )
        now = timezone.now()
        return JsonResponse({"redemptions": [serializers.redemption(item, now) for item in items]})


class RedemptionFlagView(BusinessApiView):
    def post(self, request):
        data = self.json_body()
        (redemption_id,) = require(data, "redemption_id")
        redemption = ledger.flag_redemption(self.business, redemption_id, data.get("reason") or "")
        return JsonResponse({"success": True, "redemption": serializers.redemption(redemption)})


class BusinessSummaryView(BusinessApiView):
    def get(self, request):
        program = programs.get_program_for_business(self.business)
        summary = reporting.business_summary(program)
        return JsonResponse(
            {
                "summary": {
                    "active_members": summary.active_members,
                    "visits_this_month": summary.visits_this_month,
                    "redemptions_this_month": summary.redemptions_this_month,
                    "estimated_value": summary.estimated_value,
                    "avg_visits_per_member": summary.avg_visits_per_member,
                    "members_near_reward": summary.members_near_reward,
                    "flagged_redemptions": summary.flagged_redemptions,
                },
                "program_status": program.status,
            }
        )
