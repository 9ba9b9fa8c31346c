"""City admin endpoints: provisioning queue and program status."""

from django.http import JsonResponse

from qwikker_loyalty.services import program as programs

from . import serializers
from .base import StaffApiView, require


class QueueView(StaffApiView):
    def get(self, request):
        requests = programs.pending_requests(self.city)
        return JsonResponse({"requests": [serializers.pass_request(item) for item in requests]})


class ProgramsView(StaffApiView):
    def get(self, request):
        items = programs.live_programs(self.city)
        return JsonResponse({"programs": [serializers.program_admin(item) for item in items]})


class ActivateRequestView(StaffApiView):
    def post(self, request):
        data = self.json_body()
        (request_id,) = require(data, "request_id")
        pass_request = programs.activate_request(request_id, data, request.user, self.city)
        return JsonResponse({"success": True, "request": serializers.pass_request(pass_request)})


class RejectRequestView(StaffApiView):
    def post(self, request):
        data = self.json_body()
        (request_id,) = require(data, "request_id")
        pass_request = programs.reject_request(
            request_id, data.get("reason") or "", request.user, self.city
        )
        return JsonResponse({"success": True, "request": serializers.pass_request(pass_request)})


class AdminProgramStatusView(StaffApiView):
    def patch(self, request):
        data = self.json_body()
        program_id, status = require(data, "program_id", "status")
        program = programs.admin_set_status(program_id, status, self.city)
        return JsonResponse({"success": True, "status": program.status})

    post = patch
