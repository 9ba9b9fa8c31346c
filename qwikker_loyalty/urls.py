"""
Loyalty API routes.

Include under /api/ in the host project:
    path("api/", include("qwikker_loyalty.urls")),
"""

from django.urls import path

from .views import business, member, staff

app_name = "qwikker_loyalty"

urlpatterns = [
    # Members
    path("loyalty/join", member.JoinView.as_view(), name="join"),
    path("loyalty/earn", member.EarnView.as_view(), name="earn"),
    path("loyalty/redemption/consume", member.ConsumeView.as_view(), name="consume"),
    path("loyalty/redemption/status", member.RedemptionStatusView.as_view(), name="redemption-status"),
    path("loyalty/me", member.MyMembershipsView.as_view(), name="me"),
    path("loyalty/program", member.PublicProgramView.as_view(), name="public-program"),
    # Business dashboard
    path("loyalty/program/mine", business.ProgramDetailView.as_view(), name="program-detail"),
    path("loyalty/program/upsert", business.ProgramUpsertView.as_view(), name="program-upsert"),
    path("loyalty/program/update", business.ProgramUpdateView.as_view(), name="program-update"),
    path("loyalty/program/pause", business.ProgramStatusView.as_view(action="pause"), name="program-pause"),
    path("loyalty/program/resume", business.ProgramStatusView.as_view(action="resume"), name="program-resume"),
    path("loyalty/program/end", business.ProgramStatusView.as_view(action="end"), name="program-end"),
    path("loyalty/program/rotate-token", business.RotateTokenView.as_view(), name="rotate-token"),
    path("loyalty/request/submit", business.RequestSubmitView.as_view(), name="request-submit"),
    path("loyalty/request/edit", business.RequestEditView.as_view(), name="request-edit"),
    path("loyalty/members", business.MembersView.as_view(), name="members"),
    path("loyalty/redemptions", business.RedemptionsView.as_view(), name="redemptions"),
    path("loyalty/redemption/flag", business.RedemptionFlagView.as_view(), name="redemption-flag"),
    path("loyalty/business-summary", business.BusinessSummaryView.as_view(), name="business-summary"),
    # City admin
    path("admin/loyalty/queue", staff.QueueView.as_view(), name="admin-queue"),
    path("admin/loyalty/programs", staff.ProgramsView.as_view(), name="admin-programs"),
    path("admin/loyalty/request/activate", staff.ActivateRequestView.as_view(), name="admin-activate"),
    path("admin/loyalty/request/reject", staff.RejectRequestView.as_view(), name="admin-reject"),
    path("admin/loyalty/program/status", staff.AdminProgramStatusView.as_view(), name="admin-program-status"),
]
