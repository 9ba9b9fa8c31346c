"""Program service - setup, lifecycle and the pass request queue.

Status moves go through Gates.program_transition (L1). Each move emits
program_status_changed once the transaction has committed.
"""

import copy
import logging

from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.utils import timezone

from qwikker_loyalty.conf import loyalty_settings
from qwikker_loyalty.exceptions import LoyaltyError
from qwikker_loyalty.gates import Gates
from qwikker_loyalty.models import (
    DESIGN_SPEC_FIELDS,
    LIVE_EDITABLE_FIELDS,
    Business,
    LoyaltyMembership,
    LoyaltyProgram,
    PassRequest,
    ProgramStatus,
    ProgramType,
    RequestStatus,
    RequestType,
)
from qwikker_loyalty.signals import pass_request_submitted, program_status_changed
from qwikker_loyalty.utils import generate_counter_qr_token, generate_public_id

logger = logging.getLogger(__name__)

CREDENTIAL_FIELDS = (
    "walletpush_template_id",
    "walletpush_api_key",
    "walletpush_pass_type_id",
)

LIVE_STATUSES = (ProgramStatus.ACTIVE, ProgramStatus.PAUSED)


# =============================================================================
# Lookups
# =============================================================================


def get_business_for_user(user, city: str) -> Business:
    """
    Get the business owned by a logged-in user in the tenant city.

    Raises:
        LoyaltyError: BUSINESS_NOT_FOUND
    """
    try:
        return Business.objects.get(user=user, city=city)
    except Business.DoesNotExist:
        raise LoyaltyError("BUSINESS_NOT_FOUND")


def get_program_for_business(business: Business) -> LoyaltyProgram:
    """
    Raises:
        LoyaltyError: PROGRAM_NOT_FOUND
    """
    try:
        return LoyaltyProgram.objects.select_related("business").get(business=business)
    except LoyaltyProgram.DoesNotExist:
        raise LoyaltyError("PROGRAM_NOT_FOUND")


def get_public_program(business_id, city: str) -> LoyaltyProgram:
    """
    Get a business's active program for the public business page.

    Raises:
        LoyaltyError: PROGRAM_NOT_FOUND
    """
    try:
        return LoyaltyProgram.objects.select_related("business").get(
            business_id=business_id, city=city, status=ProgramStatus.ACTIVE
        )
    except (LoyaltyProgram.DoesNotExist, ValueError, TypeError):
        raise LoyaltyError("PROGRAM_NOT_FOUND")


# =============================================================================
# Setup
# =============================================================================


def upsert_program(business: Business, data: dict) -> tuple[LoyaltyProgram, bool]:
    """
    Create the business's program, or update it.

    Draft programs accept every design field. Once submitted (or live) only
    LIVE_EDITABLE_FIELDS are applied; everything else needs an edit request.

    Args:
        business: Owning business (must hold the required tier)
        data: Field values keyed by model field name; unknown keys ignored

    Returns:
        Tuple of (LoyaltyProgram, created: bool)

    Raises:
        LoyaltyError: TIER_REQUIRED, PROGRAM_ENDED, INVALID_PROGRAM
    """
    if business.tier != loyalty_settings.REQUIRED_TIER:
        raise LoyaltyError("TIER_REQUIRED", tier=business.tier)

    with transaction.atomic():
        program = (
            LoyaltyProgram.objects.select_for_update()
            .select_related("business")
            .filter(business=business)
            .first()
        )
        created = program is None
        if created:
            program = LoyaltyProgram(
                business=business,
                city=business.city,
                public_id=generate_public_id(),
                counter_qr_token=generate_counter_qr_token(),
                timezone=loyalty_settings.DEFAULT_TIMEZONE,
                logo_url=business.logo,
            )
            fields = DESIGN_SPEC_FIELDS
        elif program.status == ProgramStatus.DRAFT:
            fields = DESIGN_SPEC_FIELDS
        elif program.status == ProgramStatus.ENDED:
            raise LoyaltyError("PROGRAM_ENDED")
        else:
            fields = LIVE_EDITABLE_FIELDS

        _assign(program, data, fields)
        _validate(program)
        program.save()

    logger.info(
        "Program %s %s for business %s",
        program.public_id,
        "created" if created else "updated",
        business.pk,
    )
    return program, created


def update_program(business: Business, data: dict) -> LoyaltyProgram:
    """
    Self-service update of the live-safe fields.

    Raises:
        LoyaltyError: PROGRAM_NOT_FOUND, PROGRAM_ENDED, INVALID_PROGRAM
    """
    with transaction.atomic():
        program = get_program_for_business(business)
        if program.status == ProgramStatus.ENDED:
            raise LoyaltyError("PROGRAM_ENDED")
        _assign(program, data, LIVE_EDITABLE_FIELDS)
        _validate(program)
        program.save()
    return program


def _assign(program: LoyaltyProgram, data: dict, fields) -> list[str]:
    changed = []
    for name in fields:
        if name not in data:
            continue
        value = data[name]
        field = program._meta.get_field(name)
        if value is None and isinstance(field, (models.CharField, models.TextField)):
            value = ""
        setattr(program, name, value)
        changed.append(name)
    return changed


def _validate(program: LoyaltyProgram, exclude=None) -> None:
    try:
        program.full_clean(exclude=exclude)
    except ValidationError as e:
        raise LoyaltyError("INVALID_PROGRAM", errors=e.message_dict)


# =============================================================================
# Lifecycle
# =============================================================================


def set_status(program: LoyaltyProgram, target: str) -> LoyaltyProgram:
    """
    Move a program to ``target`` through the L1 transition gate.

    Raises:
        GateError: L1_ProgramTransition
    """
    with transaction.atomic():
        program = LoyaltyProgram.objects.select_for_update().select_related("business").get(
            pk=program.pk
        )
        previous = _transition(program, target)
        program.save(update_fields=["status", "updated_at"])
        if target == ProgramStatus.ENDED:
            _reject_pending_requests(program)

    _status_changed(program, previous)
    return program


def pause_program(business: Business) -> LoyaltyProgram:
    return set_status(get_program_for_business(business), ProgramStatus.PAUSED)


def resume_program(business: Business) -> LoyaltyProgram:
    return set_status(get_program_for_business(business), ProgramStatus.ACTIVE)


def end_program(business: Business) -> LoyaltyProgram:
    """
    End the program. Irreversible: members keep their history but can no longer earn.

    Pending pass requests for the program are rejected.
    """
    return set_status(get_program_for_business(business), ProgramStatus.ENDED)


def rotate_counter_token(business: Business) -> LoyaltyProgram:
    """
    Issue a new till QR token.

    The old token keeps working for TOKEN_GRACE_WINDOW_MINUTES.

    Raises:
        LoyaltyError: PROGRAM_NOT_FOUND, PROGRAM_ENDED
    """
    with transaction.atomic():
        program = LoyaltyProgram.objects.select_for_update().filter(business=business).first()
        if program is None:
            raise LoyaltyError("PROGRAM_NOT_FOUND")
        if program.status == ProgramStatus.ENDED:
            raise LoyaltyError("PROGRAM_ENDED")

        program.previous_counter_qr_token = program.counter_qr_token
        program.counter_qr_token = generate_counter_qr_token()
        program.counter_qr_token_rotated_at = timezone.now()
        program.save(
            update_fields=[
                "previous_counter_qr_token",
                "counter_qr_token",
                "counter_qr_token_rotated_at",
                "updated_at",
            ]
        )

    logger.info("Counter token rotated for program %s", program.public_id)
    return program


def _reject_pending_requests(program: LoyaltyProgram) -> None:
    rejected = PassRequest.objects.filter(program=program, status=RequestStatus.SUBMITTED).update(
        status=RequestStatus.REJECTED,
        rejection_reason="Program ended",
        reviewed_at=timezone.now(),
    )
    if rejected:
        logger.info("Rejected %s pending request(s) for ended program %s", rejected, program.public_id)


def _transition(program: LoyaltyProgram, target: str) -> str:
    Gates.program_transition(program.status, target)
    previous = program.status
    program.status = target
    return previous


def _status_changed(program: LoyaltyProgram, previous: str) -> None:
    logger.info("Program %s: %s -> %s", program.public_id, previous, program.status)
    program_status_changed.send(
        sender=LoyaltyProgram,
        program=program,
        previous=previous,
        current=program.status,
    )


# =============================================================================
# Pass requests
# =============================================================================


def submit_request(business: Business) -> PassRequest:
    """
    Submit a draft program for wallet card provisioning.

    Raises:
        LoyaltyError: PROGRAM_NOT_FOUND, PROGRAM_NOT_DRAFT, INCOMPLETE_PROGRAM
    """
    with transaction.atomic():
        try:
            program = LoyaltyProgram.objects.select_for_update().select_related("business").get(
                business=business
            )
        except LoyaltyProgram.DoesNotExist:
            raise LoyaltyError("PROGRAM_NOT_FOUND")

        if program.status != ProgramStatus.DRAFT:
            raise LoyaltyError(
                "PROGRAM_NOT_DRAFT",
                f"Program is already {program.status}",
                status=program.status,
            )
        if not program.reward_threshold or not program.reward_description:
            raise LoyaltyError("INCOMPLETE_PROGRAM")

        pass_request = PassRequest.objects.create(
            business=business,
            program=program,
            design_spec=program.design_spec(),
            request_type=RequestType.NEW,
        )
        previous = _transition(program, ProgramStatus.SUBMITTED)
        program.save(update_fields=["status", "updated_at"])

    _status_changed(program, previous)
    pass_request_submitted.send(sender=PassRequest, pass_request=pass_request)
    return pass_request


def request_edit(business: Business, changes: dict, change_description: str = "") -> PassRequest:
    """
    Ask the admin to change design fields of a live card.

    Args:
        business: Owning business
        changes: Proposed values keyed by design field; unknown keys and
            None values are ignored
        change_description: Free text shown to the reviewer

    Returns:
        The new edit PassRequest

    Raises:
        LoyaltyError: NO_LIVE_PROGRAM, REQUEST_PENDING, NO_CHANGES, INVALID_PROGRAM
    """
    with transaction.atomic():
        program = (
            LoyaltyProgram.objects.select_for_update()
            .select_related("business")
            .filter(business=business, status__in=LIVE_STATUSES)
            .first()
        )
        if program is None:
            raise LoyaltyError("NO_LIVE_PROGRAM")

        if PassRequest.objects.filter(
            program=program,
            request_type=RequestType.EDIT,
            status=RequestStatus.SUBMITTED,
        ).exists():
            raise LoyaltyError("REQUEST_PENDING")

        proposed = {
            name: value
            for name, value in (changes or {}).items()
            if name in DESIGN_SPEC_FIELDS and value is not None
        }
        if not proposed:
            raise LoyaltyError("NO_CHANGES")

        candidate = copy.copy(program)
        _assign(candidate, proposed, DESIGN_SPEC_FIELDS)
        try:
            candidate.clean_fields(
                exclude=[f.name for f in candidate._meta.fields if f.name not in proposed]
            )
        except ValidationError as e:
            raise LoyaltyError("INVALID_PROGRAM", errors=e.message_dict)

        snapshot = candidate.design_spec()
        snapshot["_change_description"] = change_description or ""
        snapshot["_changed_fields"] = sorted(proposed)

        pass_request = PassRequest.objects.create(
            business=business,
            program=program,
            design_spec=snapshot,
            request_type=RequestType.EDIT,
        )

    logger.info(
        "Edit request %s for program %s: %s",
        pass_request.pk,
        program.public_id,
        snapshot["_changed_fields"],
    )
    pass_request_submitted.send(sender=PassRequest, pass_request=pass_request)
    return pass_request


# =============================================================================
# Admin
# =============================================================================


def pending_requests(city: str) -> list[PassRequest]:
    """Submitted requests in the city, oldest first."""
    return list(
        PassRequest.objects.select_related("business", "program")
        .filter(business__city=city, status=RequestStatus.SUBMITTED)
        .order_by("created_at")
    )


def live_programs(city: str) -> list[LoyaltyProgram]:
    """Active and paused programs in the city, with member counts."""
    return list(
        LoyaltyProgram.objects.select_related("business")
        .filter(city=city, status__in=LIVE_STATUSES)
        .annotate(member_count=models.Count("memberships"))
        .order_by("business__business_name")
    )


def _lock_request(request_id, city: str) -> PassRequest:
    try:
        return PassRequest.objects.select_for_update().get(
            pk=request_id,
            business__city=city,
            status=RequestStatus.SUBMITTED,
        )
    except (PassRequest.DoesNotExist, ValueError, TypeError):
        raise LoyaltyError("REQUEST_NOT_FOUND")


def activate_request(request_id, credentials: dict, reviewer, city: str) -> PassRequest:
    """
    Approve a pass request with the WalletPush credentials set up by the admin.

    New requests activate the program; edit requests apply the changed
    fields from the snapshot. An edit that switches stamps and points moves
    every member's balance to the new field.

    Raises:
        LoyaltyError: REQUEST_NOT_FOUND, MISSING_CREDENTIALS, PROGRAM_ENDED
        GateError: L1_ProgramTransition
    """
    values = {name: str(credentials.get(name) or "").strip() for name in CREDENTIAL_FIELDS}
    if not all(values.values()):
        raise LoyaltyError("MISSING_CREDENTIALS")

    previous = None
    with transaction.atomic():
        pass_request = _lock_request(request_id, city)
        program = LoyaltyProgram.objects.select_for_update().select_related("business").get(
            pk=pass_request.program_id
        )

        for name, value in values.items():
            setattr(program, name, value)

        if pass_request.request_type == RequestType.NEW:
            previous = _transition(program, ProgramStatus.ACTIVE)
        else:
            if not program.is_live:
                raise LoyaltyError("PROGRAM_ENDED")
            previous_type = program.type
            for name in pass_request.changed_fields:
                if name in DESIGN_SPEC_FIELDS and name in pass_request.design_spec:
                    setattr(program, name, pass_request.design_spec[name])
            if program.type != previous_type:
                _carry_balances(program, previous_type)
        program.save()

        pass_request.status = RequestStatus.ISSUED
        pass_request.reviewed_by = reviewer
        pass_request.reviewed_at = timezone.now()
        pass_request.save(update_fields=["status", "reviewed_by", "reviewed_at"])

    if previous is not None:
        _status_changed(program, previous)
    logger.info("Pass request %s issued for program %s", pass_request.pk, program.public_id)
    return pass_request


def _carry_balances(program: LoyaltyProgram, previous_type: str) -> None:
    source = "points_balance" if previous_type == ProgramType.POINTS else "stamps_balance"
    target = program.balance_field
    # Both assignments read the row as it was before the update.
    moved = LoyaltyMembership.objects.filter(program=program).update(
        **{target: models.F(source), source: 0}
    )
    logger.warning(
        "Program %s switched %s -> %s, moved %s member balance(s)",
        program.public_id,
        previous_type,
        program.type,
        moved,
    )


def reject_request(request_id, reason: str, reviewer, city: str) -> PassRequest:
    """
    Reject a pass request. A rejected new card goes back to draft.

    Raises:
        LoyaltyError: REQUEST_NOT_FOUND
    """
    previous = None
    with transaction.atomic():
        pass_request = _lock_request(request_id, city)
        program = LoyaltyProgram.objects.select_for_update().select_related("business").get(
            pk=pass_request.program_id
        )

        if pass_request.request_type == RequestType.NEW and program.status == ProgramStatus.SUBMITTED:
            previous = _transition(program, ProgramStatus.DRAFT)
            program.save(update_fields=["status", "updated_at"])

        pass_request.status = RequestStatus.REJECTED
        pass_request.rejection_reason = reason or ""
        pass_request.reviewed_by = reviewer
        pass_request.reviewed_at = timezone.now()
        pass_request.save(
            update_fields=["status", "rejection_reason", "reviewed_by", "reviewed_at"]
        )

    if previous is not None:
        _status_changed(program, previous)
    logger.info("Pass request %s rejected", pass_request.pk)
    return pass_request


def admin_set_status(program_id, status: str, city: str) -> LoyaltyProgram:
    """
    Staff toggle between active and paused.

    Raises:
        LoyaltyError: INVALID_STATUS, PROGRAM_NOT_FOUND
        GateError: L1_ProgramTransition
    """
    if status not in LIVE_STATUSES:
        raise LoyaltyError("INVALID_STATUS", status=status)
    try:
        program = LoyaltyProgram.objects.get(pk=program_id, city=city)
    except (LoyaltyProgram.DoesNotExist, ValueError, TypeError):
        raise LoyaltyError("PROGRAM_NOT_FOUND")
    return set_status(program, status)
