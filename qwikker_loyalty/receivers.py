"""
Signal receivers: wallet pass updates and admin notices.

Connected in QwikkerLoyaltyConfig.ready(). Receivers run after the ledger
transaction has committed; vendor failures are logged by the adapters and
never reach the member's request.
"""

import logging

from django.dispatch import receiver

from qwikker_loyalty.models import RequestType
from qwikker_loyalty.protocols import Notification
from qwikker_loyalty.services.integrations import get_notifier, get_wallet_backend
from qwikker_loyalty.signals import pass_request_submitted, reward_redeemed, stamp_earned
from qwikker_loyalty.utils import pass_field_values

logger = logging.getLogger(__name__)


def _push(program, membership, fields: dict[str, str]) -> bool:
    if not membership.walletpush_serial or not program.has_wallet_credentials:
        return False
    backend = get_wallet_backend()
    if backend is None:
        return False
    ok = backend.update_fields(program, membership.walletpush_serial, fields)
    if not ok:
        logger.warning("Wallet pass update failed for membership %s", membership.pk)
    return ok


@receiver(stamp_earned)
def update_pass_on_earn(sender, membership, program, reward_unlocked, **kwargs):
    balance = membership.balance
    if reward_unlocked:
        fields = {
            "Points": str(balance),
            "Status": "Reward Available!",
            "Last_Message": (
                f"You earned a free {program.reward_description} "
                f"at {program.business.business_name}!"
            ),
        }
    else:
        values = pass_field_values(program, balance)
        fields = {"Points": values["Points"], "Status": values["Status"]}
    _push(program, membership, fields)


@receiver(reward_redeemed)
def update_pass_on_redeem(sender, redemption, membership, program, **kwargs):
    _push(
        program,
        membership,
        {
            "Points": str(membership.balance),
            "Status": "Reward Redeemed!",
            "Last_Message": f"You redeemed {redemption.reward_description}!",
        },
    )


@receiver(pass_request_submitted)
def notify_admins_of_request(sender, pass_request, **kwargs):
    notifier = get_notifier()
    if notifier is None:
        return

    business = pass_request.business
    snapshot = pass_request.design_spec
    if pass_request.request_type == RequestType.EDIT:
        fields = ", ".join(pass_request.changed_fields)
        notification = Notification(
            city=business.city,
            business_name=business.business_name,
            subject="Loyalty Card Edit Request",
            message=(
                f"{business.business_name} requested changes to their loyalty card. "
                f"Fields: {fields}. Note: \"{snapshot.get('_change_description', '')}\""
            ),
            program_id=pass_request.program.public_id,
            event_type="edit_request",
        )
    else:
        notification = Notification(
            city=business.city,
            business_name=business.business_name,
            subject="New Loyalty Card Request",
            message=(
                f"{business.business_name} submitted a loyalty card for provisioning. "
                f"Reward: \"{snapshot.get('reward_description', '')}\" "
                f"({snapshot.get('reward_threshold')} {snapshot.get('stamp_label', '')})."
            ),
            program_id=pass_request.program.public_id,
        )
    notifier.notify(notification)
