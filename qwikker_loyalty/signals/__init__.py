"""
Qwikker Loyalty signals - public event API.

Emitted signals (always after the database transaction commits):
- membership_joined: Emitted by services.ledger.join()
- stamp_earned: Emitted by services.ledger.earn()
- reward_redeemed: Emitted by services.ledger.redeem()
- program_status_changed: Emitted by services.program on every status move
- pass_request_submitted: Emitted by services.program.submit_request() / request_edit()
"""

from django.dispatch import Signal

membership_joined = Signal()  # sender=LoyaltyMembership, membership
stamp_earned = Signal()  # sender=LoyaltyMembership, membership, program, reward_unlocked
reward_redeemed = Signal()  # sender=Redemption, redemption, membership, program
program_status_changed = Signal()  # sender=LoyaltyProgram, program, previous, current
pass_request_submitted = Signal()  # sender=PassRequest, pass_request
