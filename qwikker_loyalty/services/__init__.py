"""Qwikker Loyalty services.

- ledger: join, earn, redeem and redemption housekeeping
- program: program setup, lifecycle and the pass request queue
- reporting: member lists, redemptions and the business summary
- integrations: configured wallet pass and notification backends
"""

from qwikker_loyalty.services import integrations
from qwikker_loyalty.services import ledger
from qwikker_loyalty.services import program
from qwikker_loyalty.services import reporting

__all__ = ["integrations", "ledger", "program", "reporting"]
