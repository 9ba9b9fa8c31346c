"""In-memory backends that record calls instead of hitting vendors."""

from qwikker_loyalty.protocols import IssuedPass


class FakeWalletBackend:
    issued: list = []
    updates: list = []
    fail = False

    @classmethod
    def reset(cls):
        cls.issued = []
        cls.updates = []
        cls.fail = False

    def issue_pass(self, program, holder, fields):
        if self.fail:
            return None
        serial = f"SER-{len(self.issued) + 1:04d}"
        self.issued.append({"program": program.public_id, "holder": holder, "fields": fields})
        return IssuedPass(
            serial=serial,
            apple_url=f"https://passes.example/apple/{serial}",
            google_url=f"https://passes.example/google/{serial}",
        )

    def update_fields(self, program, serial, fields):
        self.updates.append({"serial": serial, "fields": fields})
        return not self.fail


class FakeNotifier:
    sent: list = []

    @classmethod
    def reset(cls):
        cls.sent = []

    def notify(self, notification):
        self.sent.append(notification)
        return True
