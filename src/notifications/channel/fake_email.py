"""Fake e-mail adapter: records outgoing mail for tests and local runs."""

from uuid import uuid4

from notifications.channel.email_port import EmailPort


class FakeEmailAdapter(EmailPort):
    """Keeps every message in memory instead of delivering it."""

    def __init__(self):
        self.sent_emails: list[dict] = []
        self.failed_attempts: list[dict] = []
        self.should_succeed = True
        self.should_raise = False
        self.failure_reason = "Email delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Email delivery failed", should_raise=False):
        """Make subsequent sends fail, either with a failed status or by raising ConnectionError."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.should_raise = should_raise

    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> dict:
        record = {"to": to, "subject": subject, "body": body, "html_body": html_body}

        if self.should_raise:
            self.failed_attempts.append(record)
            raise ConnectionError(self.failure_reason)
        if not self.should_succeed:
            self.failed_attempts.append(record)
            return {"message_id": None, "status": "failed", "error": self.failure_reason}

        message_id = f"email-{uuid4().hex[:12]}"
        self.sent_emails.append({"message_id": message_id, **record})
        return {"message_id": message_id, "status": "sent"}

    def reset(self):
        """Forget recorded mail and restore default behaviour."""
        self.sent_emails.clear()
        self.failed_attempts.clear()
        self.should_succeed = True
        self.should_raise = False
        self.failure_reason = "Email delivery failed"
