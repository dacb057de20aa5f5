"""E-mail channel adapters.

The fake adapter is used unless an SMTP host is configured; the chosen
adapter is built once at application startup and injected where needed.
"""

from notifications.channel.email_port import EmailPort
from notifications.channel.fake_email import FakeEmailAdapter


def build_email_adapter(
    smtp_host: str | None = None,
    smtp_port: int = 587,
    sender: str = "no-reply@boutique.example",
    username: str | None = None,
    password: str | None = None,
    use_tls: bool = True,
) -> EmailPort:
    if not smtp_host:
        return FakeEmailAdapter()

    from notifications.channel.smtp_email import SmtpEmailAdapter

    return SmtpEmailAdapter(
        host=smtp_host,
        port=smtp_port,
        sender=sender,
        username=username,
        password=password,
        use_tls=use_tls,
    )
