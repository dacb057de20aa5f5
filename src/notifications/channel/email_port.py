"""E-mail port: the interface order confirmation mail goes through."""

from abc import ABC, abstractmethod


class EmailPort(ABC):
    """Abstract interface for e-mail dispatch adapters.

    Adapters report delivery problems in the result instead of raising for
    expected failures (refused recipient, relay down). The result is a dict
    with ``message_id``, ``status`` (``"sent"`` or ``"failed"``) and, on
    failure, ``error``.
    """

    @abstractmethod
    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> dict: ...

    def send_rendered(self, to: str, message: dict) -> dict:
        """Send the output of ``notifications.templates.render_template``."""
        return self.send(
            to=to,
            subject=message["subject"],
            body=message["body"],
            html_body=message.get("html_body"),
        )
