from __future__ import annotations

from typing import Protocol


class Notifier(Protocol):
    """Outbound message channel. Raises ``DeliveryError`` when the message cannot be sent."""

    def send(self, to_address: str, subject: str, html_body: str) -> None:
        ...
