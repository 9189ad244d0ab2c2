"""Outbound webhook payload built from a donation event."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pixgg_listener.status.model import isoformat, utc_now

if TYPE_CHECKING:
    from datetime import datetime

# Donation event field -> payload key
FIELD_MAP: tuple[tuple[str, str], ...] = (
    ("TransactionId", "transactionId"),
    ("DonatorNickname", "donatorNickname"),
    ("TotalAmount", "totalAmount"),
    ("DonatorMessage", "donatorMessage"),
    ("AWSPublicLink", "awsPublicLink"),
    ("AudioDuration", "audioDuration"),
)


@dataclass(frozen=True)
class OutboundPayload:
    """JSON body POSTed to the webhook target.

    ``timestamp`` is the delivery attempt time, not the donation time.
    ``original_event`` carries the event exactly as received.
    """

    transaction_id: Any
    donator_nickname: Any
    total_amount: Any
    donator_message: Any
    aws_public_link: Any
    audio_duration: Any
    timestamp: datetime
    original_event: Any

    @classmethod
    def from_event(cls, event: Any, *, now: datetime | None = None) -> OutboundPayload:
        data = event if isinstance(event, dict) else {}
        return cls(
            transaction_id=data.get("TransactionId"),
            donator_nickname=data.get("DonatorNickname"),
            total_amount=data.get("TotalAmount"),
            donator_message=data.get("DonatorMessage"),
            aws_public_link=data.get("AWSPublicLink"),
            audio_duration=data.get("AudioDuration"),
            timestamp=now or utc_now(),
            original_event=event,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the webhook's camelCase keys."""
        return {
            "transactionId": self.transaction_id,
            "donatorNickname": self.donator_nickname,
            "totalAmount": self.total_amount,
            "donatorMessage": self.donator_message,
            "awsPublicLink": self.aws_public_link,
            "audioDuration": self.audio_duration,
            "timestamp": isoformat(self.timestamp),
            "originalEvent": self.original_event,
        }
