"""
Error taxonomy for the auction engine.

Every error is terminal and surfaced verbatim to the caller. An operation
that raises one of these has produced no writes and no outbound instructions.
"""

from typing import Any, Tuple


class AuctionError(Exception):
    """Base class for all auction engine errors."""

    message = "AuctionError"

    def __init__(self, message: str = ""):
        super().__init__(message or self.message)

    def _fields(self) -> Tuple[Any, ...]:
        return ()

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return self._fields() == other._fields()

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._fields()))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r})"


class StorageError(AuctionError):
    """Backing store is missing data it must have, or holds a corrupt record."""

    message = "StorageError"

    def __init__(self, msg: str):
        self.msg = msg
        super().__init__(msg)

    def _fields(self):
        return (self.msg,)


class InvalidMessage(AuctionError):
    """Inbound message failed schema validation."""

    message = "InvalidMessage"

    def __init__(self, msg: str):
        self.msg = msg
        super().__init__(f"InvalidMessage: {msg}")

    def _fields(self):
        return (self.msg,)


class InvalidExpiration(AuctionError):
    message = "Invalid expiration"


class InvalidStartTime(AuctionError):
    """Start time is not in the future of the current block."""

    def __init__(self, current_time: int, current_block: int):
        self.current_time = current_time
        self.current_block = current_block
        super().__init__(
            f"Invalid Start time. Current time: {current_time}. "
            f"Current block: {current_block}"
        )

    def _fields(self):
        return (self.current_time, self.current_block)


class Overflow(AuctionError):
    message = "Overflow"


class AuctionDoesNotExist(AuctionError):
    message = "AuctionDoesNotExist"


class AuctionCancelled(AuctionError):
    message = "AuctionCancelled"


class AuctionNotStarted(AuctionError):
    message = "AuctionNotStarted"


class AuctionEnded(AuctionError):
    message = "AuctionEnded"


class AuctionNotEnded(AuctionError):
    message = "AuctionNotEnded"


class AuctionAlreadyClaimed(AuctionError):
    message = "AuctionAlreadyClaimed"


class TokenOwnerCannotBid(AuctionError):
    message = "TokenOwnerCannotBid"


class HighestBidderCannotOutBid(AuctionError):
    message = "HighestBidderCannotOutBid"


class BidSmallerThanHighestBid(AuctionError):
    message = "BidSmallerThanHighestBid"


class InvalidFunds(AuctionError):
    """Bid funds are missing, mixed, of the wrong denom, or too small."""

    def __init__(self, msg: str):
        self.msg = msg
        super().__init__(f"InvalidFunds: {msg}")

    def _fields(self):
        return (self.msg,)


class Unauthorized(AuctionError):
    message = "Unauthorized"


__all__ = [
    "AuctionError",
    "StorageError",
    "InvalidMessage",
    "InvalidExpiration",
    "InvalidStartTime",
    "Overflow",
    "AuctionDoesNotExist",
    "AuctionCancelled",
    "AuctionNotStarted",
    "AuctionEnded",
    "AuctionNotEnded",
    "AuctionAlreadyClaimed",
    "TokenOwnerCannotBid",
    "HighestBidderCannotOutBid",
    "BidSmallerThanHighestBid",
    "InvalidFunds",
    "Unauthorized",
]
