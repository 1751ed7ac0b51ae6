"""
Expiration - Time model for auction windows.

Conceptual Background:
---------------------
An auction window is bounded by two instants. An instant is one of:

1. **AtTime**: a block time, in nanoseconds since the epoch
2. **AtHeight**: a block height
3. **Never**: an instant that is never reached

The execution context (`BlockInfo`) carries both a time and a height, so any
instant can be checked against it. Two instants are only ordered when they are
the same variant; the engine only ever compares an instant against the current
block expressed in the same variant.

External time inputs arrive as whole milliseconds and are scaled into the
nanosecond representation, which is bounded to an unsigned 64-bit value.
"""

from dataclasses import dataclass
from enum import Enum
from functools import total_ordering
from typing import Optional

from auctionhouse.core.errors import InvalidExpiration

# =============================================================================
# Constants
# =============================================================================

NANOS_PER_MILLI = 1_000_000
NANOS_PER_SECOND = 1_000_000_000

# Nanosecond timestamps are unsigned 64-bit
MAX_TIMESTAMP = 2**64 - 1


# =============================================================================
# Execution Context
# =============================================================================


@dataclass(frozen=True)
class BlockInfo:
    """
    The block an operation executes in.

    Attributes:
        height: Block height
        time: Block time in nanoseconds since the epoch
        chain_id: Chain identifier (informational)
    """
    height: int
    time: int
    chain_id: str = ""

    @classmethod
    def from_seconds(cls, seconds: int, height: int = 12_345) -> "BlockInfo":
        return cls(height=height, time=seconds * NANOS_PER_SECOND)

    @classmethod
    def from_millis(cls, millis: int, height: int = 12_345) -> "BlockInfo":
        return cls(height=height, time=millis * NANOS_PER_MILLI)

    @property
    def time_millis(self) -> int:
        return self.time // NANOS_PER_MILLI


# =============================================================================
# Expiration
# =============================================================================


class ExpirationKind(str, Enum):
    AT_TIME = "at_time"
    AT_HEIGHT = "at_height"
    NEVER = "never"


@total_ordering
@dataclass(frozen=True)
class Expiration:
    """
    A comparable instant: block time, block height, or never.

    Use the `at_time`, `at_height` and `never` constructors rather than
    building instances directly.
    """
    kind: ExpirationKind
    value: int = 0

    @classmethod
    def at_time(cls, nanos: int) -> "Expiration":
        return cls(ExpirationKind.AT_TIME, nanos)

    @classmethod
    def at_height(cls, height: int) -> "Expiration":
        return cls(ExpirationKind.AT_HEIGHT, height)

    @classmethod
    def never(cls) -> "Expiration":
        return cls(ExpirationKind.NEVER, 0)

    def is_expired(self, block: BlockInfo) -> bool:
        """True once the block has reached this instant."""
        if self.kind is ExpirationKind.AT_TIME:
            return block.time >= self.value
        if self.kind is ExpirationKind.AT_HEIGHT:
            return block.height >= self.value
        return False

    def _check_comparable(self, other: "Expiration") -> None:
        if not isinstance(other, Expiration):
            raise TypeError(f"Cannot compare Expiration with {type(other).__name__}")
        if self.kind is not other.kind:
            raise TypeError(f"Cannot compare {self.kind.value} with {other.kind.value}")

    def __lt__(self, other: "Expiration") -> bool:
        self._check_comparable(other)
        return self.value < other.value

    def __str__(self) -> str:
        if self.kind is ExpirationKind.AT_TIME:
            seconds, nanos = divmod(self.value, NANOS_PER_SECOND)
            return f"expiration time: {seconds}.{nanos:09d}"
        if self.kind is ExpirationKind.AT_HEIGHT:
            return f"expiration height: {self.value}"
        return "expiration: never"

    def to_dict(self) -> dict:
        if self.kind is ExpirationKind.NEVER:
            return {"never": {}}
        return {self.kind.value: self.value}

    @classmethod
    def from_dict(cls, data: dict) -> "Expiration":
        if "at_time" in data:
            return cls.at_time(int(data["at_time"]))
        if "at_height" in data:
            return cls.at_height(int(data["at_height"]))
        if "never" in data:
            return cls.never()
        raise ValueError(f"Unknown expiration: {data}")


# =============================================================================
# Conversions
# =============================================================================


def millisecond_to_expiration(millis: int) -> Expiration:
    """
    Convert a millisecond timestamp into an AtTime expiration.

    Raises:
        InvalidExpiration: if the nanosecond value would not fit in 64 bits
    """
    if millis < 0 or millis > MAX_TIMESTAMP // NANOS_PER_MILLI:
        raise InvalidExpiration()
    return Expiration.at_time(millis * NANOS_PER_MILLI)


def block_to_expiration(block: BlockInfo, model: Expiration) -> Optional[Expiration]:
    """The current block as an instant of the same variant as `model`."""
    if model.kind is ExpirationKind.AT_TIME:
        return Expiration.at_time(block.time)
    if model.kind is ExpirationKind.AT_HEIGHT:
        return Expiration.at_height(block.height)
    return None
