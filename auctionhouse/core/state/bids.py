"""
Bid Ledger - Append-only bid history per auction.

Every accepted bid is appended; no bid is ever edited or removed, including
on cancellation. Reads are paginated by position:

- `start_after = i` resumes strictly after position `i` (start = i + 1)
- `Asc` returns `[start, start + limit)` in insertion order
- `Desc` returns the `limit` most recent bids before the cursor, newest first

Out-of-range cursors produce an empty page, never an error.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from auctionhouse.core.errors import AuctionDoesNotExist, StorageError
from auctionhouse.core.storage.storage_manager import StorageManager
from auctionhouse.utils.validation import validate_integer

# =============================================================================
# Constants
# =============================================================================

DEFAULT_LIMIT = 10
MAX_LIMIT = 50


class OrderBy(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class Bid:
    """An accepted bid. `timestamp` is the block time (ns) of acceptance."""
    bidder: str
    amount: int
    timestamp: int

    def to_dict(self) -> dict:
        return {
            "bidder": self.bidder,
            "amount": str(self.amount),
            "timestamp": str(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Bid":
        return cls(
            bidder=data["bidder"],
            amount=int(data["amount"]),
            timestamp=int(data["timestamp"]),
        )

    def to_bytes(self) -> bytes:
        return json.dumps(self.to_dict(), sort_keys=True).encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> "Bid":
        try:
            return cls.from_dict(json.loads(data))
        except (KeyError, ValueError, TypeError) as e:
            raise StorageError(f"Corrupt bid record: {e}") from e


def clamp_limit(
    limit: Optional[int],
    default_limit: Optional[int] = None,
    max_limit: Optional[int] = None,
) -> int:
    """Apply the default page size and clamp to the maximum."""
    default_limit = DEFAULT_LIMIT if default_limit is None else default_limit
    max_limit = MAX_LIMIT if max_limit is None else max_limit
    if limit is None:
        limit = default_limit
    return max(0, min(limit, max_limit))


def page_window(
    length: int,
    start_after: Optional[int],
    limit: int,
    order_by: OrderBy,
) -> tuple:
    """
    Compute the [start, end) slice of the ascending sequence to return.

    Returns:
        (start, end) with start inclusive, end exclusive
    """
    start = 0 if start_after is None else start_after + 1

    if order_by is OrderBy.DESC:
        return (
            length - min(length, start + limit),
            length - min(start, length),
        )
    return (
        min(length, start),
        min(start + limit, length),
    )


class BidLedger:
    """Append/read access to one auction's bids."""

    def __init__(self, storage: StorageManager, auction_id: int):
        self.storage = storage
        self.auction_id = auction_id

    def create(self) -> None:
        self.storage.create_bid_ledger(self.auction_id)

    def exists(self) -> bool:
        return self.storage.has_bid_ledger(self.auction_id)

    def append(self, bid: Bid) -> int:
        return self.storage.append_bid(self.auction_id, bid.to_bytes())

    def __len__(self) -> int:
        return self.storage.count_bids(self.auction_id)


def read_bids(
    storage: StorageManager,
    auction_id: int,
    start_after: Optional[int] = None,
    limit: Optional[int] = None,
    order_by: Optional[OrderBy] = None,
    default_limit: Optional[int] = None,
    max_limit: Optional[int] = None,
) -> List[Bid]:
    """
    Read a page of an auction's bids.

    Args:
        storage: Backing store
        auction_id: Auction whose ledger to read
        start_after: Exclusive position cursor
        limit: Page size (default 10, clamped to the maximum)
        order_by: Asc (default) or Desc

    Returns:
        List of Bid, newest first for Desc

    Raises:
        ValueError: if start_after is negative
        AuctionDoesNotExist: if the auction has no ledger
    """
    if start_after is not None:
        valid, err = validate_integer(start_after, "start_after")
        if not valid:
            raise ValueError(err)

    ledger = BidLedger(storage, auction_id)
    if not ledger.exists():
        raise AuctionDoesNotExist()

    order_by = OrderBy(order_by) if order_by is not None else OrderBy.ASC
    page = clamp_limit(limit, default_limit, max_limit)
    start, end = page_window(len(ledger), start_after, page, order_by)

    bids = [Bid.from_bytes(data) for data in storage.get_bids_range(auction_id, start, end)]
    if order_by is OrderBy.DESC:
        bids.reverse()
    return bids
