"""
Auction Ledger - The authoritative per-auction record.

Lifecycle:
---------
    PENDING --(start reached)--> OPEN --(end reached)--> ENDED --(claim)--> CLAIMED
       |                          |
       +------(cancel)------------+--> CANCELLED

The status is derived from the stored flags and the current block; only the
flags (`is_cancelled`, `is_claimed`) and the high bid are ever mutated after
creation, and only by the engine.

Auction ids come from a persisted counter seeded to 1 at instantiation and
incremented once per opened auction.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from auctionhouse.core.errors import AuctionDoesNotExist, StorageError
from auctionhouse.core.expiration import BlockInfo, Expiration
from auctionhouse.core.storage.storage_manager import StorageManager
from auctionhouse.utils.validation import checked_add

# Sentinel for "no high bidder yet"
NO_BIDDER = ""

FIRST_AUCTION_ID = 1


class AuctionStatus(str, Enum):
    """Derived state of an auction at a given block."""
    PENDING = "pending"
    OPEN = "open"
    ENDED = "ended"
    CLAIMED = "claimed"
    CANCELLED = "cancelled"


@dataclass
class Auction:
    """
    A single auction of one escrowed asset.

    Attributes:
        auction_id: Unique, monotonically allocated id
        owner: Address that deposited the asset
        token_id: Asset id within its collection
        token_address: Collection (contract) address of the asset
        coin_denom: The only denom accepted for bids
        start_time: Bidding opens once this is reached
        end_time: Bidding closes once this is reached
        high_bidder_addr: Current winner, NO_BIDDER before the first bid
        high_bidder_amount: Current winning amount, 0 before the first bid
        min_bid: Optional floor for bids
        is_cancelled: Set once by cancellation
        is_claimed: Set once by settlement
    """
    auction_id: int
    owner: str
    token_id: str
    token_address: str
    coin_denom: str
    start_time: Expiration
    end_time: Expiration
    high_bidder_addr: str = NO_BIDDER
    high_bidder_amount: int = 0
    min_bid: Optional[int] = None
    is_cancelled: bool = False
    is_claimed: bool = False

    @property
    def has_bids(self) -> bool:
        return self.high_bidder_amount > 0

    def status(self, block: BlockInfo) -> AuctionStatus:
        if self.is_cancelled:
            return AuctionStatus.CANCELLED
        if self.is_claimed:
            return AuctionStatus.CLAIMED
        if not self.start_time.is_expired(block):
            return AuctionStatus.PENDING
        if not self.end_time.is_expired(block):
            return AuctionStatus.OPEN
        return AuctionStatus.ENDED

    def to_dict(self) -> dict:
        return {
            "auction_id": str(self.auction_id),
            "owner": self.owner,
            "token_id": self.token_id,
            "token_address": self.token_address,
            "coin_denom": self.coin_denom,
            "start_time": self.start_time.to_dict(),
            "end_time": self.end_time.to_dict(),
            "high_bidder_addr": self.high_bidder_addr,
            "high_bidder_amount": str(self.high_bidder_amount),
            "min_bid": str(self.min_bid) if self.min_bid is not None else None,
            "is_cancelled": self.is_cancelled,
            "is_claimed": self.is_claimed,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Auction":
        return cls(
            auction_id=int(data["auction_id"]),
            owner=data["owner"],
            token_id=data["token_id"],
            token_address=data["token_address"],
            coin_denom=data["coin_denom"],
            start_time=Expiration.from_dict(data["start_time"]),
            end_time=Expiration.from_dict(data["end_time"]),
            high_bidder_addr=data["high_bidder_addr"],
            high_bidder_amount=int(data["high_bidder_amount"]),
            min_bid=int(data["min_bid"]) if data.get("min_bid") is not None else None,
            is_cancelled=data["is_cancelled"],
            is_claimed=data.get("is_claimed", False),
        )

    def to_bytes(self) -> bytes:
        return json.dumps(self.to_dict(), sort_keys=True).encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> "Auction":
        try:
            return cls.from_dict(json.loads(data))
        except (KeyError, ValueError, TypeError) as e:
            raise StorageError(f"Corrupt auction record: {e}") from e


# =============================================================================
# Storage Access
# =============================================================================


def load_auction(storage: StorageManager, auction_id: int) -> Auction:
    """Load an auction, raising AuctionDoesNotExist if absent."""
    data = storage.get_auction(auction_id)
    if data is None:
        raise AuctionDoesNotExist()
    return Auction.from_bytes(data)


def save_auction(storage: StorageManager, auction: Auction) -> None:
    storage.save_auction(auction.auction_id, auction.to_bytes())


def init_auction_counter(storage: StorageManager) -> bool:
    """Seed the id counter. Returns False if it was already seeded."""
    if storage.get_next_auction_id() is not None:
        return False
    storage.save_next_auction_id(FIRST_AUCTION_ID)
    return True


def get_and_increment_next_auction_id(storage: StorageManager) -> int:
    """Allocate the next auction id."""
    next_auction_id = storage.get_next_auction_id()
    if next_auction_id is None:
        raise StorageError("Auction id counter not initialized")
    storage.save_next_auction_id(checked_add(next_auction_id, 1))
    return next_auction_id
