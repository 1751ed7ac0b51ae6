"""
Asset Index - Secondary index from an asset to its auction history.

Each asset (collection address + token id) maps to the insertion-ordered
list of auction ids ever opened for it. The last element is the current
auction. Entries are created on an asset's first auction and only ever
appended to.

Keys are `(token_address, token_id)` pairs, never a joined string, since
both parts may contain any character. Summaries are listed in ascending key
order, so all assets of one collection are contiguous.
"""

import json
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from auctionhouse.core.errors import AuctionDoesNotExist, StorageError
from auctionhouse.core.state.bids import clamp_limit
from auctionhouse.core.storage.storage_manager import StorageManager


AssetKey = Tuple[str, str]


def asset_key(token_id: str, token_address: str) -> AssetKey:
    return (token_address, token_id)


@dataclass
class AuctionInfo:
    """Auction history of a single asset."""
    token_address: str
    token_id: str
    auction_ids: List[int] = field(default_factory=list)

    @property
    def key(self) -> AssetKey:
        return asset_key(self.token_id, self.token_address)

    def latest(self) -> Optional[int]:
        return self.auction_ids[-1] if self.auction_ids else None

    def push(self, auction_id: int) -> None:
        self.auction_ids.append(auction_id)

    def to_dict(self) -> dict:
        return {
            "token_address": self.token_address,
            "token_id": self.token_id,
            "auction_ids": [str(i) for i in self.auction_ids],
        }

    @classmethod
    def _from_row(cls, row) -> "AuctionInfo":
        token_address, token_id, auction_ids = row
        try:
            ids = [int(i) for i in json.loads(auction_ids)]
        except (ValueError, TypeError) as e:
            raise StorageError(f"Corrupt asset index entry for {token_address}:{token_id}") from e
        return cls(token_address=token_address, token_id=token_id, auction_ids=ids)


class AssetIndex:
    """Read/append access to the asset index over a StorageManager."""

    def __init__(self, storage: StorageManager):
        self.storage = storage

    def get(self, token_id: str, token_address: str) -> Optional[AuctionInfo]:
        row = self.storage.get_asset_entry(token_address, token_id)
        return AuctionInfo._from_row(row) if row else None

    def push(self, token_id: str, token_address: str, auction_id: int) -> AuctionInfo:
        """Append an auction id, creating the entry on first use."""
        info = self.get(token_id, token_address) or AuctionInfo(token_address, token_id)
        info.push(auction_id)
        self.storage.save_asset_entry(
            info.token_address,
            info.token_id,
            json.dumps([str(i) for i in info.auction_ids]),
        )
        return info

    def latest_auction_id(self, token_id: str, token_address: str) -> int:
        """The current auction for an asset, raising AuctionDoesNotExist if none."""
        info = self.get(token_id, token_address)
        latest = info.latest() if info else None
        if latest is None:
            raise AuctionDoesNotExist()
        return latest


def read_auction_infos(
    storage: StorageManager,
    token_address: Optional[str] = None,
    start_after: Optional[AssetKey] = None,
    limit: Optional[int] = None,
    default_limit: Optional[int] = None,
    max_limit: Optional[int] = None,
) -> List[AuctionInfo]:
    """
    Page through asset summaries in ascending key order.

    Args:
        storage: Backing store
        token_address: Only list assets of this collection
        start_after: Exclusive (token_address, token_id) cursor
        limit: Page size, clamped to the maximum

    Returns:
        List of AuctionInfo
    """
    page = clamp_limit(limit, default_limit, max_limit)
    rows = storage.list_asset_entries(token_address, start_after, page)
    return [AuctionInfo._from_row(row) for row in rows]
