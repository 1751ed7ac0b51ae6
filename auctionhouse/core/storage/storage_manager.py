from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from auctionhouse.core.storage.sqlite_adapter import SQLiteAdapter
from auctionhouse.utils.logger import get_logger

logger = get_logger("storage.manager")

NEXT_AUCTION_ID = "next_auction_id"


class StorageManager:
    """
    Manages persistent storage for the auction house.

    Coordinates data persistence using the SQLite adapter.
    Handles:
    - Contract state (auction id counter)
    - Auction records
    - Bid ledgers
    - Asset index entries

    Pass `data_dir=None` for an in-memory store.
    """

    def __init__(self, data_dir: Optional[Path] = None, db_name: str = "auctions.db"):
        self.data_dir = data_dir
        self.db_path = data_dir / db_name if data_dir is not None else None
        self.adapter = SQLiteAdapter(self.db_path)

        logger.info(f"StorageManager initialized at {self.db_path or 'memory'}")

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """All writes inside the block commit together or not at all."""
        with self.adapter.transaction():
            yield

    def close(self):
        self.adapter.close()

    # =========================================================================
    # Contract State
    # =========================================================================

    def save_next_auction_id(self, auction_id: int):
        self.adapter.set_state(NEXT_AUCTION_ID, str(auction_id))

    def get_next_auction_id(self) -> Optional[int]:
        value = self.adapter.get_state(NEXT_AUCTION_ID)
        return int(value) if value is not None else None

    # =========================================================================
    # Auctions & Bids
    # =========================================================================

    def save_auction(self, auction_id: int, data: bytes):
        self.adapter.save_auction(auction_id, data)

    def get_auction(self, auction_id: int) -> Optional[bytes]:
        return self.adapter.get_auction(auction_id)

    def create_bid_ledger(self, auction_id: int):
        self.adapter.create_bid_ledger(auction_id)

    def has_bid_ledger(self, auction_id: int) -> bool:
        return self.adapter.has_bid_ledger(auction_id)

    def append_bid(self, auction_id: int, data: bytes) -> int:
        return self.adapter.append_bid(auction_id, data)

    def count_bids(self, auction_id: int) -> int:
        return self.adapter.count_bids(auction_id)

    def get_bids_range(self, auction_id: int, start: int, end: int) -> List[bytes]:
        if start >= end:
            return []
        return self.adapter.get_bids_range(auction_id, start, end)

    # =========================================================================
    # Asset Index
    # =========================================================================

    def save_asset_entry(self, token_address: str, token_id: str, auction_ids: str):
        self.adapter.save_asset_entry(token_address, token_id, auction_ids)

    def get_asset_entry(self, token_address: str, token_id: str) -> Optional[Tuple[str, str, str]]:
        return self.adapter.get_asset_entry(token_address, token_id)

    def list_asset_entries(
        self,
        token_address: Optional[str] = None,
        start_after: Optional[Tuple[str, str]] = None,
        limit: int = 10,
    ) -> List[Tuple[str, str, str]]:
        return self.adapter.list_asset_entries(token_address, start_after, limit)
