"""
Persistent Storage Module.

Provides SQLite-backed persistence for:
- Contract state (auction id counter)
- Auction records and bid ledgers
- The per-asset auction index
"""

from auctionhouse.core.storage.sqlite_adapter import SQLiteAdapter
from auctionhouse.core.storage.storage_manager import StorageManager

__all__ = ["SQLiteAdapter", "StorageManager"]
