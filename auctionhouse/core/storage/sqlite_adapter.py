import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from auctionhouse.utils.logger import get_logger

logger = get_logger("storage.sqlite")

MEMORY = ":memory:"


class SQLiteAdapter:
    """
    SQLite backend for persistent auction state.

    Provides:
    1. Contract state (scalar items such as the auction id counter).
    2. Auction records keyed by auction id.
    3. Append-only bid rows keyed by (auction id, sequence).
    4. The asset index: asset key -> ordered auction ids.

    Writes are grouped with `transaction()`; a block that raises rolls back
    every write made inside it. Nested blocks join the outermost one.
    """

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None
        self._tx_depth = 0

        if db_path is not None and not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create the connection."""
        if self._conn is None:
            target = str(self.db_path) if self.db_path is not None else MEMORY
            self._conn = sqlite3.connect(target, timeout=30.0)
            self._conn.row_factory = sqlite3.Row
            if self.db_path is not None:
                self._conn.execute("PRAGMA journal_mode=WAL;")
                self._conn.execute("PRAGMA synchronous=FULL;")
        return self._conn

    def _init_schema(self):
        """Initialize database schema."""
        conn = self._get_conn()
        with conn:
            # 1. Contract state (scalar items)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS contract_state (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)

            # 2. Auctions (auction_id -> serialized record)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS auctions (
                    auction_id TEXT PRIMARY KEY,
                    data BLOB NOT NULL
                )
            """)

            # 3. Bid ledgers: one row per ledger, one row per accepted bid
            conn.execute("""
                CREATE TABLE IF NOT EXISTS bid_ledgers (
                    auction_id TEXT PRIMARY KEY
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS bids (
                    auction_id TEXT NOT NULL,
                    seq INTEGER NOT NULL,
                    data BLOB NOT NULL,
                    PRIMARY KEY (auction_id, seq)
                )
            """)

            # 4. Asset index ((token_address, token_id) -> auction ids)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS asset_index (
                    token_address TEXT NOT NULL,
                    token_id TEXT NOT NULL,
                    auction_ids TEXT NOT NULL,
                    PRIMARY KEY (token_address, token_id)
                )
            """)

    # =========================================================================
    # Transactions
    # =========================================================================

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block of writes atomically."""
        conn = self._get_conn()
        if self._tx_depth > 0:
            self._tx_depth += 1
            try:
                yield conn
            finally:
                self._tx_depth -= 1
            return

        self._tx_depth = 1
        try:
            with conn:
                yield conn
        finally:
            self._tx_depth = 0

    def close(self):
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # =========================================================================
    # Contract State
    # =========================================================================

    def set_state(self, key: str, value: str):
        with self.transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO contract_state (key, value) VALUES (?, ?)",
                (key, value)
            )

    def get_state(self, key: str) -> Optional[str]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT value FROM contract_state WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row['value'] if row else None

    # =========================================================================
    # Auctions
    # =========================================================================

    def save_auction(self, auction_id: int, data: bytes):
        with self.transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO auctions (auction_id, data) VALUES (?, ?)",
                (str(auction_id), data)
            )

    def get_auction(self, auction_id: int) -> Optional[bytes]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT data FROM auctions WHERE auction_id = ?", (str(auction_id),))
        row = cursor.fetchone()
        return row['data'] if row else None

    # =========================================================================
    # Bids
    # =========================================================================

    def create_bid_ledger(self, auction_id: int):
        with self.transaction() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO bid_ledgers (auction_id) VALUES (?)",
                (str(auction_id),)
            )

    def has_bid_ledger(self, auction_id: int) -> bool:
        conn = self._get_conn()
        cursor = conn.execute("SELECT 1 FROM bid_ledgers WHERE auction_id = ?", (str(auction_id),))
        return cursor.fetchone() is not None

    def count_bids(self, auction_id: int) -> int:
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT COUNT(*) as cnt FROM bids WHERE auction_id = ?", (str(auction_id),)
        )
        return cursor.fetchone()['cnt']

    def append_bid(self, auction_id: int, data: bytes) -> int:
        """Append a bid at the next sequence number. Returns that number."""
        with self.transaction() as conn:
            seq = self.count_bids(auction_id)
            conn.execute(
                "INSERT INTO bids (auction_id, seq, data) VALUES (?, ?, ?)",
                (str(auction_id), seq, data)
            )
        return seq

    def get_bids_range(self, auction_id: int, start: int, end: int) -> List[bytes]:
        """Get bids with start <= seq < end, in sequence order."""
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT data FROM bids WHERE auction_id = ? AND seq >= ? AND seq < ? ORDER BY seq ASC",
            (str(auction_id), start, end)
        )
        return [row['data'] for row in cursor]

    # =========================================================================
    # Asset Index
    # =========================================================================

    def save_asset_entry(self, token_address: str, token_id: str, auction_ids: str):
        with self.transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO asset_index (token_address, token_id, auction_ids) "
                "VALUES (?, ?, ?)",
                (token_address, token_id, auction_ids)
            )

    def get_asset_entry(self, token_address: str, token_id: str) -> Optional[Tuple[str, str, str]]:
        """Get (token_address, token_id, auction_ids) for one asset."""
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT token_address, token_id, auction_ids FROM asset_index "
            "WHERE token_address = ? AND token_id = ?",
            (token_address, token_id)
        )
        row = cursor.fetchone()
        return (row['token_address'], row['token_id'], row['auction_ids']) if row else None

    def list_asset_entries(
        self,
        token_address: Optional[str],
        start_after: Optional[Tuple[str, str]],
        limit: int,
    ) -> List[Tuple[str, str, str]]:
        """List (token_address, token_id, auction_ids) ordered by (token_address, token_id)."""
        clauses = []
        params: list = []
        if token_address is not None:
            clauses.append("token_address = ?")
            params.append(token_address)
        if start_after is not None:
            after_address, after_token_id = start_after
            clauses.append("(token_address > ? OR (token_address = ? AND token_id > ?))")
            params.extend([after_address, after_address, after_token_id])

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        conn = self._get_conn()
        cursor = conn.execute(
            f"SELECT token_address, token_id, auction_ids FROM asset_index {where} "
            "ORDER BY token_address ASC, token_id ASC LIMIT ?",
            (*params, limit)
        )
        return [(row['token_address'], row['token_id'], row['auction_ids']) for row in cursor]
