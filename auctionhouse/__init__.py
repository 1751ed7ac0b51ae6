"""
Auction House

An escrow auction engine for non-fungible assets:
- Time windows expressed as block time or block height expirations
- Strictly increasing single-denom bidding with refunds
- Per-asset auction history and paginated bid history
- SQLite-backed, transactional state
"""

__version__ = "0.1.0"
