"""Auction ledger, asset index and bid ledger"""
from auctionhouse.core.state.auction import (
    Auction,
    AuctionStatus,
    NO_BIDDER,
    load_auction,
    save_auction,
    init_auction_counter,
    get_and_increment_next_auction_id,
)
from auctionhouse.core.state.bids import (
    Bid,
    BidLedger,
    OrderBy,
    read_bids,
    clamp_limit,
    DEFAULT_LIMIT,
    MAX_LIMIT,
)
from auctionhouse.core.state.asset_index import (
    AssetIndex,
    AuctionInfo,
    asset_key,
    read_auction_infos,
)

__all__ = [
    "Auction",
    "AuctionStatus",
    "NO_BIDDER",
    "load_auction",
    "save_auction",
    "init_auction_counter",
    "get_and_increment_next_auction_id",
    "Bid",
    "BidLedger",
    "OrderBy",
    "read_bids",
    "clamp_limit",
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "AssetIndex",
    "AuctionInfo",
    "asset_key",
    "read_auction_infos",
]
