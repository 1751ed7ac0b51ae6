"""Auction engine and its outbound instructions"""
from auctionhouse.core.engine.response import (
    Response,
    TransferCurrency,
    TransferAssetOut,
    Instruction,
)
from auctionhouse.core.engine.engine import AuctionEngine

__all__ = [
    "AuctionEngine",
    "Response",
    "TransferCurrency",
    "TransferAssetOut",
    "Instruction",
]
