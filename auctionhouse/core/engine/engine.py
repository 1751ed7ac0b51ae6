"""
Auction Engine - Lifecycle orchestration for escrow auctions.

Conceptual Background:
---------------------
The engine owns every mutation of auction state. It exposes four
operations:

1. **open_auction**: allocate an id, index it under the asset, store the record
2. **place_bid**: accept a strictly higher bid, refunding the previous one
3. **cancel_auction**: owner aborts before the end; asset and high bid return
4. **claim**: anyone settles an ended auction; asset to winner, proceeds to owner

Atomicity:
---------
Each operation runs inside one storage transaction. Preconditions are all
checked before the first write, and an AuctionError raised anywhere in the
block rolls the transaction back, so a failed operation leaves no writes and
returns no instructions.

Escrow Invariant:
----------------
At most one non-owner party has funds in escrow for an auction at any time:
the current high bidder. Every accepted bid refunds the previous one.
"""

from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence, Tuple

from auctionhouse.core.config import AuctionConfig
from auctionhouse.core.errors import (
    AuctionAlreadyClaimed,
    AuctionCancelled,
    AuctionEnded,
    AuctionError,
    AuctionNotEnded,
    AuctionNotStarted,
    BidSmallerThanHighestBid,
    HighestBidderCannotOutBid,
    InvalidExpiration,
    InvalidFunds,
    InvalidStartTime,
    TokenOwnerCannotBid,
    Unauthorized,
)
from auctionhouse.core.engine.response import Response, TransferAssetOut, TransferCurrency
from auctionhouse.core.expiration import (
    BlockInfo,
    block_to_expiration,
    millisecond_to_expiration,
)
from auctionhouse.core.messages import Coin
from auctionhouse.core.state import (
    AssetIndex,
    Auction,
    AuctionInfo,
    Bid,
    BidLedger,
    OrderBy,
    get_and_increment_next_auction_id,
    init_auction_counter,
    load_auction,
    read_auction_infos,
    read_bids,
    save_auction,
)
from auctionhouse.core.storage import StorageManager
from auctionhouse.utils.logger import get_logger

logger = get_logger("engine")


class AuctionEngine:
    """
    Escrow auction state machine over a StorageManager.

    Attributes:
        storage: Backing store, the only shared mutable resource
        config: Paging limits
        assets: Asset index accessor
    """

    def __init__(self, storage: StorageManager, config: Optional[AuctionConfig] = None):
        self.storage = storage
        self.config = config or AuctionConfig()
        self.assets = AssetIndex(storage)

    @contextmanager
    def _atomic(self, action: str) -> Iterator[None]:
        try:
            with self.storage.transaction():
                yield
        except AuctionError as e:
            logger.debug(f"{action} rejected: {e}")
            raise

    # =========================================================================
    # Instantiation
    # =========================================================================

    def instantiate(self) -> Response:
        """Seed the auction id counter at 1."""
        with self._atomic("instantiate"):
            if init_auction_counter(self.storage):
                logger.info("Auction house instantiated, next auction id = 1")
            else:
                logger.warning("Auction house already instantiated, counter left unchanged")
        return Response().add_attribute("action", "instantiate")

    # =========================================================================
    # Open
    # =========================================================================

    def open_auction(
        self,
        block: BlockInfo,
        owner: str,
        token_id: str,
        token_address: str,
        start_time: int,
        duration: int,
        coin_denom: str,
        min_bid: Optional[int] = None,
    ) -> Response:
        """
        Open an auction for an asset already placed in escrow.

        Args:
            block: Current block
            owner: Depositor of the asset
            token_id: Asset id
            token_address: Asset collection
            start_time: Start, in milliseconds since the epoch
            duration: Length of the window in milliseconds
            coin_denom: Denom accepted for bids
            min_bid: Optional bid floor

        Returns:
            Response with the auction id and window
        """
        with self._atomic("open_auction"):
            if not (start_time > 0 and duration > 0):
                raise InvalidExpiration()

            start_expiration = millisecond_to_expiration(start_time)
            end_expiration = millisecond_to_expiration(start_time + duration)

            now = block_to_expiration(block, start_expiration)
            if now is None or not start_expiration > now:
                raise InvalidStartTime(
                    current_time=block.time_millis,
                    current_block=block.height,
                )

            auction_id = get_and_increment_next_auction_id(self.storage)
            self.assets.push(token_id, token_address, auction_id)
            BidLedger(self.storage, auction_id).create()
            save_auction(
                self.storage,
                Auction(
                    auction_id=auction_id,
                    owner=owner,
                    token_id=token_id,
                    token_address=token_address,
                    coin_denom=coin_denom,
                    start_time=start_expiration,
                    end_time=end_expiration,
                    min_bid=min_bid,
                ),
            )

        logger.info(
            f"Auction {auction_id} opened: {token_address}/{token_id} by {owner}, "
            f"{start_expiration} -> {end_expiration}"
        )
        return Response().add_attributes([
            ("action", "start_auction"),
            ("start_time", start_expiration),
            ("end_time", end_expiration),
            ("coin_denom", coin_denom),
            ("auction_id", auction_id),
        ])

    # =========================================================================
    # Bid
    # =========================================================================

    def place_bid(
        self,
        block: BlockInfo,
        bidder: str,
        token_id: str,
        token_address: str,
        funds: Sequence[Coin],
    ) -> Response:
        """
        Bid on the current auction of an asset.

        Checks run in a fixed order and the first violation is reported.
        """
        response = Response()
        with self._atomic("place_bid"):
            auction = self._latest_auction(token_id, token_address)

            if auction.is_cancelled:
                raise AuctionCancelled()
            if not auction.start_time.is_expired(block):
                raise AuctionNotStarted()
            if auction.end_time.is_expired(block):
                raise AuctionEnded()
            if bidder == auction.owner:
                raise TokenOwnerCannotBid()
            if len(funds) != 1:
                raise InvalidFunds("Auctions require exactly one coin to be sent.")
            if bidder == auction.high_bidder_addr:
                raise HighestBidderCannotOutBid()

            payment = funds[0]
            if payment.denom != auction.coin_denom or payment.amount <= 0:
                raise InvalidFunds(f"No {auction.coin_denom} assets are provided to auction")
            if payment.amount <= auction.high_bidder_amount:
                raise BidSmallerThanHighestBid()
            if auction.min_bid is not None and payment.amount < auction.min_bid:
                raise InvalidFunds(
                    f"Bid must be at least {auction.min_bid} {auction.coin_denom}"
                )

            if auction.has_bids:
                response.add_message(TransferCurrency(
                    to=auction.high_bidder_addr,
                    denom=auction.coin_denom,
                    amount=auction.high_bidder_amount,
                ))

            auction.high_bidder_addr = bidder
            auction.high_bidder_amount = payment.amount
            save_auction(self.storage, auction)
            BidLedger(self.storage, auction.auction_id).append(
                Bid(bidder=bidder, amount=payment.amount, timestamp=block.time)
            )

        logger.info(f"Auction {auction.auction_id}: bid {payment.amount} {payment.denom} from {bidder}")
        return response.add_attributes([
            ("action", "bid"),
            ("token_id", token_id),
            ("bidder", bidder),
            ("amount", payment.amount),
        ])

    # =========================================================================
    # Cancel
    # =========================================================================

    def cancel_auction(
        self,
        block: BlockInfo,
        sender: str,
        token_id: str,
        token_address: str,
    ) -> Response:
        """Owner cancels before the end; asset and any high bid are returned."""
        response = Response()
        with self._atomic("cancel_auction"):
            auction = self._latest_auction(token_id, token_address)

            if sender != auction.owner:
                raise Unauthorized()
            if auction.end_time.is_expired(block):
                raise AuctionEnded()
            if auction.is_cancelled:
                raise AuctionCancelled()

            response.add_message(TransferAssetOut(
                to=auction.owner,
                token_id=auction.token_id,
                token_address=auction.token_address,
            ))
            if auction.has_bids:
                response.add_message(TransferCurrency(
                    to=auction.high_bidder_addr,
                    denom=auction.coin_denom,
                    amount=auction.high_bidder_amount,
                ))

            auction.is_cancelled = True
            save_auction(self.storage, auction)

        logger.info(f"Auction {auction.auction_id} cancelled by owner {sender}")
        return response.add_attributes([
            ("action", "cancel_auction"),
            ("token_id", token_id),
            ("token_contract", token_address),
            ("auction_id", auction.auction_id),
        ])

    # =========================================================================
    # Claim
    # =========================================================================

    def claim(
        self,
        block: BlockInfo,
        sender: str,
        token_id: str,
        token_address: str,
    ) -> Response:
        """
        Settle an ended auction. Any sender may trigger it.

        With no bids the asset returns to the owner; otherwise the owner is
        paid the winning amount and the asset goes to the high bidder.
        """
        response = Response()
        with self._atomic("claim"):
            auction = self._latest_auction(token_id, token_address)

            if not auction.end_time.is_expired(block):
                raise AuctionNotEnded()
            if auction.is_cancelled:
                raise AuctionCancelled()
            if auction.is_claimed:
                raise AuctionAlreadyClaimed()

            if auction.has_bids:
                recipient = auction.high_bidder_addr
                response.add_message(TransferCurrency(
                    to=auction.owner,
                    denom=auction.coin_denom,
                    amount=auction.high_bidder_amount,
                ))
            else:
                recipient = auction.owner
            response.add_message(TransferAssetOut(
                to=recipient,
                token_id=auction.token_id,
                token_address=auction.token_address,
            ))

            auction.is_claimed = True
            save_auction(self.storage, auction)

        logger.info(
            f"Auction {auction.auction_id} settled by {sender}: "
            f"{token_address}/{token_id} -> {recipient} for {auction.high_bidder_amount}"
        )
        return response.add_attributes([
            ("action", "claim"),
            ("token_id", token_id),
            ("token_contract", token_address),
            ("recipient", recipient),
            ("winning_bid_amount", auction.high_bidder_amount),
            ("auction_id", auction.auction_id),
        ])

    # =========================================================================
    # Queries
    # =========================================================================

    def _latest_auction(self, token_id: str, token_address: str) -> Auction:
        auction_id = self.assets.latest_auction_id(token_id, token_address)
        return load_auction(self.storage, auction_id)

    def get_auction(self, auction_id: int) -> Auction:
        return load_auction(self.storage, auction_id)

    def latest_auction(self, token_id: str, token_address: str) -> Auction:
        return self._latest_auction(token_id, token_address)

    def read_bids(
        self,
        auction_id: int,
        start_after: Optional[int] = None,
        limit: Optional[int] = None,
        order_by: Optional[OrderBy] = None,
    ) -> List[Bid]:
        return read_bids(
            self.storage,
            auction_id,
            start_after=start_after,
            limit=limit,
            order_by=order_by,
            default_limit=self.config.default_limit,
            max_limit=self.config.max_limit,
        )

    def read_auction_infos(
        self,
        token_address: Optional[str] = None,
        start_after: Optional[Tuple[str, str]] = None,
        limit: Optional[int] = None,
    ) -> List[AuctionInfo]:
        return read_auction_infos(
            self.storage,
            token_address=token_address,
            start_after=start_after,
            limit=limit,
            default_limit=self.config.default_limit,
            max_limit=self.config.max_limit,
        )
