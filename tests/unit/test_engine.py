"""
Unit tests for the auction engine.

Tests cover:
1. Opening auctions: id allocation, window validation, indexing
2. Bidding: ordered precondition checks, refunds, bid ledger
3. Cancellation: authorization, window, refunds
4. Settlement: with and without bids, double claim
5. Atomicity: rejected operations leave no writes
"""

import pytest

from auctionhouse.core.engine import AuctionEngine, TransferAssetOut, TransferCurrency
from auctionhouse.core.errors import (
    AuctionAlreadyClaimed,
    AuctionCancelled,
    AuctionDoesNotExist,
    AuctionEnded,
    AuctionNotEnded,
    AuctionNotStarted,
    BidSmallerThanHighestBid,
    HighestBidderCannotOutBid,
    InvalidExpiration,
    InvalidFunds,
    InvalidStartTime,
    Overflow,
    StorageError,
    TokenOwnerCannotBid,
    Unauthorized,
)
from auctionhouse.core.expiration import MAX_TIMESTAMP, BlockInfo, Expiration
from auctionhouse.core.messages import Coin, coins
from auctionhouse.core.state import Auction, AuctionStatus, Bid
from auctionhouse.core.storage import StorageManager
from auctionhouse.utils.validation import MAX_UINT128

DUMMY_TOKEN_ADDR = "dummy_token_addr"
DUMMY_TOKEN_OWNER = "dummy_token_owner"
DUMMY_UNCLAIMED_TOKEN = "dummy_unclaimed_token"


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def engine():
    """Instantiated engine over an in-memory store."""
    engine = AuctionEngine(StorageManager())
    engine.instantiate()
    return engine


def start_auction(engine, min_bid=None, token_id=DUMMY_UNCLAIMED_TOKEN, at_seconds=0):
    """Open an auction running from 100s to 200s."""
    return engine.open_auction(
        BlockInfo.from_seconds(at_seconds),
        owner=DUMMY_TOKEN_OWNER,
        token_id=token_id,
        token_address=DUMMY_TOKEN_ADDR,
        start_time=100_000,
        duration=100_000,
        coin_denom="usd",
        min_bid=min_bid,
    )


def bid(engine, seconds, bidder, amount, denom="usd", token_id=DUMMY_UNCLAIMED_TOKEN):
    return engine.place_bid(
        BlockInfo.from_seconds(seconds),
        bidder,
        token_id,
        DUMMY_TOKEN_ADDR,
        coins(amount, denom),
    )


@pytest.fixture
def started(engine):
    start_auction(engine)
    return engine


# =============================================================================
# Open Auction Tests
# =============================================================================


class TestOpenAuction:
    """Tests for opening auctions."""

    def test_start_auction(self, engine):
        """Auction is stored with an unset high bid."""
        res = start_auction(engine)

        assert res.attributes == [
            ("action", "start_auction"),
            ("start_time", "expiration time: 100.000000000"),
            ("end_time", "expiration time: 200.000000000"),
            ("coin_denom", "usd"),
            ("auction_id", "1"),
        ]
        assert res.messages == []
        assert engine.get_auction(1) == Auction(
            auction_id=1,
            owner=DUMMY_TOKEN_OWNER,
            token_id=DUMMY_UNCLAIMED_TOKEN,
            token_address=DUMMY_TOKEN_ADDR,
            coin_denom="usd",
            start_time=Expiration.at_time(100 * 10**9),
            end_time=Expiration.at_time(200 * 10**9),
        )

    def test_ids_increase_by_one(self, engine):
        """Ids start at 1 and grow by exactly one per auction."""
        ids = [
            start_auction(engine, token_id=f"token-{i}").attribute("auction_id")
            for i in range(5)
        ]
        assert ids == ["1", "2", "3", "4", "5"]

    def test_creates_empty_bid_ledger_and_index(self, engine):
        start_auction(engine)
        assert engine.read_bids(1) == []
        infos = engine.read_auction_infos()
        assert len(infos) == 1
        assert infos[0].auction_ids == [1]
        assert infos[0].token_id == DUMMY_UNCLAIMED_TOKEN

    def test_min_bid_stored(self, engine):
        start_auction(engine, min_bid=50)
        assert engine.get_auction(1).min_bid == 50

    def test_zero_start_time(self, engine):
        with pytest.raises(InvalidExpiration):
            engine.open_auction(BlockInfo.from_seconds(0), "o", "t", "c", 0, 1, "usd")

    def test_zero_duration(self, engine):
        with pytest.raises(InvalidExpiration):
            engine.open_auction(BlockInfo.from_seconds(0), "o", "t", "c", 100, 0, "usd")

    def test_end_overflow(self, engine):
        """Start converts but start + duration overflows."""
        limit = MAX_TIMESTAMP // 1_000_000
        with pytest.raises(InvalidExpiration):
            engine.open_auction(BlockInfo.from_seconds(0), "o", "t", "c", limit, 1, "usd")

    def test_start_time_in_past(self, engine):
        block = BlockInfo.from_seconds(150)
        with pytest.raises(InvalidStartTime) as exc:
            engine.open_auction(block, "o", "t", "c", 100_000, 100_000, "usd")

        assert exc.value == InvalidStartTime(current_time=150_000, current_block=block.height)
        assert str(exc.value) == (
            f"Invalid Start time. Current time: 150000. Current block: {block.height}"
        )

    def test_start_time_now_rejected(self, engine):
        """Start must be strictly later than the current block time."""
        with pytest.raises(InvalidStartTime):
            engine.open_auction(BlockInfo.from_seconds(100), "o", "t", "c", 100_000, 1, "usd")

    def test_rejected_open_allocates_nothing(self, engine):
        with pytest.raises(InvalidStartTime):
            engine.open_auction(BlockInfo.from_seconds(150), "o", "t", "c", 100_000, 1, "usd")

        assert engine.storage.get_next_auction_id() == 1
        assert engine.read_auction_infos() == []

    def test_not_instantiated(self):
        engine = AuctionEngine(StorageManager())
        with pytest.raises(StorageError):
            start_auction(engine)
        assert engine.read_auction_infos() == []

    def test_counter_overflow(self, engine):
        engine.storage.save_next_auction_id(MAX_UINT128)
        with pytest.raises(Overflow):
            start_auction(engine)
        assert engine.read_auction_infos() == []

    def test_instantiate_twice_keeps_counter(self, engine):
        start_auction(engine)
        engine.instantiate()
        assert engine.storage.get_next_auction_id() == 2

    def test_new_auction_becomes_latest(self, engine):
        start_auction(engine)
        engine.cancel_auction(BlockInfo.from_seconds(50), DUMMY_TOKEN_OWNER, DUMMY_UNCLAIMED_TOKEN, DUMMY_TOKEN_ADDR)
        start_auction(engine, at_seconds=60)

        latest = engine.latest_auction(DUMMY_UNCLAIMED_TOKEN, DUMMY_TOKEN_ADDR)
        assert latest.auction_id == 2
        assert not latest.is_cancelled
        assert engine.read_auction_infos()[0].auction_ids == [1, 2]


# =============================================================================
# Place Bid Tests
# =============================================================================


class TestPlaceBid:
    """Tests for bidding."""

    def test_place_bid(self, started):
        res = bid(started, 150, "sender", 100)

        assert res.messages == []
        assert res.attributes == [
            ("action", "bid"),
            ("token_id", DUMMY_UNCLAIMED_TOKEN),
            ("bidder", "sender"),
            ("amount", "100"),
        ]
        auction = started.get_auction(1)
        assert auction.high_bidder_addr == "sender"
        assert auction.high_bidder_amount == 100
        assert started.read_bids(1) == [Bid("sender", 100, 150 * 10**9)]

    def test_outbid_refunds_previous(self, started):
        bid(started, 150, "sender", 100)
        res = bid(started, 160, "other", 200)
        assert res.messages == [TransferCurrency(to="sender", denom="usd", amount=100)]

        res = bid(started, 170, "sender", 250)
        assert res.messages == [TransferCurrency(to="other", denom="usd", amount=200)]

        auction = started.get_auction(1)
        assert (auction.high_bidder_addr, auction.high_bidder_amount) == ("sender", 250)
        assert [b.amount for b in started.read_bids(1)] == [100, 200, 250]

    def test_non_existing_auction(self, engine):
        with pytest.raises(AuctionDoesNotExist):
            bid(engine, 150, "bidder", 100)

    def test_colon_in_ids_resolves_exact_asset(self, engine):
        """A bid on (a:b, c) never reaches the auction of (a, b:c)."""
        engine.open_auction(BlockInfo.from_seconds(0), "alice", "b:c", "a", 100_000, 100_000, "usd")

        with pytest.raises(AuctionDoesNotExist):
            engine.place_bid(BlockInfo.from_seconds(150), "bob", "c", "a:b", coins(100, "usd"))
        assert not engine.get_auction(1).has_bids

        engine.open_auction(BlockInfo.from_seconds(0), "carol", "c", "a:b", 100_000, 100_000, "usd")
        engine.place_bid(BlockInfo.from_seconds(150), "bob", "c", "a:b", coins(100, "usd"))

        assert engine.latest_auction("b:c", "a").auction_id == 1
        assert not engine.get_auction(1).has_bids
        assert engine.get_auction(2).high_bidder_addr == "bob"

    def test_auction_not_started(self, started):
        with pytest.raises(AuctionNotStarted):
            bid(started, 50, "sender", 100)

    def test_auction_ended(self, started):
        with pytest.raises(AuctionEnded):
            bid(started, 300, "sender", 100)

    def test_auction_ended_at_exact_end(self, started):
        with pytest.raises(AuctionEnded):
            bid(started, 200, "sender", 100)

    def test_accepted_at_exact_start(self, started):
        bid(started, 100, "sender", 100)
        assert started.get_auction(1).high_bidder_amount == 100

    def test_owner_cannot_bid(self, started):
        with pytest.raises(TokenOwnerCannotBid):
            bid(started, 150, DUMMY_TOKEN_OWNER, 100)

    def test_highest_bidder_cannot_outbid(self, started):
        bid(started, 150, "sender", 100)
        with pytest.raises(HighestBidderCannotOutBid):
            bid(started, 160, "sender", 200)

    def test_smaller_than_highest_bid(self, started):
        bid(started, 150, "sender", 100)
        with pytest.raises(BidSmallerThanHighestBid):
            bid(started, 160, "other", 50)
        with pytest.raises(BidSmallerThanHighestBid):
            bid(started, 160, "other", 100)

    def test_invalid_coins(self, started):
        block = BlockInfo.from_seconds(150)
        args = (DUMMY_UNCLAIMED_TOKEN, DUMMY_TOKEN_ADDR)
        exactly_one = InvalidFunds("Auctions require exactly one coin to be sent.")

        # No coins
        with pytest.raises(InvalidFunds) as exc:
            started.place_bid(block, "sender", *args, [])
        assert exc.value == exactly_one

        # Multiple coins
        with pytest.raises(InvalidFunds) as exc:
            started.place_bid(
                block, "sender", *args,
                [Coin(denom="usd", amount=100), Coin(denom="uluna", amount=100)],
            )
        assert exc.value == exactly_one

        wrong_denom = InvalidFunds("No usd assets are provided to auction")

        # Invalid denom
        with pytest.raises(InvalidFunds) as exc:
            started.place_bid(block, "sender", *args, coins(100, "uluna"))
        assert exc.value == wrong_denom

        # Correct denom, zero amount
        with pytest.raises(InvalidFunds) as exc:
            started.place_bid(block, "sender", *args, coins(0, "usd"))
        assert exc.value == wrong_denom
        assert str(exc.value) == "InvalidFunds: No usd assets are provided to auction"

    def test_min_bid_enforced(self, engine):
        start_auction(engine, min_bid=50)
        with pytest.raises(InvalidFunds) as exc:
            bid(engine, 150, "sender", 49)
        assert exc.value.msg == "Bid must be at least 50 usd"

        bid(engine, 150, "sender", 50)
        assert engine.get_auction(1).high_bidder_amount == 50

    def test_cancelled_checked_first(self, started):
        """A cancelled auction reports AuctionCancelled even when also not started."""
        started.cancel_auction(BlockInfo.from_seconds(50), DUMMY_TOKEN_OWNER, DUMMY_UNCLAIMED_TOKEN, DUMMY_TOKEN_ADDR)
        with pytest.raises(AuctionCancelled):
            bid(started, 50, DUMMY_TOKEN_OWNER, 0, denom="uluna")
        with pytest.raises(AuctionCancelled):
            bid(started, 150, "sender", 100)

    def test_check_order_owner_before_funds(self, started):
        """Owner with bad funds reports TokenOwnerCannotBid."""
        with pytest.raises(TokenOwnerCannotBid):
            started.place_bid(BlockInfo.from_seconds(150), DUMMY_TOKEN_OWNER, DUMMY_UNCLAIMED_TOKEN, DUMMY_TOKEN_ADDR, [])

    def test_check_order_coin_count_before_high_bidder(self, started):
        bid(started, 150, "sender", 100)
        with pytest.raises(InvalidFunds):
            started.place_bid(BlockInfo.from_seconds(160), "sender", DUMMY_UNCLAIMED_TOKEN, DUMMY_TOKEN_ADDR, [])

    def test_check_order_high_bidder_before_denom(self, started):
        bid(started, 150, "sender", 100)
        with pytest.raises(HighestBidderCannotOutBid):
            bid(started, 160, "sender", 200, denom="uluna")

    def test_high_bid_tracks_latest_accepted(self, started):
        """High bid is non-decreasing and equals the last accepted bid."""
        amounts = []
        bidders = ["a", "b"]
        for i, amount in enumerate([10, 20, 35, 36, 100]):
            bid(started, 150 + i, bidders[i % 2], amount)
            amounts.append(started.get_auction(1).high_bidder_amount)
            assert amounts[-1] == amount

        assert amounts == sorted(amounts)
        assert len(started.read_bids(1)) == 5

    def test_rejected_bid_leaves_no_writes(self, started):
        bid(started, 150, "sender", 100)
        with pytest.raises(BidSmallerThanHighestBid):
            bid(started, 160, "other", 90)

        auction = started.get_auction(1)
        assert (auction.high_bidder_addr, auction.high_bidder_amount) == ("sender", 100)
        assert len(started.read_bids(1)) == 1


# =============================================================================
# Cancel Tests
# =============================================================================


class TestCancelAuction:
    """Tests for cancellation."""

    def cancel(self, engine, seconds, sender=DUMMY_TOKEN_OWNER):
        return engine.cancel_auction(
            BlockInfo.from_seconds(seconds), sender, DUMMY_UNCLAIMED_TOKEN, DUMMY_TOKEN_ADDR
        )

    def test_non_owner_unauthorized(self, started):
        with pytest.raises(Unauthorized):
            self.cancel(started, 150, sender="anyone")

    def test_after_end(self, started):
        with pytest.raises(AuctionEnded):
            self.cancel(started, 200)

    def test_no_bids(self, started):
        res = self.cancel(started, 150)
        assert res.messages == [
            TransferAssetOut(to=DUMMY_TOKEN_OWNER, token_id=DUMMY_UNCLAIMED_TOKEN, token_address=DUMMY_TOKEN_ADDR),
        ]
        assert res.attributes == [
            ("action", "cancel_auction"),
            ("token_id", DUMMY_UNCLAIMED_TOKEN),
            ("token_contract", DUMMY_TOKEN_ADDR),
            ("auction_id", "1"),
        ]
        assert started.get_auction(1).is_cancelled

    def test_before_start(self, started):
        res = self.cancel(started, 10)
        assert len(res.messages) == 1
        assert started.get_auction(1).status(BlockInfo.from_seconds(10)) is AuctionStatus.CANCELLED

    def test_with_bid_refunds(self, started):
        bid(started, 150, "sender", 100)
        res = self.cancel(started, 160)

        assert res.messages == [
            TransferAssetOut(to=DUMMY_TOKEN_OWNER, token_id=DUMMY_UNCLAIMED_TOKEN, token_address=DUMMY_TOKEN_ADDR),
            TransferCurrency(to="sender", denom="usd", amount=100),
        ]
        auction = started.get_auction(1)
        assert auction.is_cancelled
        # Bid history is never rewritten
        assert len(started.read_bids(1)) == 1

    def test_cancel_twice(self, started):
        self.cancel(started, 150)
        with pytest.raises(AuctionCancelled):
            self.cancel(started, 160)

    def test_non_existing(self, engine):
        with pytest.raises(AuctionDoesNotExist):
            self.cancel(engine, 150)


# =============================================================================
# Claim Tests
# =============================================================================


class TestClaim:
    """Tests for settlement."""

    def claim(self, engine, seconds, sender="anyone"):
        return engine.claim(
            BlockInfo.from_seconds(seconds), sender, DUMMY_UNCLAIMED_TOKEN, DUMMY_TOKEN_ADDR
        )

    def test_before_end(self, started):
        with pytest.raises(AuctionNotEnded):
            self.claim(started, 150)

    def test_no_bids(self, started):
        res = self.claim(started, 250)
        assert res.messages == [
            TransferAssetOut(to=DUMMY_TOKEN_OWNER, token_id=DUMMY_UNCLAIMED_TOKEN, token_address=DUMMY_TOKEN_ADDR),
        ]
        assert res.attribute("recipient") == DUMMY_TOKEN_OWNER
        assert res.attribute("winning_bid_amount") == "0"

    def test_with_bid(self, started):
        bid(started, 150, "sender", 100)
        res = self.claim(started, 250)

        assert res.messages == [
            TransferCurrency(to=DUMMY_TOKEN_OWNER, denom="usd", amount=100),
            TransferAssetOut(to="sender", token_id=DUMMY_UNCLAIMED_TOKEN, token_address=DUMMY_TOKEN_ADDR),
        ]
        assert res.attributes == [
            ("action", "claim"),
            ("token_id", DUMMY_UNCLAIMED_TOKEN),
            ("token_contract", DUMMY_TOKEN_ADDR),
            ("recipient", "sender"),
            ("winning_bid_amount", "100"),
            ("auction_id", "1"),
        ]

    def test_permissionless(self, started):
        bid(started, 150, "sender", 100)
        res = self.claim(started, 250, sender="random_keeper")
        assert res.attribute("recipient") == "sender"

    def test_double_claim(self, started):
        self.claim(started, 250)
        with pytest.raises(AuctionAlreadyClaimed):
            self.claim(started, 260)
        assert started.get_auction(1).status(BlockInfo.from_seconds(260)) is AuctionStatus.CLAIMED

    def test_cancelled(self, started):
        started.cancel_auction(BlockInfo.from_seconds(150), DUMMY_TOKEN_OWNER, DUMMY_UNCLAIMED_TOKEN, DUMMY_TOKEN_ADDR)
        with pytest.raises(AuctionCancelled):
            self.claim(started, 250)

    def test_non_existing(self, engine):
        with pytest.raises(AuctionDoesNotExist):
            self.claim(engine, 250)


# =============================================================================
# Status Tests
# =============================================================================


class TestStatus:
    """Tests for derived auction status."""

    def test_lifecycle(self, started):
        auction = started.get_auction(1)
        assert auction.status(BlockInfo.from_seconds(50)) is AuctionStatus.PENDING
        assert auction.status(BlockInfo.from_seconds(150)) is AuctionStatus.OPEN
        assert auction.status(BlockInfo.from_seconds(250)) is AuctionStatus.ENDED
