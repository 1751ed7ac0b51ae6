"""
Contract entry points: instantiate, execute and query.

The single place where inbound messages are validated and dispatched into
the engine. The engine itself knows nothing about message shapes.
"""

from typing import Any, Optional, Union

from auctionhouse.core.config import AuctionConfig
from auctionhouse.core.engine import AuctionEngine, Response
from auctionhouse.core.expiration import BlockInfo
from auctionhouse.core.messages import (
    AuctionInfosQuery,
    AuctionStateQuery,
    BidsQuery,
    CancelAuction,
    Claim,
    LatestAuctionStateQuery,
    MessageInfo,
    PlaceBid,
    ReceiveNft,
    parse_execute_msg,
    parse_message_info,
    parse_query_msg,
)
from auctionhouse.core.storage import StorageManager
from auctionhouse.utils.logger import get_logger

logger = get_logger("contract")


class AuctionContract:
    """
    Message-level facade over the AuctionEngine.

    Example:
        contract = AuctionContract(StorageManager())
        contract.instantiate()
        contract.execute(env, MessageInfo(sender="collection"), {
            "type": "receive_nft",
            "sender": "alice",
            "token_id": "token-1",
            "msg": {"start_time": 100000, "duration": 100000, "coin_denom": "usd"},
        })
    """

    def __init__(self, storage: StorageManager, config: Optional[AuctionConfig] = None):
        self.config = config or AuctionConfig()
        self.storage = storage
        self.engine = AuctionEngine(storage, self.config)

    def instantiate(self) -> Response:
        return self.engine.instantiate()

    def execute(self, env: BlockInfo, info: Union[MessageInfo, dict], msg: Any) -> Response:
        """
        Validate and dispatch an execute message.

        Raises:
            InvalidMessage: if the message or its info does not match the schema
            AuctionError: if the engine rejects the operation
        """
        info = parse_message_info(info)
        msg = parse_execute_msg(msg)

        if isinstance(msg, ReceiveNft):
            # The collection that delivered the asset is the message sender
            return self.engine.open_auction(
                env,
                owner=msg.sender,
                token_id=msg.token_id,
                token_address=info.sender,
                start_time=msg.msg.start_time,
                duration=msg.msg.duration,
                coin_denom=msg.msg.coin_denom,
                min_bid=msg.msg.min_bid,
            )
        if isinstance(msg, PlaceBid):
            return self.engine.place_bid(
                env, info.sender, msg.token_id, msg.token_address, info.funds
            )
        if isinstance(msg, CancelAuction):
            return self.engine.cancel_auction(env, info.sender, msg.token_id, msg.token_address)
        if isinstance(msg, Claim):
            return self.engine.claim(env, info.sender, msg.token_id, msg.token_address)

        raise TypeError(f"Unhandled execute message: {type(msg).__name__}")

    def query(self, env: BlockInfo, msg: Any) -> Any:
        """
        Validate and answer a query. Results are JSON-compatible.
        """
        msg = parse_query_msg(msg)

        if isinstance(msg, AuctionInfosQuery):
            infos = self.engine.read_auction_infos(msg.token_address, msg.start_after, msg.limit)
            return [info.to_dict() for info in infos]
        if isinstance(msg, AuctionStateQuery):
            return self._auction_state(env, self.engine.get_auction(msg.auction_id))
        if isinstance(msg, LatestAuctionStateQuery):
            return self._auction_state(
                env, self.engine.latest_auction(msg.token_id, msg.token_address)
            )
        if isinstance(msg, BidsQuery):
            bids = self.engine.read_bids(msg.auction_id, msg.start_after, msg.limit, msg.order_by)
            return {"bids": [bid.to_dict() for bid in bids]}

        raise TypeError(f"Unhandled query message: {type(msg).__name__}")

    @staticmethod
    def _auction_state(env: BlockInfo, auction) -> dict:
        state = auction.to_dict()
        state["status"] = auction.status(env).value
        return state
