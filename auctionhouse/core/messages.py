"""
Message schemas for the auction house entry points.

Inbound messages are tagged unions discriminated on `type`:

Execute:
- `receive_nft`: an asset was deposited; carries an embedded `StartAuction`
- `place_bid`, `cancel_auction`, `claim`: address an asset's current auction

Query:
- `auction_infos`: per-asset auction history, paginated by asset key
- `auction_state`: one auction by id
- `latest_auction_state`: the current auction of an asset
- `bids`: an auction's bid ledger, paginated by position
"""

import json
from typing import Annotated, Any, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from auctionhouse.core.errors import InvalidMessage
from auctionhouse.core.state.bids import OrderBy
from auctionhouse.utils.validation import (
    MAX_UINT128,
    validate_address,
    validate_amount,
    validate_denom,
    validate_millis,
    validate_token_id,
)


def _check(result) -> None:
    valid, err = result
    if not valid:
        raise ValueError(err)


class _Message(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


# =============================================================================
# Funds
# =============================================================================


class Coin(_Message):
    """An amount of a single fungible denom."""
    denom: str
    amount: int = Field(ge=0, le=MAX_UINT128)

    @field_validator("denom")
    @classmethod
    def _denom(cls, v):
        _check(validate_denom(v))
        return v

    @field_validator("amount")
    @classmethod
    def _amount(cls, v):
        _check(validate_amount(v))
        return v


def coins(amount: int, denom: str) -> List[Coin]:
    return [Coin(denom=denom, amount=amount)]


class MessageInfo(_Message):
    """Sender of a message and the funds attached to it."""
    sender: str
    funds: List[Coin] = Field(default_factory=list)

    @field_validator("sender")
    @classmethod
    def _sender(cls, v):
        _check(validate_address(v, "sender"))
        return v


# =============================================================================
# Execute Messages
# =============================================================================


class StartAuction(_Message):
    """Embedded deposit payload: how to auction the deposited asset."""
    start_time: int
    duration: int
    coin_denom: str
    min_bid: Optional[int] = Field(default=None, ge=0, le=MAX_UINT128)

    @field_validator("start_time", "duration")
    @classmethod
    def _millis(cls, v, info):
        _check(validate_millis(v, info.field_name))
        return v

    @field_validator("coin_denom")
    @classmethod
    def _denom(cls, v):
        _check(validate_denom(v))
        return v


class _AssetRef(_Message):
    token_id: str
    token_address: str

    @field_validator("token_id")
    @classmethod
    def _token_id(cls, v):
        _check(validate_token_id(v))
        return v

    @field_validator("token_address")
    @classmethod
    def _token_address(cls, v):
        _check(validate_address(v, "token_address"))
        return v


class ReceiveNft(_Message):
    """
    Deposit notification from an asset collection.

    `sender` is the previous owner of the asset; the collection itself is the
    message sender (`MessageInfo.sender`). `msg` may be given as a model, a
    dict, or a JSON string.
    """
    type: Literal["receive_nft"] = "receive_nft"
    sender: str
    token_id: str
    msg: StartAuction

    @field_validator("msg", mode="before")
    @classmethod
    def _decode_msg(cls, v):
        if isinstance(v, (str, bytes)):
            return json.loads(v)
        return v

    @field_validator("sender")
    @classmethod
    def _sender(cls, v):
        _check(validate_address(v, "sender"))
        return v

    @field_validator("token_id")
    @classmethod
    def _token_id(cls, v):
        _check(validate_token_id(v))
        return v


class PlaceBid(_AssetRef):
    type: Literal["place_bid"] = "place_bid"


class CancelAuction(_AssetRef):
    type: Literal["cancel_auction"] = "cancel_auction"


class Claim(_AssetRef):
    type: Literal["claim"] = "claim"


ExecuteMsg = Annotated[
    Union[ReceiveNft, PlaceBid, CancelAuction, Claim],
    Field(discriminator="type"),
]


# =============================================================================
# Query Messages
# =============================================================================


class AuctionInfosQuery(_Message):
    type: Literal["auction_infos"] = "auction_infos"
    token_address: Optional[str] = None
    # Exclusive (token_address, token_id) cursor
    start_after: Optional[Tuple[str, str]] = None
    limit: Optional[int] = Field(default=None, ge=0)


class AuctionStateQuery(_Message):
    type: Literal["auction_state"] = "auction_state"
    auction_id: int = Field(ge=0, le=MAX_UINT128)


class LatestAuctionStateQuery(_AssetRef):
    type: Literal["latest_auction_state"] = "latest_auction_state"


class BidsQuery(_Message):
    type: Literal["bids"] = "bids"
    auction_id: int = Field(ge=0, le=MAX_UINT128)
    start_after: Optional[int] = Field(default=None, ge=0)
    limit: Optional[int] = Field(default=None, ge=0)
    order_by: Optional[OrderBy] = None


QueryMsg = Annotated[
    Union[AuctionInfosQuery, AuctionStateQuery, LatestAuctionStateQuery, BidsQuery],
    Field(discriminator="type"),
]

_info_adapter = TypeAdapter(MessageInfo)
_execute_adapter = TypeAdapter(ExecuteMsg)
_query_adapter = TypeAdapter(QueryMsg)


def _parse(adapter: TypeAdapter, data: Any):
    try:
        if isinstance(data, (str, bytes)):
            return adapter.validate_json(data)
        return adapter.validate_python(data)
    except ValidationError as e:
        raise InvalidMessage(str(e)) from e


def parse_message_info(data: Any) -> MessageInfo:
    """Validate the sender and attached funds of an execute message."""
    if isinstance(data, MessageInfo):
        return data
    return _parse(_info_adapter, data)


def parse_execute_msg(data: Any):
    """Validate a raw execute message (dict, JSON, or model)."""
    if isinstance(data, (ReceiveNft, PlaceBid, CancelAuction, Claim)):
        return data
    return _parse(_execute_adapter, data)


def parse_query_msg(data: Any):
    """Validate a raw query message (dict, JSON, or model)."""
    if isinstance(data, (AuctionInfosQuery, AuctionStateQuery, LatestAuctionStateQuery, BidsQuery)):
        return data
    return _parse(_query_adapter, data)


__all__ = [
    "Coin",
    "coins",
    "MessageInfo",
    "parse_message_info",
    "StartAuction",
    "ReceiveNft",
    "PlaceBid",
    "CancelAuction",
    "Claim",
    "ExecuteMsg",
    "AuctionInfosQuery",
    "AuctionStateQuery",
    "LatestAuctionStateQuery",
    "BidsQuery",
    "QueryMsg",
    "parse_execute_msg",
    "parse_query_msg",
]
