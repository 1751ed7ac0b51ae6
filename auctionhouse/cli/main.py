"""
Auction House CLI - Command Line Interface

Main entry point for all CLI commands. Every mutating command runs as one
operation against the SQLite store in the data directory and prints the
resulting instructions and attributes as JSON.
"""

import functools
import json
import time

import click

from auctionhouse.utils.logger import setup_logging, get_logger

logger = get_logger("cli")


def _block(time_ms, height) -> "BlockInfo":
    from auctionhouse.core.expiration import BlockInfo

    if time_ms is None:
        time_ms = int(time.time() * 1000)
    return BlockInfo.from_millis(time_ms, height=height)


def _echo_json(data):
    click.echo(json.dumps(data, indent=2))


def block_options(f):
    """Current block time and height for the operation."""
    f = click.option("--height", default=0, show_default=True, help="Block height")(f)
    f = click.option("--time-ms", type=int, default=None, help="Block time in ms (default: now)")(f)
    return f


def reports_errors(f):
    """Turn engine rejections into a one-line message and exit status 1."""
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        from auctionhouse.core.errors import AuctionError

        try:
            return f(*args, **kwargs)
        except AuctionError as e:
            logger.debug(f"{f.__name__} failed: {e!r}")
            click.echo(f"✗ {e}", err=True)
            raise SystemExit(1)
    return wrapper


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--data-dir", default=None, help="Data directory (default: AUCTION_DATA_DIR or ./data)")
@click.option("--env-file", default=None, help="dotenv file with AUCTION_* settings")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, data_dir, env_file):
    """Auction House - escrow auctions for non-fungible assets"""
    import logging
    from auctionhouse.core.config import load_config

    config = load_config(env_file, data_dir=data_dir)
    config.ensure_dirs()

    level = logging.DEBUG if debug else config.log_level
    setup_logging(level=level, log_dir=str(config.log_dir), force=True)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


def _contract(ctx):
    from auctionhouse.contract import AuctionContract
    from auctionhouse.core.storage import StorageManager

    config = ctx.obj["config"]
    if "contract" not in ctx.obj:
        storage = StorageManager(None if config.in_memory else config.data_dir, config.db_name)
        ctx.call_on_close(storage.close)
        ctx.obj["contract"] = AuctionContract(storage, config)
    return ctx.obj["contract"]


# =============================================================================
# Execute Commands
# =============================================================================


@cli.command("init")
@click.pass_context
def init(ctx):
    """Initialize the auction id counter"""
    response = _contract(ctx).instantiate()
    _echo_json(response.to_dict())


@cli.command("deposit")
@click.option("--owner", required=True, help="Address depositing the asset")
@click.option("--collection", required=True, help="Asset collection address")
@click.option("--token-id", required=True, help="Asset id")
@click.option("--start-ms", type=int, required=True, help="Auction start (ms since epoch)")
@click.option("--duration-ms", type=int, required=True, help="Auction length (ms)")
@click.option("--denom", required=True, help="Accepted bid denom")
@click.option("--min-bid", type=int, default=None, help="Optional bid floor")
@block_options
@click.pass_context
@reports_errors
def deposit(ctx, owner, collection, token_id, start_ms, duration_ms, denom, min_bid, time_ms, height):
    """Deposit an asset and open an auction for it"""
    msg = {
        "type": "receive_nft",
        "sender": owner,
        "token_id": token_id,
        "msg": {
            "start_time": start_ms,
            "duration": duration_ms,
            "coin_denom": denom,
            "min_bid": min_bid,
        },
    }
    response = _contract(ctx).execute(_block(time_ms, height), {"sender": collection}, msg)
    _echo_json(response.to_dict())


@cli.command("bid")
@click.option("--bidder", required=True, help="Bidder address")
@click.option("--collection", required=True, help="Asset collection address")
@click.option("--token-id", required=True, help="Asset id")
@click.option("--amount", type=int, required=True, help="Bid amount")
@click.option("--denom", required=True, help="Bid denom")
@block_options
@click.pass_context
@reports_errors
def bid(ctx, bidder, collection, token_id, amount, denom, time_ms, height):
    """Place a bid on an asset's current auction"""
    msg = {"type": "place_bid", "token_id": token_id, "token_address": collection}
    info = {"sender": bidder, "funds": [{"denom": denom, "amount": amount}]}
    response = _contract(ctx).execute(_block(time_ms, height), info, msg)
    _echo_json(response.to_dict())


@cli.command("cancel")
@click.option("--sender", required=True, help="Auction owner")
@click.option("--collection", required=True, help="Asset collection address")
@click.option("--token-id", required=True, help="Asset id")
@block_options
@click.pass_context
@reports_errors
def cancel(ctx, sender, collection, token_id, time_ms, height):
    """Cancel an asset's current auction"""
    msg = {"type": "cancel_auction", "token_id": token_id, "token_address": collection}
    response = _contract(ctx).execute(_block(time_ms, height), {"sender": sender}, msg)
    _echo_json(response.to_dict())


@cli.command("claim")
@click.option("--sender", required=True, help="Address triggering settlement")
@click.option("--collection", required=True, help="Asset collection address")
@click.option("--token-id", required=True, help="Asset id")
@block_options
@click.pass_context
@reports_errors
def claim(ctx, sender, collection, token_id, time_ms, height):
    """Settle an ended auction"""
    msg = {"type": "claim", "token_id": token_id, "token_address": collection}
    response = _contract(ctx).execute(_block(time_ms, height), {"sender": sender}, msg)
    _echo_json(response.to_dict())


# =============================================================================
# Query Commands
# =============================================================================


@cli.command("show")
@click.argument("auction_id", type=int)
@block_options
@click.pass_context
@reports_errors
def show(ctx, auction_id, time_ms, height):
    """Show an auction by id"""
    msg = {"type": "auction_state", "auction_id": auction_id}
    _echo_json(_contract(ctx).query(_block(time_ms, height), msg))


@cli.command("latest")
@click.option("--collection", required=True, help="Asset collection address")
@click.option("--token-id", required=True, help="Asset id")
@block_options
@click.pass_context
@reports_errors
def latest(ctx, collection, token_id, time_ms, height):
    """Show an asset's current auction"""
    msg = {"type": "latest_auction_state", "token_id": token_id, "token_address": collection}
    _echo_json(_contract(ctx).query(_block(time_ms, height), msg))


@cli.command("bids")
@click.argument("auction_id", type=int)
@click.option("--start-after", type=int, default=None, help="Resume after this position")
@click.option("--limit", type=int, default=None, help="Page size")
@click.option("--order", type=click.Choice(["asc", "desc"]), default="asc", show_default=True)
@click.pass_context
@reports_errors
def bids(ctx, auction_id, start_after, limit, order):
    """List an auction's bids"""
    msg = {
        "type": "bids",
        "auction_id": auction_id,
        "start_after": start_after,
        "limit": limit,
        "order_by": order,
    }
    _echo_json(_contract(ctx).query(_block(None, 0), msg))


@cli.command("summaries")
@click.option("--collection", default=None, help="Only this collection")
@click.option(
    "--start-after",
    nargs=2,
    default=None,
    metavar="COLLECTION TOKEN_ID",
    help="Resume after this asset",
)
@click.option("--limit", type=int, default=None, help="Page size")
@click.pass_context
@reports_errors
def summaries(ctx, collection, start_after, limit):
    """List per-asset auction histories"""
    msg = {
        "type": "auction_infos",
        "token_address": collection,
        "start_after": list(start_after) if start_after else None,
        "limit": limit,
    }
    _echo_json(_contract(ctx).query(_block(None, 0), msg))


# =============================================================================
# Demo Command
# =============================================================================


@cli.command("demo")
def demo():
    """Run a full auction lifecycle against an in-memory store"""
    from auctionhouse.contract import AuctionContract
    from auctionhouse.core.expiration import BlockInfo
    from auctionhouse.core.storage import StorageManager

    click.echo("=" * 60)
    click.echo("  AUCTION HOUSE - DEMO")
    click.echo("=" * 60)
    click.echo()

    contract = AuctionContract(StorageManager())
    contract.instantiate()

    click.echo("📦 Alice deposits token-1 (start 100s, duration 100s, usd)...")
    res = contract.execute(
        BlockInfo.from_seconds(0),
        {"sender": "collection"},
        {
            "type": "receive_nft",
            "sender": "alice",
            "token_id": "token-1",
            "msg": {"start_time": 100_000, "duration": 100_000, "coin_denom": "usd"},
        },
    )
    click.echo(f"  ✓ Auction {res.attribute('auction_id')}: {res.attribute('start_time')} -> {res.attribute('end_time')}")
    click.echo()

    place = {"type": "place_bid", "token_id": "token-1", "token_address": "collection"}
    for seconds, bidder, amount in [(150, "bob", 100), (160, "carol", 200), (170, "bob", 250)]:
        res = contract.execute(
            BlockInfo.from_seconds(seconds),
            {"sender": bidder, "funds": [{"denom": "usd", "amount": amount}]},
            place,
        )
        refunds = ", ".join(f"{m.amount} {m.denom} -> {m.to}" for m in res.messages) or "none"
        click.echo(f"  ✓ t={seconds}s {bidder} bids {amount} usd (refunds: {refunds})")
    click.echo()

    click.echo("⚖️  Settling at t=300s...")
    res = contract.execute(
        BlockInfo.from_seconds(300),
        {"sender": "anyone"},
        {"type": "claim", "token_id": "token-1", "token_address": "collection"},
    )
    click.echo(f"  ✓ Winner: {res.attribute('recipient')} for {res.attribute('winning_bid_amount')} usd")
    for m in res.messages:
        click.echo(f"  ✓ {m}")
    click.echo()

    bids = contract.query(BlockInfo.from_seconds(300), {"type": "bids", "auction_id": 1, "order_by": "desc"})
    click.echo(f"  Bid history (newest first): {[b['amount'] for b in bids['bids']]}")


if __name__ == "__main__":
    cli()
