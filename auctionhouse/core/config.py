"""
Configuration parameters for the auction house.

Defines storage locations and query paging limits. Values can be overridden
through `AUCTION_*` environment variables or a `.env` file.
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from auctionhouse.core.state.bids import DEFAULT_LIMIT, MAX_LIMIT
from auctionhouse.utils.logger import resolve_level

ENV_PREFIX = "AUCTION_"


@dataclass
class AuctionConfig:
    """Auction house configuration parameters"""

    # Query paging
    default_limit: int = DEFAULT_LIMIT  # Page size when none is given
    max_limit: int = MAX_LIMIT  # Larger requested pages are clamped

    # Storage
    db_name: str = "auctions.db"
    in_memory: bool = False  # Ignore data_dir and keep state in memory

    # Paths
    data_dir: Path = Path("data")
    log_dir: Path = Path("logs")

    # Logging
    log_level: str = "WARNING"  # Overridden by the CLI --debug flag

    def __post_init__(self):
        self.data_dir = Path(self.data_dir).expanduser()
        self.log_dir = Path(self.log_dir).expanduser()
        resolve_level(self.log_level)
        if self.default_limit > self.max_limit:
            raise ValueError(
                f"default_limit {self.default_limit} exceeds max_limit {self.max_limit}"
            )

    def ensure_dirs(self):
        """Create necessary directories"""
        self.data_dir.mkdir(exist_ok=True, parents=True)
        self.log_dir.mkdir(exist_ok=True, parents=True)


def load_config(env_file: Optional[str] = None, **overrides) -> AuctionConfig:
    """
    Load configuration from the environment.

    Reads `AUCTION_<FIELD>` variables (e.g. `AUCTION_MAX_LIMIT`), after
    loading `env_file` (or a `.env` in the working directory) if present.
    Explicit keyword overrides win over the environment.

    Args:
        env_file: Optional path to a dotenv file

    Returns:
        AuctionConfig instance
    """
    load_dotenv(dotenv_path=env_file or find_dotenv(usecwd=True), override=False)

    values = {}
    for f in fields(AuctionConfig):
        raw = os.environ.get(f"{ENV_PREFIX}{f.name.upper()}")
        if raw is None:
            continue
        if f.type in (int, "int"):
            values[f.name] = int(raw)
        elif f.type in (bool, "bool"):
            values[f.name] = raw.strip().lower() in ("1", "true", "yes", "on")
        else:
            values[f.name] = raw

    values.update({k: v for k, v in overrides.items() if v is not None})
    return AuctionConfig(**values)
