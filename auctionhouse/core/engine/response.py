"""
Engine results: outbound transfer instructions plus diagnostic attributes.

The engine never moves funds or assets itself. It returns instructions that
the currency and asset custody collaborators execute after the operation
commits.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple, Union


@dataclass(frozen=True)
class TransferCurrency:
    """Pay `amount` of `denom` out of escrow to `to`."""
    to: str
    denom: str
    amount: int

    def to_dict(self) -> dict:
        return {
            "transfer_currency": {
                "to": self.to,
                "denom": self.denom,
                "amount": str(self.amount),
            }
        }


@dataclass(frozen=True)
class TransferAssetOut:
    """Release the escrowed asset to `to`."""
    to: str
    token_id: str
    token_address: str

    def to_dict(self) -> dict:
        return {
            "transfer_asset_out": {
                "to": self.to,
                "token_id": self.token_id,
                "token_address": self.token_address,
            }
        }


Instruction = Union[TransferCurrency, TransferAssetOut]


@dataclass
class Response:
    """Result of a mutating operation."""
    messages: List[Instruction] = field(default_factory=list)
    attributes: List[Tuple[str, str]] = field(default_factory=list)

    def add_message(self, message: Instruction) -> "Response":
        self.messages.append(message)
        return self

    def add_attribute(self, key: str, value) -> "Response":
        self.attributes.append((key, str(value)))
        return self

    def add_attributes(self, attributes: Iterable[Tuple[str, object]]) -> "Response":
        for key, value in attributes:
            self.add_attribute(key, value)
        return self

    def attribute(self, key: str) -> Optional[str]:
        """First value recorded for `key`, or None."""
        for k, v in self.attributes:
            if k == key:
                return v
        return None

    @property
    def action(self) -> Optional[str]:
        return self.attribute("action")

    def to_dict(self) -> dict:
        return {
            "messages": [m.to_dict() for m in self.messages],
            "attributes": [{"key": k, "value": v} for k, v in self.attributes],
        }
