"""Paper fills: synthetic execution price and transaction reference.

Nothing here touches a chain.  Fills are random stand-ins so the ledger
can be exercised end to end; live settlement would replace this class
with a real router returning the on-chain price and tx hash.
"""

from __future__ import annotations

import random
import secrets
import uuid
from dataclasses import dataclass


@dataclass
class PaperFill:
    price: float
    tx: str


class PaperFillSimulator:
    """Produces synthetic fills.  Pass a seeded ``rng`` for reproducible runs."""

    def __init__(self, max_price: float = 0.001, rng: random.Random | None = None):
        self._max_price = max_price
        self._rng = rng or random.Random()

    def fill(self, token: str, amount: float, side: str) -> PaperFill:
        price = round(self._rng.random() * self._max_price, 10)
        return PaperFill(price=price, tx=random_hex_address(64, self._rng))


def new_trade_id() -> str:
    return uuid.uuid4().hex[:12]


def random_hex_address(nibbles: int = 40, rng: random.Random | None = None) -> str:
    """0x-prefixed hex string (40 nibbles = address, 64 = tx hash)."""
    if rng is None:
        return "0x" + secrets.token_hex(nibbles // 2)
    return "0x" + "".join(rng.choice("0123456789abcdef") for _ in range(nibbles))
