"""Copy-trade decision policy.

Decides whether a whale signal is worth mirroring and how big the copy
should be.  Kept apart from the executor so eligibility and sizing can
change without touching ledger-mutation code.

Sizing: base_notional x (percentage / 100), rounded to 6 decimals.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from memex.analytics.whale_tracker import SIGNAL_BUY, WhaleSignal

NO_BUY_SIGNAL = "No buy signal"


@dataclass
class CopyDecision:
    """Outcome of the copy-trade policy for one signal."""
    eligible: bool
    amount: float = 0.0
    percentage: float = 0.0
    reason: str = ""
    signal: WhaleSignal | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "eligible": self.eligible,
            "amount": self.amount,
            "percentage": self.percentage,
            "reason": self.reason,
            "signal": self.signal.to_dict() if self.signal else None,
        }


def decide_copy(
    signal: WhaleSignal | None,
    percentage: float,
    base_notional: float = 0.1,
) -> CopyDecision:
    """Go / no-go for mirroring ``signal`` at ``percentage`` of the base notional."""
    if signal is None or signal.signal != SIGNAL_BUY:
        return CopyDecision(
            eligible=False,
            percentage=percentage,
            reason=NO_BUY_SIGNAL,
            signal=signal,
        )

    amount = round(base_notional * percentage / 100, 6)
    return CopyDecision(
        eligible=True,
        amount=amount,
        percentage=percentage,
        reason=f"{signal.signal} @ {signal.confidence}% confidence",
        signal=signal,
    )
