"""
APEX Risk Position Sizer

Share count from a fixed fraction of the running balance at risk:
- Risk amount = balance * risk_pct
- Shares = floor(risk amount / stop distance)
- Position value capped at max_position_pct of balance
"""

import logging
import math
from typing import Any, Optional

from apex.core.exceptions import ApexConfigError
from apex.core.models import PositionSize

logger = logging.getLogger(__name__)

# Default config (overridable via settings or constructor)
RISK_PER_TRADE_PCT = 1.0
MAX_POSITION_PCT = 95.0


class RiskPositionSizer:
    """
    Calculate whole-share position sizes.

    Args:
        settings: Optional settings object (e.g. from apex.config.settings).
                  If provided, uses settings.risk_per_trade_pct and
                  settings.max_position_pct.
        risk_per_trade_pct: Override risk % (default 1.0).
        max_position_pct: Override position value cap % (default 95.0).
    """

    def __init__(
        self,
        settings: Any = None,
        risk_per_trade_pct: Optional[float] = None,
        max_position_pct: Optional[float] = None,
    ):
        if settings is not None:
            self.risk_pct = getattr(settings, "risk_per_trade_pct", RISK_PER_TRADE_PCT)
            self.max_position_pct = getattr(settings, "max_position_pct", MAX_POSITION_PCT)
        else:
            self.risk_pct = risk_per_trade_pct if risk_per_trade_pct is not None else RISK_PER_TRADE_PCT
            self.max_position_pct = max_position_pct if max_position_pct is not None else MAX_POSITION_PCT

        if not 0 < self.risk_pct <= 100:
            raise ApexConfigError(f"risk_per_trade_pct must be within (0, 100], got {self.risk_pct}")
        if not 0 < self.max_position_pct <= 100:
            raise ApexConfigError(f"max_position_pct must be within (0, 100], got {self.max_position_pct}")

    def size(self, balance: float, entry_price: float, stop_loss: float, symbol: str = "") -> PositionSize:
        """
        Size a position.

        Returns:
            PositionSize; ``can_trade`` is False when the stop distance is
            zero or the result rounds to no shares.
        """
        risk_per_share = abs(entry_price - stop_loss)
        if balance <= 0 or entry_price <= 0:
            return self._reject(risk_per_share, "Balance and entry price must be positive")
        if risk_per_share <= 0:
            logger.warning("[%s] Rejected: stop equals entry (%.4f)", symbol, entry_price)
            return self._reject(risk_per_share, "Stop loss equals entry price")

        risk_amount = balance * (self.risk_pct / 100.0)
        shares = math.floor(risk_amount / risk_per_share)

        max_shares = math.floor(balance * (self.max_position_pct / 100.0) / entry_price)
        capped = shares > max_shares
        if capped:
            logger.debug("[%s] Shares capped %d -> %d by position value limit", symbol, shares, max_shares)
            shares = max_shares

        if shares <= 0:
            return self._reject(risk_per_share, "Rounded position size <= 0")

        return PositionSize(
            shares=shares,
            risk_amount=shares * risk_per_share,
            position_value=shares * entry_price,
            risk_per_share=risk_per_share,
            capped=capped,
        )

    def _reject(self, risk_per_share: float, reason: str) -> PositionSize:
        return PositionSize(
            shares=0,
            risk_amount=0.0,
            position_value=0.0,
            risk_per_share=risk_per_share,
            can_trade=False,
            rejection_reason=reason,
        )
