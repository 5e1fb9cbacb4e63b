"""Classification Rules

Pure functions shared by every adapter so that the same raw-delta pattern
classifies identically regardless of where it came from:
- classify_spot_side: BUY / SELL / TRANSFER from native and token deltas
- classify_transfer_side: TRANSFER_IN / TRANSFER_OUT for native-only moves
- classify_perp_side: LONG / SHORT from a signed position size
- derive_price / spot_total / perp_pnl: derived numeric fields
"""

from typing import Optional

from tax_exporter.core.models import (
    BUY, SELL, TRANSFER, TRANSFER_IN, TRANSFER_OUT, LONG, SHORT, UNKNOWN_PRICE,
)

# A flat (zero) position is reported as LONG.
ZERO_POSITION_SIDE = LONG


def classify_spot_side(native_delta: float, token_delta: float) -> str:
    if native_delta > 0 and token_delta < 0:
        return BUY
    if native_delta < 0 and token_delta > 0:
        return SELL
    # Signs don't cleanly oppose: fall back to the token leg alone
    if token_delta > 0:
        return BUY
    if token_delta < 0:
        return SELL
    return TRANSFER


def classify_transfer_side(native_delta: float) -> str:
    if native_delta > 0:
        return TRANSFER_IN
    if native_delta < 0:
        return TRANSFER_OUT
    return TRANSFER


def classify_perp_side(position_size: float) -> str:
    if position_size > 0:
        return LONG
    if position_size == 0:
        return ZERO_POSITION_SIDE
    return SHORT


def derive_price(native_amount: float, token_amount: float, decimals: int) -> float:
    """Unit price of the token in native currency.

    native_amount is in the chain's smallest unit (lamports, wei, ...) and is
    scaled down by 10**decimals. Returns 0 when token_amount is zero.
    """
    if token_amount == 0:
        return 0.0
    return abs(native_amount) / 10 ** decimals / abs(token_amount)


def price_or_unknown(price: float) -> Optional[float]:
    """Zero from derive_price means no price could be derived."""
    return price if price > 0 else UNKNOWN_PRICE


def spot_total(quantity: float, price: Optional[float]) -> float:
    if price is UNKNOWN_PRICE:
        return 0.0
    return quantity * price


def perp_pnl(entry_price: float, exit_price: float, position_size: float) -> float:
    """Realized PnL of a linear perp, excluding fees and funding."""
    return (exit_price - entry_price) * position_size
