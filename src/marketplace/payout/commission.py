"""Platform commission taken from each store's delivered revenue."""

import os

DEFAULT_COMMISSION_RATE = 10.0


def get_commission_rate() -> float:
    """Commission in percent, read from COMMISSION_RATE on every call.

    Read per call so a changed rate applies to the next balance computation
    without a restart.
    """
    raw = os.environ.get("COMMISSION_RATE")
    if raw is None or raw == "":
        return DEFAULT_COMMISSION_RATE
    rate = float(raw)
    if not 0 <= rate <= 100:
        raise ValueError(f"COMMISSION_RATE must be between 0 and 100, got {raw}")
    return rate
