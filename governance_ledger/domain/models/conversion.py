"""Conversion ratios between sub points, main points and tokens."""

from __future__ import annotations

from dataclasses import dataclass

from governance_ledger.domain.errors import InvalidRatioError

MIN_RATIO = 1
MAX_RATIO = 100


@dataclass(frozen=True)
class ConversionRatios:
    """Integer ratios in effect for new conversions and exchanges.

    ``sub_to_main`` sub points buy one main point; ``main_to_token`` main
    points buy one token. Both are bounded to [MIN_RATIO, MAX_RATIO].
    """

    sub_to_main: int = 10
    main_to_token: int = 10

    def __post_init__(self) -> None:
        """Reject out-of-range ratios."""
        _check_bounds("sub_to_main", self.sub_to_main)
        _check_bounds("main_to_token", self.main_to_token)


def _check_bounds(name: str, value: int) -> None:
    if not MIN_RATIO <= value <= MAX_RATIO:
        raise InvalidRatioError(name, value, MIN_RATIO, MAX_RATIO)
