"""
Exchange-asset to reward-asset conversion.

The exchange rate is an integer carrying ``rate_decimals`` implied decimal
places (``20_00`` with ``rate_decimals=2`` means 20.00 exchange units per
reward unit). Amounts are raw integer base units of their asset, so the
conversion also corrects for the two assets' decimal precision.

Conversions always floor: the engine never promises more reward asset than
the exact rational value.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .exceptions import InvalidExchangeRate
from .safe_math import checked_mul, mul_div_down, pow10, require_uint256

DEFAULT_RATE_DECIMALS = 2


@dataclass(frozen=True)
class FixedPointConverter:
    """
    Pure converter from exchange-asset units to reward-asset units.

    reward = exchange_amount * 10**(reward_decimals - exchange_decimals + rate_decimals)
             / exchange_rate

    When the exchange asset carries more decimals than the reward asset the
    decimal correction moves into the denominator so it is still a single
    floor division.
    """

    exchange_rate: int
    reward_decimals: int
    exchange_decimals: int
    rate_decimals: int = DEFAULT_RATE_DECIMALS
    numerator_scale: int = field(init=False, repr=False)
    denominator: int = field(init=False, repr=False)

    def __post_init__(self) -> None:
        require_uint256(self.exchange_rate, name="exchange_rate")
        if self.exchange_rate == 0:
            raise InvalidExchangeRate(
                "Exchange rate cannot be zero",
                details={"exchange_rate": self.exchange_rate},
            )
        for name in ("reward_decimals", "exchange_decimals", "rate_decimals"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidExchangeRate(
                    f"{name} must be a non-negative integer",
                    details={name: value},
                )

        decimal_gap = abs(self.reward_decimals - self.exchange_decimals)
        if self.reward_decimals >= self.exchange_decimals:
            numerator_scale = pow10(decimal_gap + self.rate_decimals)
            denominator = self.exchange_rate
        else:
            numerator_scale = pow10(self.rate_decimals)
            denominator = checked_mul(self.exchange_rate, pow10(decimal_gap), name="rate_scale")

        # frozen dataclass: derived fields are set once here
        object.__setattr__(self, "numerator_scale", numerator_scale)
        object.__setattr__(self, "denominator", denominator)

    @property
    def base_unit(self) -> int:
        """Multiplier applied before dividing by the exchange rate."""
        return self.numerator_scale

    def convert_exchange_to_reward(self, exchange_amount: int) -> int:
        """Convert exchange-asset units into reward-asset units, rounding down."""
        try:
            return mul_div_down(
                exchange_amount, self.numerator_scale, self.denominator, name="convert"
            )
        except ZeroDivisionError as exc:
            raise InvalidExchangeRate("Exchange rate cannot be zero") from exc

    def to_dict(self) -> dict:
        return {
            "exchange_rate": self.exchange_rate,
            "reward_decimals": self.reward_decimals,
            "exchange_decimals": self.exchange_decimals,
            "rate_decimals": self.rate_decimals,
        }
