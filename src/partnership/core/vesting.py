"""
Linear vesting with a cliff.

Vesting for every partner runs over ``cliff + vesting`` seconds starting at
the funding-window close. Time inside the cliff counts toward the vested
fraction; it just cannot be claimed until the cliff has passed. Each claim
moves the partner's checkpoint forward, and the cliff is measured from that
checkpoint.

All arithmetic is integer fixed point; amounts are a single floor of
``entitlement * elapsed / length`` so successive claims lose at most one
base unit each.
"""

from __future__ import annotations

from dataclasses import dataclass

from .safe_math import checked_add, mul_div_down, pow10


@dataclass(frozen=True)
class VestingScheduleCalculator:
    """Computes claimable reward-asset amounts for a partner at a given time."""

    cliff_duration: int
    vesting_duration: int
    reward_decimals: int

    def __post_init__(self) -> None:
        if self.cliff_duration < 0 or self.vesting_duration < 0:
            raise ValueError("Cliff and vesting durations cannot be negative")

    @property
    def vesting_length(self) -> int:
        return self.cliff_duration + self.vesting_duration

    @property
    def precision(self) -> int:
        return pow10(self.reward_decimals)

    def cliff_end(self, started_at: int) -> int:
        return checked_add(started_at, self.cliff_duration, name="cliff_end")

    def vesting_end(self, started_at: int) -> int:
        return checked_add(started_at, self.vesting_length, name="vesting_end")

    def time_vested(self, last_withdrawn_at: int, started_at: int, now: int) -> int:
        """Seconds vested since the checkpoint, capped at the vesting end."""
        end = min(now, self.vesting_end(started_at))
        return end - last_withdrawn_at if end > last_withdrawn_at else 0

    def vested_fraction(self, last_withdrawn_at: int, started_at: int, now: int) -> int:
        """
        Fraction of the entitlement vested since ``last_withdrawn_at``,
        scaled by ``precision`` (10**reward_decimals) and floored.
        """
        if self.vesting_length == 0:
            return self.precision
        return mul_div_down(
            self.time_vested(last_withdrawn_at, started_at, now),
            self.precision,
            self.vesting_length,
            name="fraction",
        )

    def claimable(
        self,
        entitlement: int,
        balance: int,
        last_withdrawn_at: int,
        started_at: int,
        now: int,
    ) -> int:
        """
        Reward-asset units claimable at ``now``.

        Args:
            entitlement: the partner's full allocation in reward units
            balance: what is still unclaimed
            last_withdrawn_at: the partner's checkpoint
            started_at: funding-window close (vesting start)
            now: current timestamp

        Returns 0 before the checkpoint cliff. Never exceeds ``balance``; at or
        after the vesting end it is the whole remaining balance.
        """
        if balance == 0:
            return 0
        if now < checked_add(last_withdrawn_at, self.cliff_duration, name="checkpoint_cliff"):
            return 0
        if now >= self.vesting_end(started_at):
            return balance

        amount = mul_div_down(
            entitlement,
            self.time_vested(last_withdrawn_at, started_at, now),
            self.vesting_length,
            name="claimable",
        )
        return min(amount, balance)
