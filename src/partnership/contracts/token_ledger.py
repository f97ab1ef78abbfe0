"""
``AssetLedger`` backed by in-memory ``ERC20Token`` instances.

The ledger is bound to one operator address (the partnership engine):
``transfer`` spends the operator's balance and ``transfer_from`` spends an
allowance granted to the operator.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from ..core.allocations import normalize_address
from .erc20 import ERC20Token, TokenError

logger = logging.getLogger(__name__)


class UnknownAsset(TokenError):
    code = "UnknownAsset"


class TokenLedger:
    """Registry of tokens keyed by asset identifier (the token symbol by default)."""

    def __init__(
        self,
        tokens: Mapping[str, ERC20Token] | Iterable[ERC20Token],
        operator: str,
    ) -> None:
        if isinstance(tokens, Mapping):
            self.tokens: dict[str, ERC20Token] = dict(tokens)
        else:
            self.tokens = {token.symbol: token for token in tokens}
        self.operator = normalize_address(operator)

    def token(self, asset: str) -> ERC20Token:
        try:
            return self.tokens[asset]
        except KeyError:
            raise UnknownAsset(f"Unknown asset {asset!r}") from None

    def decimals(self, asset: str) -> int:
        return self.token(asset).decimals

    def balance_of(self, asset: str, holder: str) -> int:
        return self.token(asset).balance_of(holder)

    def transfer(self, asset: str, recipient: str, amount: int) -> bool:
        token = self.token(asset)
        try:
            return token.transfer(self.operator, recipient, amount)
        except TokenError as exc:
            self._log_failure("transfer", asset, recipient, amount, exc)
            return False

    def transfer_from(self, asset: str, sender: str, recipient: str, amount: int) -> bool:
        token = self.token(asset)
        try:
            return token.transfer_from(self.operator, sender, recipient, amount)
        except TokenError as exc:
            self._log_failure("transfer_from", asset, sender, amount, exc)
            return False

    def _log_failure(
        self, method: str, asset: str, counterparty: str, amount: int, exc: TokenError
    ) -> None:
        logger.warning(
            "Token %s failed: %s",
            method,
            exc,
            extra={
                "event": f"ledger.{method}_failed",
                "asset": asset,
                "counterparty": counterparty[:10],
                "amount": amount,
            },
        )
