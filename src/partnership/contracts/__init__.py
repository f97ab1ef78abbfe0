"""In-memory token contracts used as the reference asset ledger."""

from .erc20 import ERC20Token, TokenError, TokenEvent
from .token_ledger import TokenLedger, UnknownAsset

__all__ = ["ERC20Token", "TokenError", "TokenEvent", "TokenLedger", "UnknownAsset"]
