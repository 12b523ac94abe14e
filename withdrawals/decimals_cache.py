"""Lazily filled cache of token decimals backed by withdrawals storage."""

from typing import Dict, Optional

from withdrawals.models import NATIVE_TOKEN_ADDRESS, NATIVE_TOKEN_DECIMALS, token_label
from withdrawals.storage import WithdrawalsStorage


class UnknownTokenError(LookupError):
    """The token has no decimals registered in storage."""

    def __init__(self, token: bytes):
        super().__init__(f"Unknown token {token_label(token)}")
        self.token = token


class TokenDecimalsCache:
    """Token address -> decimals, filled from storage on first use.

    A resolved value is never fetched again. Misses for unknown tokens are not
    remembered, so a token registered later is picked up on its next withdrawal.
    Not safe for concurrent resolve() calls on the same instance.
    """

    def __init__(self, storage: WithdrawalsStorage):
        self.storage = storage
        self._decimals: Dict[bytes, int] = {NATIVE_TOKEN_ADDRESS: NATIVE_TOKEN_DECIMALS}

    def __contains__(self, token: bytes) -> bool:
        return token in self._decimals

    def __len__(self) -> int:
        return len(self._decimals)

    def get(self, token: bytes) -> Optional[int]:
        return self._decimals.get(token)

    async def resolve(self, token: bytes) -> int:
        decimals = self._decimals.get(token)
        if decimals is not None:
            return decimals

        # StorageError propagates to the caller untouched.
        decimals = await self.storage.fetch_token_decimals(token)
        if decimals is None:
            raise UnknownTokenError(token)

        self._decimals[token] = decimals
        return decimals
