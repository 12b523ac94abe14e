"""
Storage access for the withdrawals meter.

The meter only needs two reads: withdrawal records by storage id and the
decimals registered for a token. ``PostgresStorage`` serves both from a
PostgreSQL database through a SQLAlchemy asyncio engine (asyncpg driver).
The engine is borrowed; whoever creates it also disposes of it.
"""

from typing import List, Optional, Protocol, Sequence

from sqlalchemy import bindparam, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from utils.logging import get_logger
from withdrawals.models import WithdrawalRecord, to_token_address

logger = get_logger("withdrawals.storage")


class StorageError(Exception):
    """Infrastructure failure while reading from storage."""


class WithdrawalsStorage(Protocol):
    async def fetch_withdrawals(self, ids: Sequence[int]) -> List[WithdrawalRecord]: ...

    async def fetch_token_decimals(self, token: bytes) -> Optional[int]: ...


def create_storage_engine(database_url: str, **kwargs) -> AsyncEngine:
    """Create an async engine, switching plain postgres URLs to the asyncpg dialect."""
    if database_url.startswith("postgres://"):
        database_url = "postgresql://" + database_url[len("postgres://") :]
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(database_url, **kwargs)


class PostgresStorage:
    def __init__(
        self,
        engine: AsyncEngine,
        withdrawals_table: str = "withdrawals",
        tokens_table: str = "tokens",
    ):
        self.engine = engine
        self._withdrawals_query = text(
            f"SELECT id, token, amount FROM {withdrawals_table} WHERE id IN :ids ORDER BY id"
        ).bindparams(bindparam("ids", expanding=True))
        self._decimals_query = text(f"SELECT decimals FROM {tokens_table} WHERE address = :address")

    async def fetch_withdrawals(self, ids: Sequence[int]) -> List[WithdrawalRecord]:
        """Load the withdrawals with the given storage ids, ordered by id."""
        if not ids:
            return []
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(self._withdrawals_query, {"ids": list(ids)})
                rows = result.all()
        except (SQLAlchemyError, OSError) as e:
            raise StorageError(f"Failed to fetch withdrawals: {e}") from e

        if len(rows) != len(set(ids)):
            logger.warning("Requested %s withdrawals, storage returned %s", len(set(ids)), len(rows))

        records = []
        for row in rows:
            try:
                records.append(
                    WithdrawalRecord(storage_id=int(row[0]), token=to_token_address(row[1]), amount=int(row[2]))
                )
            except (ValueError, TypeError) as e:
                logger.error("Dropping malformed withdrawal %s: %s", row[0], e)
        return records

    async def fetch_token_decimals(self, token: bytes) -> Optional[int]:
        """Return the registered decimals of a token, or None when it is unknown."""
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(self._decimals_query, {"address": token})
                decimals = result.scalar_one_or_none()
        except (SQLAlchemyError, OSError) as e:
            raise StorageError(f"Failed to fetch decimals for {token.hex()}: {e}") from e
        return None if decimals is None else int(decimals)
