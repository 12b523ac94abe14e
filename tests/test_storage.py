"""Tests for withdrawals/storage.py and withdrawals/models.py."""

import unittest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

from sqlalchemy.exc import OperationalError

from withdrawals.models import NATIVE_TOKEN_ADDRESS, WithdrawalRecord, to_token_address, token_label
from withdrawals.storage import PostgresStorage, StorageError, create_storage_engine

TOKEN_A = bytes.fromhex("aa" * 20)


def make_engine(rows=None, scalar=None):
    engine = MagicMock()
    conn = AsyncMock()
    result = MagicMock()
    result.all.return_value = rows or []
    result.scalar_one_or_none.return_value = scalar
    conn.execute.return_value = result
    engine.connect.return_value.__aenter__.return_value = conn
    return engine, conn


class TestModels(unittest.TestCase):
    """Tests for token address helpers."""

    def test_to_token_address_from_hex(self):
        self.assertEqual(to_token_address("0x" + "AA" * 20), TOKEN_A)

    def test_to_token_address_from_bytes(self):
        self.assertEqual(to_token_address(TOKEN_A), TOKEN_A)
        self.assertEqual(to_token_address(memoryview(TOKEN_A)), TOKEN_A)
        self.assertEqual(to_token_address(bytearray(TOKEN_A)), TOKEN_A)

    def test_to_token_address_rejects_bad_input(self):
        with self.assertRaises(ValueError):
            to_token_address(b"\x01\x02")
        with self.assertRaises(ValueError):
            to_token_address(12345)

    def test_token_label(self):
        self.assertEqual(token_label(NATIVE_TOKEN_ADDRESS), "0x" + "00" * 20)
        self.assertEqual(token_label(TOKEN_A), "0x" + "aa" * 20)

    def test_record_is_immutable(self):
        record = WithdrawalRecord(1, TOKEN_A, 10)
        with self.assertRaises(AttributeError):
            record.amount = 11


class TestPostgresStorage(unittest.IsolatedAsyncioTestCase):
    """Tests for PostgresStorage."""

    async def test_fetch_withdrawals(self):
        engine, conn = make_engine(rows=[(1, TOKEN_A, Decimal("1000000000000000000")), (2, TOKEN_A, Decimal("5"))])
        storage = PostgresStorage(engine)

        records = await storage.fetch_withdrawals([2, 1])

        self.assertEqual(records, [WithdrawalRecord(1, TOKEN_A, 10**18), WithdrawalRecord(2, TOKEN_A, 5)])
        statement, params = conn.execute.await_args.args
        self.assertEqual(params, {"ids": [2, 1]})
        self.assertIn("FROM withdrawals", str(statement))

    async def test_fetch_withdrawals_empty_ids(self):
        engine, conn = make_engine()
        storage = PostgresStorage(engine)

        self.assertEqual(await storage.fetch_withdrawals([]), [])
        engine.connect.assert_not_called()

    async def test_fetch_withdrawals_missing_rows_are_logged(self):
        engine, _ = make_engine(rows=[(1, TOKEN_A, 7)])
        storage = PostgresStorage(engine)

        with self.assertLogs("withdrawals.storage", level="WARNING"):
            records = await storage.fetch_withdrawals([1, 2])
        self.assertEqual(len(records), 1)

    async def test_malformed_row_is_dropped(self):
        engine, _ = make_engine(rows=[(1, b"\x01\x02", 5), (2, TOKEN_A, 7), (3, TOKEN_A, None)])
        storage = PostgresStorage(engine)

        with self.assertLogs("withdrawals.storage", level="ERROR") as logs:
            records = await storage.fetch_withdrawals([1, 2, 3])

        self.assertEqual(records, [WithdrawalRecord(2, TOKEN_A, 7)])
        self.assertEqual(len(logs.records), 2)
        self.assertIn("malformed withdrawal 1", logs.output[0])
        self.assertIn("malformed withdrawal 3", logs.output[1])

    async def test_fetch_withdrawals_custom_table(self):
        engine, conn = make_engine()
        storage = PostgresStorage(engine, withdrawals_table="bridge_withdrawals")

        await storage.fetch_withdrawals([1])

        statement, _ = conn.execute.await_args.args
        self.assertIn("FROM bridge_withdrawals", str(statement))

    async def test_fetch_withdrawals_database_error(self):
        engine, conn = make_engine()
        conn.execute.side_effect = OperationalError("SELECT", {}, Exception("server closed the connection"))
        storage = PostgresStorage(engine)

        with self.assertRaises(StorageError):
            await storage.fetch_withdrawals([1])

    async def test_connection_refused(self):
        engine, _ = make_engine()
        engine.connect.return_value.__aenter__.side_effect = ConnectionRefusedError("refused")
        storage = PostgresStorage(engine)

        with self.assertRaises(StorageError):
            await storage.fetch_token_decimals(TOKEN_A)

    async def test_fetch_token_decimals(self):
        engine, conn = make_engine(scalar=6)
        storage = PostgresStorage(engine, tokens_table="token_meta")

        self.assertEqual(await storage.fetch_token_decimals(TOKEN_A), 6)
        statement, params = conn.execute.await_args.args
        self.assertEqual(params, {"address": TOKEN_A})
        self.assertIn("FROM token_meta", str(statement))

    async def test_fetch_token_decimals_unknown(self):
        engine, _ = make_engine(scalar=None)
        storage = PostgresStorage(engine)

        self.assertIsNone(await storage.fetch_token_decimals(TOKEN_A))

    async def test_fetch_token_decimals_database_error(self):
        engine, conn = make_engine()
        conn.execute.side_effect = OperationalError("SELECT", {}, Exception("timeout"))
        storage = PostgresStorage(engine)

        with self.assertRaises(StorageError):
            await storage.fetch_token_decimals(TOKEN_A)


class TestCreateStorageEngine(unittest.TestCase):
    """Tests for create_storage_engine."""

    @patch("withdrawals.storage.create_async_engine")
    def test_postgres_urls_use_asyncpg(self, mock_create):
        create_storage_engine("postgresql://user:pw@localhost/db")
        create_storage_engine("postgres://user:pw@localhost/db")

        urls = [c.args[0] for c in mock_create.call_args_list]
        self.assertEqual(urls, ["postgresql+asyncpg://user:pw@localhost/db"] * 2)
        self.assertTrue(mock_create.call_args.kwargs["pool_pre_ping"])

    @patch("withdrawals.storage.create_async_engine")
    def test_explicit_driver_is_kept(self, mock_create):
        create_storage_engine("postgresql+asyncpg://localhost/db", pool_size=2)

        mock_create.assert_called_once_with("postgresql+asyncpg://localhost/db", pool_size=2, pool_pre_ping=True)


if __name__ == "__main__":
    unittest.main()
