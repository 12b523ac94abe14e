#!/usr/bin/env python3
"""
Meter a list of stored withdrawals.

Reads the withdrawals by storage id from PostgreSQL, adds their amounts to
the ``<component>_withdrawals`` gauge and, when PUSHGATEWAY_URL is set,
pushes the gauges to a Prometheus Pushgateway. A storage outage aborts the
run with exit status 1 and a HIGH alert on Telegram.
"""

import argparse
import asyncio
import sys
from typing import List, Optional, Sequence

from utils.alert import Alert, AlertSeverity, send_alert
from utils.config import Config, MeterConfig
from utils.logging import get_logger
from utils.telegram import TelegramError
from withdrawals.meter import WithdrawalsMeter
from withdrawals.metrics import PrometheusMetricsSink
from withdrawals.storage import PostgresStorage, StorageError, create_storage_engine

logger = get_logger("withdrawals.main")


async def run(ids: Sequence[int], config: MeterConfig, sink: PrometheusMetricsSink) -> bool:
    """Meter the given withdrawals. Returns False when storage failed."""
    if not config.database_url:
        raise ValueError("DATABASE_URL is not set")

    engine = create_storage_engine(
        config.database_url,
        pool_size=config.pool_size,
        pool_timeout=config.pool_timeout,
        echo=config.echo_sql,
    )
    storage = PostgresStorage(
        engine,
        withdrawals_table=config.withdrawals_table,
        tokens_table=config.tokens_table,
    )
    meter = WithdrawalsMeter(storage, sink, config.component_name)
    try:
        await meter.meter_withdrawals_storage(ids)
    except StorageError as e:
        logger.error("Metering of %s withdrawals aborted: %s", len(ids), e)
        try:
            send_alert(
                Alert(
                    AlertSeverity.HIGH,
                    f"*{config.component_name}*: withdrawals storage unreachable, metering aborted",
                    config.component_name,
                    metadata={"ids": len(ids)},
                )
            )
        except TelegramError:
            logger.exception("Failed to send storage outage alert")
        return False
    finally:
        await engine.dispose()
    return True


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Meter stored withdrawals into Prometheus gauges.")
    parser.add_argument("--ids", type=int, nargs="+", required=True, help="Storage ids of the withdrawals")
    parser.add_argument("--component", type=str, default=None, help="Component name, overrides COMPONENT_NAME")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    config = Config.get_meter_config(args.component)
    if not config.database_url:
        logger.error("DATABASE_URL is not set, nothing to meter from")
        return 1

    sink = PrometheusMetricsSink()
    ok = asyncio.run(run(args.ids, config, sink))
    if ok and config.pushgateway_url:
        sink.push(config.pushgateway_url, config.metrics_job or config.component_name)
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
