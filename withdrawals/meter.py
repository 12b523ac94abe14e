"""
Metering of withdrawal amounts.

WithdrawalsMeter turns withdrawal records into gauge increments of
``<component_name>_withdrawals`` labelled by token. Records with an unknown
token or an amount that cannot be scaled are logged and skipped; only a
StorageError stops a batch and reaches the caller.
"""

import logging
from typing import Optional, Sequence

from utils.formatting import FormatError, scale_amount
from utils.logging import get_logger
from withdrawals.decimals_cache import TokenDecimalsCache, UnknownTokenError
from withdrawals.metrics import MetricsSink, withdrawal_labels, withdrawals_metric_name
from withdrawals.models import WithdrawalRecord, token_label
from withdrawals.storage import WithdrawalsStorage


class WithdrawalsMeter:
    """Meters withdrawals into a metrics sink.

    Owns a TokenDecimalsCache that is mutated without locking, so calls on one
    instance must not overlap. Use one meter per concurrent caller.
    """

    def __init__(
        self,
        storage: WithdrawalsStorage,
        sink: MetricsSink,
        component_name: str,
        logger: Optional[logging.Logger] = None,
    ):
        if not component_name:
            raise ValueError("component_name must not be empty")
        self.storage = storage
        self.sink = sink
        self.component_name = component_name
        self.metric_name = withdrawals_metric_name(component_name)
        self.token_decimals = TokenDecimalsCache(storage)
        self.logger = logger or get_logger(f"withdrawals.{component_name}")

    async def meter_withdrawals_storage(self, ids: Sequence[int]) -> None:
        """Load the withdrawals with the given storage ids and meter them.

        Raises:
            StorageError: if loading the withdrawals or any token decimals fails.
        """
        withdrawals = await self.storage.fetch_withdrawals(ids)
        await self.meter_withdrawals(withdrawals)

    async def meter_withdrawals(self, withdrawals: Sequence[WithdrawalRecord]) -> None:
        """Meter every withdrawal of the batch, in order.

        Formatting problems and unknown tokens are logged and the record is
        skipped. A StorageError aborts the batch; gauges already incremented
        for earlier records are kept.
        """
        metered = 0
        for w in withdrawals:
            try:
                decimals = await self.token_decimals.resolve(w.token)
            except UnknownTokenError:
                self.logger.error(
                    "Received withdrawal %s from unknown token %s", w.storage_id, token_label(w.token)
                )
                continue

            try:
                value = scale_amount(w.amount, decimals)
            except FormatError as e:
                self.logger.error("Failed to format withdrawal %s amount: %s", w.storage_id, e)
                continue

            self.sink.increment_gauge(self.metric_name, value, withdrawal_labels(w.token))
            metered += 1

        self.logger.debug(
            "Metered %s of %s withdrawals into %s", metered, len(withdrawals), self.metric_name
        )
