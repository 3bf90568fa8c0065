"""Sync engine - pulls provider movements and merges them into the store"""

import logging
import time
from typing import List, Optional

from budget_gateway.domain.exceptions import ConfigMissing, SourceUnavailable
from budget_gateway.domain.models import BankLink
from budget_gateway.domain.normalization import normalize_batch
from budget_gateway.domain.ports import MovementSource, TransactionStore
from budget_gateway.infrastructure.observability.logging import log_sync
from budget_gateway.infrastructure.observability.metrics import (
    account_fetch_failures_counter,
    synced_movements_counter,
)
from budget_gateway.utils.date_utils import today


class SyncEngine:
    """Idempotent, partial-failure tolerant movement sync for one principal"""

    def __init__(self, source: MovementSource, store: TransactionStore):
        self.source = source
        self.store = store

    async def sync(
        self,
        principal_id: str,
        link_token: Optional[str] = None,
        institution_label: Optional[str] = None,
    ) -> int:
        """
        Sync every account under a link and return the number of rows written.

        Flow:
        1. Resolve the link (explicit token, else the principal's latest one)
        2. Upsert the link so a failed run still leaves it registered
        3. List accounts - a failure here aborts the sync
        4. Per account: fetch, normalize, upsert - a failed fetch is logged
           and the remaining accounts still run

        Raises:
            ConfigMissing: No token given and none stored for the principal
            SourceUnavailable: The account list could not be fetched
            StoreConflict: A store write failed
        """
        start_time = time.time()

        if link_token is None:
            link_token = self.store.select_latest_link(principal_id)
            if link_token is None:
                raise ConfigMissing(f"No bank connection found for principal {principal_id}")

        self.store.upsert_bank_link(
            BankLink(principal_id=principal_id, link_token=link_token, institution_label=institution_label)
        )

        accounts = await self.source.list_accounts(link_token)
        if not accounts:
            logging.info("No accounts found for link", extra={"principal_id": principal_id})
            return 0

        ingestion_date = today()
        synced = 0
        failed_accounts: List[str] = []

        for account in accounts:
            try:
                movements = await self.source.list_movements(link_token, account.account_id)
            except SourceUnavailable as e:
                account_fetch_failures_counter.inc()
                failed_accounts.append(account.account_id)
                logging.warning(
                    f"Skipping account after fetch failure: {e}",
                    extra={"principal_id": principal_id, "account_id": account.account_id},
                )
                continue

            rows = normalize_batch(principal_id, movements, ingestion_date)
            if not rows:
                continue

            written = self.store.upsert_transactions(rows)
            synced_movements_counter.inc(written)
            synced += written

        duration_ms = (time.time() - start_time) * 1000
        log_sync(principal_id, len(accounts), failed_accounts, synced, duration_ms)
        return synced
