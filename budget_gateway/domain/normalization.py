"""Turn provider movements into the stored transaction shape"""

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional

from budget_gateway.domain.models import CREDIT, DEBIT, PENDING, RawMovement, Transaction
from budget_gateway.utils.date_utils import date_portion, today

MISSING_DESCRIPTION = "Sin descripción"


def direction_for(amount: int) -> str:
    """Credit iff the signed source amount is strictly positive"""
    return CREDIT if amount > 0 else DEBIT


def normalize_movement(
    principal_id: str,
    movement: RawMovement,
    ingestion_date: Optional[date] = None,
) -> Transaction:
    """
    Normalize one raw movement.

    - description falls back to a placeholder when absent or blank
    - amount is stored as a magnitude, sign moves into direction
    - value_date is the posting date, or the ingestion date when absent
      or unparseable
    - new rows start uncategorized and pending review
    """
    if not movement.external_id:
        raise ValueError("Movement is missing its external id")

    description = (movement.description or "").strip() or MISSING_DESCRIPTION
    try:
        value_date = date_portion(movement.posted_at)
    except ValueError:
        logging.warning(
            f"Unparseable posting date {movement.posted_at!r}, using ingestion date",
            extra={"external_id": movement.external_id},
        )
        value_date = None
    value_date = value_date or ingestion_date or today()

    return Transaction(
        principal_id=principal_id,
        external_id=movement.external_id,
        description=description,
        amount=abs(movement.amount),
        direction=direction_for(movement.amount),
        value_date=value_date,
        category=None,
        review_state=PENDING,
        rationale=None,
    )


def normalize_batch(
    principal_id: str,
    movements: Iterable[RawMovement],
    ingestion_date: Optional[date] = None,
) -> List[Transaction]:
    """
    Normalize a batch; repeated external ids collapse to the last occurrence.

    A movement that cannot be normalized is logged and skipped, the rest of
    the batch is kept.
    """
    ingestion_date = ingestion_date or today()
    by_external_id: Dict[str, Transaction] = {}
    for movement in movements:
        try:
            txn = normalize_movement(principal_id, movement, ingestion_date)
        except ValueError as e:
            logging.warning(f"Skipping movement: {e}", extra={"principal_id": principal_id})
            continue
        by_external_id.pop(txn.external_id, None)
        by_external_id[txn.external_id] = txn
    return list(by_external_id.values())
