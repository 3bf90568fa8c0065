"""Data access layer for bank links and transactions"""

from typing import List, Optional
from sqlalchemy import func, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from budget_gateway.infrastructure.database.models import BankConnection, TransactionRecord
from budget_gateway.domain.models import BankLink, Transaction
from budget_gateway.domain.exceptions import StoreConflict, TransactionNotFound


def _to_domain(record: TransactionRecord) -> Transaction:
    return Transaction(
        id=record.id,
        principal_id=record.principal_id,
        external_id=record.external_id,
        description=record.description,
        amount=record.amount,
        direction=record.direction,
        value_date=record.value_date,
        category=record.category,
        review_state=record.review_state,
        rationale=record.rationale,
    )


class SqlTransactionStore:
    """
    Transaction store backed by a SQLAlchemy session.

    Each write is committed on its own, so work finished before a later
    failure (a registered link, an account already synced) stays persisted.
    """

    def __init__(self, db: Session):
        self.db = db

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert
        if dialect == "sqlite":
            return sqlite_insert
        raise StoreConflict(f"Upsert is not supported on the {dialect} dialect")

    def _commit(self, statement):
        try:
            result = self.db.execute(statement)
            self.db.commit()
            return result
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreConflict(f"Database write failed: {e}") from e

    def upsert_transactions(self, rows: List[Transaction]) -> int:
        """
        Insert unseen movements, refresh the normalized fields of known ones.

        The conflict branch only touches description, amount, direction and
        value_date, so a re-sync never clears category, review state or
        rationale set by an earlier classification.
        """
        if not rows:
            return 0

        insert = self._insert()
        stmt = insert(TransactionRecord).values(
            [
                {
                    "principal_id": txn.principal_id,
                    "external_id": txn.external_id,
                    "description": txn.description,
                    "amount": txn.amount,
                    "direction": txn.direction,
                    "value_date": txn.value_date,
                    "category": txn.category,
                    "review_state": txn.review_state,
                    "rationale": txn.rationale,
                }
                for txn in rows
            ]
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[TransactionRecord.external_id],
            set_={
                "description": stmt.excluded.description,
                "amount": stmt.excluded.amount,
                "direction": stmt.excluded.direction,
                "value_date": stmt.excluded.value_date,
                "updated_at": func.now(),
            },
        )
        self._commit(stmt)
        return len(rows)

    def upsert_bank_link(self, link: BankLink) -> None:
        """Register a link; reconnection re-points it and keeps a known label"""
        insert = self._insert()
        stmt = insert(BankConnection).values(
            principal_id=link.principal_id,
            link_token=link.link_token,
            institution_label=link.institution_label,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[BankConnection.link_token],
            set_={
                "principal_id": stmt.excluded.principal_id,
                "institution_label": func.coalesce(
                    stmt.excluded.institution_label, BankConnection.institution_label
                ),
            },
        )
        self._commit(stmt)

    def select_latest_link(self, principal_id: str) -> Optional[str]:
        """Most recently created link token for a principal"""
        row = (
            self.db.query(BankConnection.link_token)
            .filter(BankConnection.principal_id == principal_id)
            .order_by(BankConnection.created_at.desc(), BankConnection.id.desc())
            .first()
        )
        return row[0] if row else None

    def select_transactions(self, principal_id: str) -> List[Transaction]:
        """All transactions of a principal in insertion order"""
        records = (
            self.db.query(TransactionRecord)
            .filter(TransactionRecord.principal_id == principal_id)
            .order_by(TransactionRecord.id.asc())
            .all()
        )
        return [_to_domain(r) for r in records]

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        record = self.db.get(TransactionRecord, transaction_id)
        return _to_domain(record) if record else None

    def update_transaction(
        self,
        transaction_id: int,
        category: str,
        review_state: str,
        rationale: str,
    ) -> None:
        """Write a classification onto an existing row"""
        stmt = (
            update(TransactionRecord)
            .execution_options(synchronize_session=False)
            .where(TransactionRecord.id == transaction_id)
            .values(
                category=category,
                review_state=review_state,
                rationale=rationale,
                updated_at=func.now(),
            )
        )
        result = self._commit(stmt)
        if result.rowcount == 0:
            raise TransactionNotFound(f"Transaction {transaction_id} not found")
