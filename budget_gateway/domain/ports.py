"""Capability interfaces the core talks to.

Implementations are swappable: live ones live under ``infrastructure``,
tests supply in-memory fakes.
"""

from typing import Any, List, Mapping, Optional, Protocol

from budget_gateway.domain.models import Account, BankLink, RawMovement, Transaction


class MovementSource(Protocol):
    async def list_accounts(self, link_token: str) -> List[Account]:
        ...

    async def list_movements(self, link_token: str, account_id: str) -> List[RawMovement]:
        ...


class TransactionStore(Protocol):
    def upsert_transactions(self, rows: List[Transaction]) -> int:
        ...

    def upsert_bank_link(self, link: BankLink) -> None:
        ...

    def select_latest_link(self, principal_id: str) -> Optional[str]:
        ...

    def select_transactions(self, principal_id: str) -> List[Transaction]:
        ...

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        ...

    def update_transaction(
        self,
        transaction_id: int,
        category: str,
        review_state: str,
        rationale: str,
    ) -> None:
        ...


class ReasoningService(Protocol):
    async def generate_structured(self, prompt: str, schema: Mapping[str, Any]) -> Any:
        """Return the decoded JSON answer, or raise ClassificationUnavailable."""
        ...
