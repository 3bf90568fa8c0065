"""Transaction classifier - rule table first, reasoning service as fallback"""

import json
import logging
import time
from typing import Any, Dict, Iterable, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, ValidationError

from budget_gateway.config import settings
from budget_gateway.domain.exceptions import (
    ClassificationUnavailable,
    ConfirmedTransactionError,
    TransactionNotFound,
    UnknownCategoryError,
)
from budget_gateway.domain.models import (
    CONFIRMED,
    PENDING,
    ClassificationFailure,
    ClassificationResult,
    ClassifyAllReport,
    Transaction,
)
from budget_gateway.domain.ports import ReasoningService, TransactionStore
from budget_gateway.domain.rules import (
    CATCH_ALL_CATEGORY,
    FULL_CONFIDENCE,
    MANUAL_ONLY_CATEGORIES,
    ClassificationRule,
    build_default_rules,
    closed_category_set,
    describe_rules,
    first_match,
)
from budget_gateway.infrastructure.observability.logging import log_classification_batch
from budget_gateway.infrastructure.observability.metrics import (
    record_classification,
    record_classification_failure,
    record_manual_classification,
)

MANUAL_RATIONALE = "Modificado manualmente por el usuario"

PROMPT_TEMPLATE = """You are an automated financial classification assistant. You receive one bank \
transaction as JSON. Assign a "category" and a "review_state" by applying STRICTLY the following \
rules in priority order; the first rule that matches wins.

{rules}

Exception and control rule:
If the transaction is a transfer to a third party, or a merchant that does NOT match the rules \
above with 100% certainty, you MUST categorize it as "{catch_all}".

Review state rules:
- If a numbered rule with a category other than "{catch_all}" matched, set review_state to "confirmed".
- If the category is "{catch_all}", set review_state to "pending".

Return ONLY valid JSON with the keys "category", "review_state" and "rationale" (one short sentence).

Transaction:
{transaction}"""


class ReasoningVerdict(BaseModel):
    """Exact shape accepted from the reasoning service; nothing is coerced"""

    model_config = ConfigDict(extra="forbid", strict=True)

    category: str
    review_state: Literal["confirmed", "pending"]
    rationale: str


class Classifier:
    """Assigns categories and review states to stored transactions"""

    def __init__(
        self,
        store: TransactionStore,
        reasoning: Optional[ReasoningService] = None,
        rules: Optional[Sequence[ClassificationRule]] = None,
        extra_categories: Iterable[str] = MANUAL_ONLY_CATEGORIES,
    ):
        self.store = store
        self.reasoning = reasoning
        self.rules = list(rules) if rules is not None else build_default_rules(settings.income_sender)
        # Manual classification accepts the full closed set, automation only rule outcomes
        self.categories = closed_category_set(self.rules, extra_categories)
        self.automatic_categories = closed_category_set(self.rules, ())

    @property
    def result_schema(self) -> Dict[str, Any]:
        return {
            "type": "OBJECT",
            "properties": {
                "category": {"type": "STRING", "enum": list(self.automatic_categories)},
                "review_state": {"type": "STRING", "enum": [CONFIRMED, PENDING]},
                "rationale": {"type": "STRING"},
            },
            "required": ["category", "review_state", "rationale"],
        }

    def build_prompt(self, txn: Transaction) -> str:
        payload = json.dumps(
            {"description": txn.description, "amount": txn.amount, "direction": txn.direction},
            ensure_ascii=False,
        )
        return PROMPT_TEMPLATE.format(
            rules=describe_rules(self.rules),
            catch_all=CATCH_ALL_CATEGORY,
            transaction=payload,
        )

    async def classify(self, txn: Transaction) -> ClassificationResult:
        """
        Classify one transaction without persisting anything.

        A full-confidence rule match is confirmed; the catch-all rule and
        anything without a full-confidence match end up pending in the
        catch-all bucket, unless the reasoning service is configured, in
        which case it decides.

        Raises:
            ClassificationUnavailable: Reasoning service failed or answered
                with an invalid structure
        """
        match = first_match(self.rules, txn)

        if match is not None and match.rule.confidence >= FULL_CONFIDENCE:
            rationale = f"Rule {match.position} ({match.rule.name}): {match.rule.summary}"
            if match.rule.category == CATCH_ALL_CATEGORY:
                return ClassificationResult(CATCH_ALL_CATEGORY, PENDING, f"{rationale}; needs manual review")
            return ClassificationResult(match.rule.category, CONFIRMED, rationale)

        if self.reasoning is not None:
            answer = await self.reasoning.generate_structured(self.build_prompt(txn), self.result_schema)
            return self._validate(answer)

        if match is not None:
            rationale = f"Tentative match on rule {match.position} ({match.rule.category}) below full confidence"
        else:
            rationale = "No rule matched with full confidence"
        return ClassificationResult(CATCH_ALL_CATEGORY, PENDING, rationale)

    def _validate(self, answer: Any) -> ClassificationResult:
        try:
            verdict = ReasoningVerdict.model_validate(answer)
        except ValidationError as e:
            raise ClassificationUnavailable(f"Invalid reasoning output: {e.error_count()} validation errors") from e

        if verdict.category not in self.automatic_categories:
            raise ClassificationUnavailable(f"Reasoning returned unknown category {verdict.category!r}")
        if (verdict.category == CATCH_ALL_CATEGORY) != (verdict.review_state == PENDING):
            raise ClassificationUnavailable(
                f"Reasoning paired category {verdict.category!r} with review state {verdict.review_state!r}"
            )
        return ClassificationResult(verdict.category, verdict.review_state, verdict.rationale)

    def _load(self, transaction_id: int) -> Transaction:
        txn = self.store.get_transaction(transaction_id)
        if txn is None:
            raise TransactionNotFound(f"Transaction {transaction_id} not found")
        return txn

    async def _classify_and_store(self, txn: Transaction) -> ClassificationResult:
        try:
            result = await self.classify(txn)
        except ClassificationUnavailable:
            record_classification_failure()
            raise

        self.store.update_transaction(txn.id, result.category, result.review_state, result.rationale)
        record_classification(result.review_state)
        return result

    async def classify_transaction(self, transaction_id: int) -> ClassificationResult:
        """
        Classify one stored transaction and persist the result.

        On failure the stored row is left as it was.

        Raises:
            TransactionNotFound: Unknown id
            ConfirmedTransactionError: Row is confirmed; only manual edits may change it
            ClassificationUnavailable: Reasoning service failed
        """
        txn = self._load(transaction_id)
        if txn.review_state == CONFIRMED:
            raise ConfirmedTransactionError(
                f"Transaction {transaction_id} is confirmed; use manual classification to change it"
            )
        return await self._classify_and_store(txn)

    def manual_classify(self, transaction_id: int, category: str) -> ClassificationResult:
        """Override the category by hand; always confirmed, rules are not consulted"""
        if category not in self.categories:
            raise UnknownCategoryError(f"Unknown category {category!r}")
        self._load(transaction_id)

        result = ClassificationResult(category, CONFIRMED, MANUAL_RATIONALE)
        self.store.update_transaction(transaction_id, result.category, result.review_state, result.rationale)
        record_manual_classification()
        return result

    async def classify_all(self, principal_id: str) -> ClassifyAllReport:
        """
        Classify every uncategorized transaction of a principal, in id order.

        Confirmed and already categorized rows are skipped. A row whose
        earlier attempt failed has no category, so it is retried here.
        Classification failures are collected in the report, never raised.
        """
        start_time = time.time()
        report = ClassifyAllReport()

        for txn in self.store.select_transactions(principal_id):
            if txn.review_state == CONFIRMED or txn.category is not None:
                report.skipped.append(txn.id)
                continue

            try:
                await self._classify_and_store(txn)
            except ClassificationUnavailable as e:
                logging.warning(
                    f"Classification failed: {e}",
                    extra={"principal_id": principal_id, "transaction_id": txn.id},
                )
                report.failed.append(ClassificationFailure(transaction_id=txn.id, reason=str(e)))
                continue

            report.classified.append(txn.id)

        duration_ms = (time.time() - start_time) * 1000
        log_classification_batch(
            principal_id, len(report.classified), report.failed_ids, len(report.skipped), duration_ms
        )
        return report
