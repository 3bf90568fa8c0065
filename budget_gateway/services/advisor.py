"""Savings recommendations from the reasoning service"""

import json
from typing import Any, Dict, List, Sequence

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from budget_gateway.domain.exceptions import ClassificationUnavailable
from budget_gateway.domain.models import SavingsRecommendation, Transaction
from budget_gateway.domain.ports import ReasoningService

PROMPT_TEMPLATE = """Analyze the following bank transactions. Suggest {count} specific strategies to \
PROTECT and GROW savings exclusively by reducing expenses and optimizing the budget. Do NOT suggest \
investments.

Focus on:
1. Identifying small recurring leaks of money.
2. Suggesting cuts in non-essential categories.
3. Proposing savings goals based on current behaviour.

Transactions:
{transactions}

Return a JSON array of objects with the keys "title", "description" and "estimated_saving"."""

RECOMMENDATIONS_SCHEMA: Dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "title": {"type": "STRING"},
            "description": {"type": "STRING"},
            "estimated_saving": {"type": "STRING"},
        },
        "required": ["title", "description", "estimated_saving"],
    },
}


class RecommendationItem(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    title: str
    description: str
    estimated_saving: str


_recommendations = TypeAdapter(List[RecommendationItem])


class SavingsAdvisor:
    def __init__(self, reasoning: ReasoningService, count: int = 3):
        self.reasoning = reasoning
        self.count = count

    async def recommend(self, transactions: Sequence[Transaction]) -> List[SavingsRecommendation]:
        """Ask for spending-reduction strategies; an empty answer yields no recommendations"""
        payload = json.dumps(
            [{"description": t.description, "amount": t.amount, "direction": t.direction} for t in transactions],
            ensure_ascii=False,
        )
        answer = await self.reasoning.generate_structured(
            PROMPT_TEMPLATE.format(count=self.count, transactions=payload),
            RECOMMENDATIONS_SCHEMA,
        )
        if not answer:
            return []

        try:
            items = _recommendations.validate_python(answer)
        except ValidationError as e:
            raise ClassificationUnavailable(f"Invalid recommendations output: {e.error_count()} validation errors") from e

        return [SavingsRecommendation(i.title, i.description, i.estimated_saving) for i in items]
