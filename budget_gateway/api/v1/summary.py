"""Budget summary and savings recommendation endpoints"""

import logging
from dataclasses import asdict
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from budget_gateway.api.v1.schemas import (
    BudgetStatusItem,
    RecommendationItem,
    RecommendationsResponse,
    SavingsProgressSchema,
    SummaryResponse,
)
from budget_gateway.api.dependencies import get_reasoning_service, get_request_id, get_store
from budget_gateway.config import settings
from budget_gateway.domain.budgets import summarize
from budget_gateway.domain.exceptions import ClassificationUnavailable, ConfigMissing
from budget_gateway.domain.ports import ReasoningService, TransactionStore
from budget_gateway.services.advisor import SavingsAdvisor

router = APIRouter()


@router.get("/summary", response_model=SummaryResponse)
def get_summary(
    principal_id: str = Query(..., min_length=1, description="Principal identifier"),
    store: TransactionStore = Depends(get_store),
):
    """Net savings, category breakdown, budget status and savings progress"""
    summary = summarize(store.select_transactions(principal_id), settings.budget_limits, settings.savings_goal)
    return SummaryResponse(
        principal_id=principal_id,
        net_savings=summary.net_savings,
        category_breakdown=summary.category_breakdown,
        budgets=[BudgetStatusItem(**asdict(b)) for b in summary.budgets],
        savings=SavingsProgressSchema(**asdict(summary.savings)),
    )


@router.post("/recommendations", response_model=RecommendationsResponse)
async def get_recommendations(
    request: Request,
    principal_id: str = Query(..., min_length=1, description="Principal identifier"),
    store: TransactionStore = Depends(get_store),
    reasoning: Optional[ReasoningService] = Depends(get_reasoning_service),
):
    """Spending-reduction strategies for the principal's transactions"""
    request_id = get_request_id(request)
    if reasoning is None:
        raise HTTPException(status_code=503, detail="Reasoning service not configured")

    try:
        recommendations = await SavingsAdvisor(reasoning).recommend(store.select_transactions(principal_id))
    except (ClassificationUnavailable, ConfigMissing) as e:
        logging.warning(f"Recommendations failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=502, detail="Reasoning service unavailable")

    return RecommendationsResponse(
        principal_id=principal_id,
        recommendations=[RecommendationItem(**asdict(r)) for r in recommendations],
    )
