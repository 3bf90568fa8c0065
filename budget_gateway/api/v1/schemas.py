"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date
from typing import Dict, List, Optional


class LinkIntentResponse(BaseModel):
    """Response for POST /v1/links/intent"""

    widget_token: str


class WebhookRequest(BaseModel):
    """Provider callback after a successful bank connection"""

    link_token: str = Field(..., min_length=1, description="Provider-issued link token")
    holder_id: Optional[str] = Field(None, description="Account holder / institution label")


class WebhookResponse(BaseModel):
    received: bool
    synced: int


class SyncResponse(BaseModel):
    """Response for POST /v1/sync"""

    principal_id: str
    synced: int


class TransactionItem(BaseModel):
    id: int
    external_id: str
    description: str
    amount: int
    direction: str
    value_date: date
    category: Optional[str] = None
    review_state: Optional[str] = None
    rationale: Optional[str] = None


class TransactionListResponse(BaseModel):
    principal_id: str
    transactions: List[TransactionItem]


class ClassificationResponse(BaseModel):
    transaction_id: int
    category: str
    review_state: str
    rationale: str


class ManualCategoryRequest(BaseModel):
    """Request body for PUT /v1/transactions/{id}/category"""

    category: str = Field(..., min_length=1)


class ClassificationFailureItem(BaseModel):
    transaction_id: int
    reason: str


class ClassifyAllResponse(BaseModel):
    """Response for POST /v1/transactions/classify-all"""

    principal_id: str
    classified: List[int]
    failed: List[ClassificationFailureItem]
    skipped: List[int]


class BudgetStatusItem(BaseModel):
    category: str
    spent: int
    limit: int
    over_budget: bool
    utilization: float


class SavingsProgressSchema(BaseModel):
    net_savings: int
    goal: int
    percent_achieved: int
    progress_ratio: float


class SummaryResponse(BaseModel):
    """Response for GET /v1/summary"""

    principal_id: str
    net_savings: int
    category_breakdown: Dict[str, int]
    budgets: List[BudgetStatusItem]
    savings: SavingsProgressSchema


class RecommendationItem(BaseModel):
    title: str
    description: str
    estimated_saving: str


class RecommendationsResponse(BaseModel):
    principal_id: str
    recommendations: List[RecommendationItem]
