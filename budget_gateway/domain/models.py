"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

CREDIT = "credit"
DEBIT = "debit"

PENDING = "pending"
CONFIRMED = "confirmed"


@dataclass
class BankLink:
    """Authorized connection between a principal and a provider session"""

    principal_id: str
    link_token: str
    institution_label: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class Account:
    """Bank account reachable under a link"""

    account_id: str
    name: Optional[str] = None


@dataclass
class RawMovement:
    """Movement as reported by the provider, before normalization"""

    external_id: str
    description: Optional[str]
    amount: int  # signed, smallest currency unit; positive = credit
    posted_at: Optional[str]  # raw provider timestamp


@dataclass
class Transaction:
    """Normalized, persisted bank movement"""

    principal_id: str
    external_id: str
    description: str
    amount: int  # non-negative magnitude
    direction: str  # "credit" or "debit"
    value_date: date
    category: Optional[str] = None
    review_state: Optional[str] = None  # "pending" | "confirmed" | None
    rationale: Optional[str] = None
    id: Optional[int] = None


@dataclass
class ClassificationResult:
    """Category and review state assigned to one transaction"""

    category: str
    review_state: str
    rationale: str


@dataclass
class ClassificationFailure:
    """Automated classification could not produce a result for a transaction"""

    transaction_id: int
    reason: str


@dataclass
class ClassifyAllReport:
    """Outcome of a batch classification pass"""

    classified: List[int] = field(default_factory=list)
    failed: List[ClassificationFailure] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)

    @property
    def failed_ids(self) -> List[int]:
        return [f.transaction_id for f in self.failed]


@dataclass
class BudgetLimit:
    """Spending cap configured for one category"""

    category: str
    limit: int


@dataclass
class BudgetStatus:
    """Spend against one configured budget"""

    category: str
    spent: int
    limit: int
    over_budget: bool
    utilization: float


@dataclass
class SavingsProgress:
    """Net savings measured against a goal"""

    net_savings: int
    goal: int
    percent_achieved: int
    progress_ratio: float


@dataclass
class BudgetSummary:
    """All derived views over a principal's transactions"""

    net_savings: int
    category_breakdown: dict
    budgets: List[BudgetStatus]
    savings: SavingsProgress


@dataclass
class SavingsRecommendation:
    """Spending-reduction strategy suggested by the reasoning service"""

    title: str
    description: str
    estimated_saving: str
