"""Budget aggregation engine - derived views over classified transactions.

Every function is pure and recomputes from the full transaction list on each
call; nothing is cached between calls.
"""

from typing import Dict, Iterable, List, Mapping, Sequence, Union

from budget_gateway.domain.models import (
    CREDIT,
    DEBIT,
    BudgetLimit,
    BudgetStatus,
    BudgetSummary,
    SavingsProgress,
    Transaction,
)
from budget_gateway.domain.rules import CATCH_ALL_CATEGORY

Limits = Union[Sequence[BudgetLimit], Mapping[str, int]]


def _as_limits(limits: Limits) -> List[BudgetLimit]:
    if isinstance(limits, Mapping):
        return [BudgetLimit(category=c, limit=v) for c, v in limits.items()]
    return list(limits)


def net_savings(transactions: Iterable[Transaction]) -> int:
    """Credits minus debits over every loaded transaction (no date window)"""
    income = 0
    spend = 0
    for txn in transactions:
        if txn.direction == CREDIT:
            income += txn.amount
        elif txn.direction == DEBIT:
            spend += txn.amount
    return income - spend


def category_breakdown(transactions: Iterable[Transaction]) -> Dict[str, int]:
    """
    Debit totals per category.

    Keys keep the order in which each category first appears; uncategorized
    debits are grouped under the catch-all label.
    """
    totals: Dict[str, int] = {}
    for txn in transactions:
        if txn.direction != DEBIT:
            continue
        category = txn.category or CATCH_ALL_CATEGORY
        totals[category] = totals.get(category, 0) + txn.amount
    return totals


def budget_status(transactions: Iterable[Transaction], limits: Limits) -> List[BudgetStatus]:
    """
    Spend against each configured budget, in configuration order.

    Only debits whose category equals the budget's category count; categories
    without a budget entry are not reported. A budget is over only when spend
    strictly exceeds its limit.
    """
    debits = [t for t in transactions if t.direction == DEBIT and t.category]
    statuses = []
    for budget in _as_limits(limits):
        spent = sum(t.amount for t in debits if t.category == budget.category)
        statuses.append(
            BudgetStatus(
                category=budget.category,
                spent=spent,
                limit=budget.limit,
                over_budget=spent > budget.limit,
                utilization=spent / budget.limit if budget.limit > 0 else 0.0,
            )
        )
    return statuses


def savings_progress(transactions: Iterable[Transaction], goal: int) -> SavingsProgress:
    """Net savings as a percentage of the goal; the ratio is clamped to [0, 1]"""
    net = net_savings(transactions)
    if goal <= 0:
        return SavingsProgress(net_savings=net, goal=goal, percent_achieved=0, progress_ratio=0.0)

    ratio = net / goal
    return SavingsProgress(
        net_savings=net,
        goal=goal,
        percent_achieved=round(ratio * 100),
        progress_ratio=min(max(ratio, 0.0), 1.0),
    )


def summarize(transactions: Sequence[Transaction], limits: Limits, goal: int) -> BudgetSummary:
    """Compute every derived view in one call"""
    return BudgetSummary(
        net_savings=net_savings(transactions),
        category_breakdown=category_breakdown(transactions),
        budgets=budget_status(transactions, limits),
        savings=savings_progress(transactions, goal),
    )
