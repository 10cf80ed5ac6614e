"""Budget goal evaluation and alerting.

Spending per category is compared against each goal's limit.  Goals end up
``ok``, ``near`` (strictly above the near threshold) or ``over`` (strictly
above the limit), and every non-ok goal yields one notification whose id
depends only on the goal and the status, so consumers can diff alerts
between evaluations instead of raising them again.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pandas as pd

from .config import NEAR_THRESHOLD
from .errors import ValidationError
from .models import BudgetGoal

logger = logging.getLogger(__name__)


class BudgetStatus(str, Enum):
    OK = 'ok'
    NEAR = 'near'
    OVER = 'over'


@dataclass(frozen=True)
class BudgetEvaluation:
    goal_id: str
    category: str
    spent: float
    limit: float
    status: BudgetStatus
    percent: float

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['status'] = self.status.value
        return data


@dataclass(frozen=True)
class Notification:
    id: str
    goal_id: str
    level: str  # 'warning' or 'info'
    title: str
    message: str


def budget_status(spent: float, limit: float, near_threshold: float = NEAR_THRESHOLD) -> BudgetStatus:
    """Classify ``spent`` against ``limit``.

    Both boundaries are strict: exactly the limit is not over and exactly
    the threshold share of the limit is not near.

    Example:
        >>> budget_status(850, 1000)
        <BudgetStatus.OK: 'ok'>
        >>> budget_status(851, 1000)
        <BudgetStatus.NEAR: 'near'>
    """
    if spent > limit:
        return BudgetStatus.OVER
    if spent > limit * near_threshold:
        return BudgetStatus.NEAR
    return BudgetStatus.OK


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def evaluate_budgets(
    spending: Mapping[str, float],
    goals: Iterable[BudgetGoal],
    *,
    near_threshold: Optional[float] = None,
) -> List[BudgetEvaluation]:
    """Evaluate every goal against the expense map of one cycle.

    Args:
        spending: expense totals keyed by category, in-cycle only.
        goals: the user's budget goals.
        near_threshold: share of the limit above which a goal is near.
            Defaults to ``config.NEAR_THRESHOLD``.

    Returns:
        One evaluation per goal, in goal order.
    """
    threshold = NEAR_THRESHOLD if near_threshold is None else near_threshold
    results: List[BudgetEvaluation] = []
    for goal in goals:
        if goal.limit <= 0:
            raise ValidationError(f"Budget limit for '{goal.category}' must be greater than zero")
        spent = float(spending.get(goal.category, 0.0))
        status = budget_status(spent, goal.limit, threshold)
        results.append(BudgetEvaluation(
            goal_id=goal.id,
            category=goal.category,
            spent=spent,
            limit=float(goal.limit),
            status=status,
            percent=min(spent / goal.limit * 100.0, 100.0),
        ))
    return results


def budget_notifications(evaluations: Iterable[BudgetEvaluation]) -> List[Notification]:
    notifications: List[Notification] = []
    for evaluation in evaluations:
        if evaluation.status is BudgetStatus.OVER:
            notifications.append(Notification(
                id=f"over-{evaluation.goal_id}",
                goal_id=evaluation.goal_id,
                level='warning',
                title='Budget Exceeded Warning',
                message=(
                    f"You have exceeded your {evaluation.category} budget of "
                    f"{evaluation.limit:,.2f}. Current: {evaluation.spent:,.2f}"
                ),
            ))
        elif evaluation.status is BudgetStatus.NEAR:
            used = _round_half_up(evaluation.spent / evaluation.limit * 100.0)
            notifications.append(Notification(
                id=f"near-{evaluation.goal_id}",
                goal_id=evaluation.goal_id,
                level='info',
                title='Approaching Budget Limit',
                message=f"You are at {used}% of your {evaluation.category} budget.",
            ))
    if notifications:
        logger.info("Raised %d budget notifications", len(notifications))
    return notifications


def budget_performance_frame(evaluations: Iterable[BudgetEvaluation]) -> pd.DataFrame:
    """Tabular form of the evaluations for export consumers.

    Columns: Category, Limit, Spent, Remaining, Percent Used, Status
    """
    rows = [
        {
            'Category': evaluation.category,
            'Limit': evaluation.limit,
            'Spent': evaluation.spent,
            'Remaining': evaluation.limit - evaluation.spent,
            'Percent Used': evaluation.percent,
            'Status': evaluation.status.value,
        }
        for evaluation in evaluations
    ]
    return pd.DataFrame(rows, columns=['Category', 'Limit', 'Spent', 'Remaining', 'Percent Used', 'Status'])
