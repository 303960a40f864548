from decimal import Decimal, ROUND_DOWN
from typing import Dict, Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import User, Task, TaskHistory, Deposit, DepositStatus, TransactionType
from ledger.balance import BalanceManager
from ledger.commissions import ReferralCommissionHelper
from ledger.config import LedgerConfig
from ledger.exceptions import AlreadyClaimedError, DailyLimitError
from utils import money, utc_today, CENT


class TaskEarningManager:
    """Task rewards, capped per UTC day by the user's approved deposits."""

    @staticmethod
    def daily_limit(user_id: int) -> Decimal:
        """Daily limit = total approved deposits / 30 (30-day ROI)."""
        total = db.session.execute(
            select(func.coalesce(func.sum(Deposit.amount), 0))
            .where(Deposit.user_id == user_id, Deposit.status == DepositStatus.APPROVED.value)
        ).scalar()
        limit = Decimal(str(total)) / LedgerConfig.daily_limit_divisor()
        return limit.quantize(CENT, rounding=ROUND_DOWN)

    @staticmethod
    def today_earnings(user_id: int) -> Decimal:
        total = db.session.execute(
            select(func.coalesce(func.sum(TaskHistory.earned), 0))
            .where(TaskHistory.user_id == user_id, TaskHistory.completed_on == utc_today())
        ).scalar()
        return money(total)

    @staticmethod
    def completed_task_ids(user_id: int) -> set:
        rows = db.session.execute(
            select(TaskHistory.task_id)
            .where(TaskHistory.user_id == user_id, TaskHistory.completed_on == utc_today())
        ).scalars()
        return set(rows)

    @staticmethod
    def completed_on(user_id: int, task_id: int, day):
        return TaskHistory.query.filter_by(user_id=user_id, task_id=task_id, completed_on=day).first()

    @staticmethod
    def complete_task(user: User, task: Task) -> Dict[str, Any]:
        today = utc_today()

        if TaskEarningManager.completed_on(user.id, task.id, today):
            raise AlreadyClaimedError("Task already completed today")

        daily_limit = TaskEarningManager.daily_limit(user.id)
        today_earnings = TaskEarningManager.today_earnings(user.id)

        if daily_limit <= 0:
            raise DailyLimitError(
                f"Please make a deposit first to start earning. "
                f"Minimum deposit: ${LedgerConfig.min_deposit():.0f}"
            )

        if today_earnings >= daily_limit:
            raise DailyLimitError(
                f"Daily earning limit reached (${daily_limit:.2f}). Come back tomorrow!",
                dailyLimit=float(daily_limit),
                todayEarnings=float(today_earnings),
            )

        # Reward may be capped by what is left of today's limit
        reward = min(money(task.reward), daily_limit - today_earnings)

        history = TaskHistory(user_id=user.id, task_id=task.id, earned=reward, completed_on=today)
        db.session.add(history)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            raise AlreadyClaimedError("Task already completed today")

        BalanceManager.credit(user.id, reward, TransactionType.TASK_REWARD, f"Task: {task.title}")
        commissions = ReferralCommissionHelper.pay_task_commissions(user, reward, task.title)

        return {
            "earned": reward,
            "daily_limit": daily_limit,
            "today_earnings": today_earnings + reward,
            "remaining_today": daily_limit - today_earnings - reward,
            "commissions": commissions,
        }
