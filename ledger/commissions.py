from decimal import Decimal
from typing import List, Optional
import logging

from sqlalchemy import update

from extensions import db
from models import User, ReferralCommission, CommissionType, TransactionType
from ledger.balance import BalanceManager
from ledger.config import LedgerConfig
from utils import money

logger = logging.getLogger(__name__)


class ReferralCommissionHelper:
    """
    Pays referrers. Must be called inside an existing transaction
    (no begin/commit here).
    """

    @staticmethod
    def pay_task_commissions(user: User, reward: Decimal, task_title: str) -> List[ReferralCommission]:
        """
        Walk up to MAX_LEVEL referrers above `user`, crediting each its level's
        percentage of the task reward.
        """
        paid = []
        current = user

        for level in range(1, LedgerConfig.MAX_LEVEL + 1):
            referrer_id = current.referred_by
            if not referrer_id:
                break

            referrer = db.session.get(User, referrer_id)
            if referrer is None:
                break

            commission = money(Decimal(str(reward)) * LedgerConfig.get_commission_rate(level))
            if commission > 0:
                description = f"{LedgerConfig.rate_label(level)} commission from: {task_title}"
                BalanceManager.credit(referrer.id, commission, TransactionType.COMMISSION, description)

                record = ReferralCommission(
                    receiver_id=referrer.id,
                    generator_id=user.id,
                    amount=commission,
                    type=CommissionType.TASK_COMMISSION.value,
                    level=level,
                    description=description,
                )
                db.session.add(record)
                paid.append(record)

            current = referrer

        if paid:
            logger.info(f"Paid {len(paid)} task commission(s) generated by user {user.id}")
        return paid

    @staticmethod
    def pay_signup_bonus(user_id: int) -> Optional[ReferralCommission]:
        """
        Pay the flat referral bonus to the user's referrer, at most once per
        referred user. The flag flip is a conditional UPDATE, so only one
        caller can win it.
        """
        user = db.session.get(User, user_id)
        if user is None or not user.referred_by:
            return None

        result = db.session.execute(
            update(User)
            .where(User.id == user_id, User.referral_bonus_paid.is_(False))
            .values(referral_bonus_paid=True)
            .execution_options(synchronize_session=False)
        )
        db.session.refresh(user, attribute_names=["referral_bonus_paid"])
        if result.rowcount == 0:
            logger.info(f"Referral bonus for user {user_id} already paid")
            return None

        amount = money(LedgerConfig.referral_bonus())
        description = f"Referral bonus for {user.email}"
        BalanceManager.credit(user.referred_by, amount, TransactionType.REFERRAL_BONUS, description)

        record = ReferralCommission(
            receiver_id=user.referred_by,
            generator_id=user.id,
            amount=amount,
            type=CommissionType.SIGNUP_BONUS.value,
            level=1,
            description=description,
        )
        db.session.add(record)
        logger.info(f"Referral bonus {amount} paid to user {user.referred_by} for user {user_id}")
        return record
