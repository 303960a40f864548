# payments_helpers.py
import logging
from typing import Tuple

from sqlalchemy import update

from extensions import db
from models import Deposit, DepositStatus, TransactionType
from ledger.balance import BalanceManager
from ledger.commissions import ReferralCommissionHelper
from ledger.exceptions import InvalidStateError
from utils import utcnow

logger = logging.getLogger(__name__)

DEPOSIT_STATUSES = {s.value for s in DepositStatus}


class DepositReviewManager:
    """
    Admin moderation of manual deposits. Approval credits the balance once;
    the first approved deposit of a referred user also pays the referrer.
    """

    @staticmethod
    def review(deposit: Deposit, status: str) -> Tuple[Deposit, bool]:
        """
        Move a deposit to `status`. Returns (deposit, credited).
        Nothing commits; the route owns the transaction.
        """
        if status not in DEPOSIT_STATUSES:
            raise InvalidStateError(f"Invalid status: {status}")

        previous = deposit.status
        if previous == status:
            return deposit, False

        if previous == DepositStatus.APPROVED.value:
            raise InvalidStateError("Approved deposits cannot be changed")

        # The status flip is the guard: only one reviewer can move the row
        # out of a non-approved state, whatever each of them loaded.
        result = db.session.execute(
            update(Deposit)
            .where(
                Deposit.id == deposit.id,
                Deposit.status != DepositStatus.APPROVED.value,
                Deposit.status != status,
            )
            .values(status=status, reviewed_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        db.session.refresh(deposit, attribute_names=["status", "reviewed_at"])

        if result.rowcount == 0:
            if deposit.status == status:
                logger.info(f"Deposit {deposit.id} already {status}")
                return deposit, False
            raise InvalidStateError("Approved deposits cannot be changed")

        if status != DepositStatus.APPROVED.value:
            logger.info(f"Deposit {deposit.id} moved from {previous} to {status}")
            return deposit, False

        BalanceManager.credit(
            deposit.user_id,
            deposit.amount,
            TransactionType.DEPOSIT,
            f"Deposit {deposit.transaction_id}",
        )
        ReferralCommissionHelper.pay_signup_bonus(deposit.user_id)
        db.session.flush()

        logger.info(f"Deposit {deposit.id} approved, credited {deposit.amount} to user {deposit.user_id}")
        return deposit, True
