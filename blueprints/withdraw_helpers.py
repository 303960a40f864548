from decimal import Decimal
import logging
from typing import Tuple, List

from sqlalchemy import update

from extensions import db
from models import User, Withdrawal, WithdrawalStatus, TransactionType, PackagePurchase
from ledger.balance import BalanceManager
from ledger.exceptions import InvalidStateError
from ledger.packages import PackageEarningManager
from utils import money, utcnow


logger = logging.getLogger(__name__)

WITHDRAWAL_STATUSES = {s.value for s in WithdrawalStatus}

# ==========================================================
#                  WITHDRAWAL VALIDATOR
# ==========================================================
class WithdrawalValidator:
    @staticmethod
    def validate_withdrawal_request(user: User, amount, password: str) -> Tuple[bool, str]:
        """
        Checks run in order: payout destination, amount, password,
        balance, outstanding requests.
        """
        if not user.deposit_link:
            return False, "Please set your deposit link first"

        if amount is None or amount <= 0:
            return False, "Invalid amount"

        if not password or not user.check_password(password):
            return False, "Incorrect password"

        if amount > money(user.balance):
            return False, "Insufficient balance"

        pending = Withdrawal.query.filter_by(
            user_id=user.id, status=WithdrawalStatus.PENDING.value
        ).first()
        if pending:
            return False, "You have a pending withdrawal. Please wait for it to complete."

        return True, "Validation passed"

# ==========================================================
#                  WITHDRAWAL MANAGER
# ==========================================================
class WithdrawalManager:
    @staticmethod
    def create_withdrawal(user: User, amount: Decimal) -> Withdrawal:
        withdrawal = Withdrawal(
            user_id=user.id,
            amount=amount,
            destination=user.deposit_link,
            status=WithdrawalStatus.PENDING.value,
        )
        db.session.add(withdrawal)
        return withdrawal

    @staticmethod
    def review(withdrawal: Withdrawal, status: str) -> Tuple[Withdrawal, List[PackagePurchase]]:
        """
        Move a withdrawal to `status`. Approval debits the balance (refused
        when it would go negative) and then cancels the newest active packages
        until the remaining investment fits the reduced balance.
        Returns (withdrawal, cancelled_purchases).
        """
        if status not in WITHDRAWAL_STATUSES:
            raise InvalidStateError(f"Invalid status: {status}")

        previous = withdrawal.status
        if previous == status:
            return withdrawal, []

        if previous == WithdrawalStatus.APPROVED.value:
            raise InvalidStateError("Approved withdrawals cannot be changed")

        # Conditional status flip first, so two reviewers holding the same
        # pending row cannot both debit it.
        result = db.session.execute(
            update(Withdrawal)
            .where(
                Withdrawal.id == withdrawal.id,
                Withdrawal.status != WithdrawalStatus.APPROVED.value,
                Withdrawal.status != status,
            )
            .values(status=status, processed_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        db.session.refresh(withdrawal, attribute_names=["status", "processed_at"])

        if result.rowcount == 0:
            if withdrawal.status == status:
                logger.info(f"Withdrawal {withdrawal.id} already {status}")
                return withdrawal, []
            raise InvalidStateError("Approved withdrawals cannot be changed")

        cancelled = []
        if status == WithdrawalStatus.APPROVED.value:
            entry = BalanceManager.debit(
                withdrawal.user_id,
                withdrawal.amount,
                TransactionType.WITHDRAWAL,
                f"Withdrawal to {withdrawal.destination}",
            )
            cancelled = PackageEarningManager.enforce_investment_cap(
                withdrawal.user_id, entry.balance_after
            )

        db.session.flush()

        logger.info(
            f"Withdrawal {withdrawal.id} moved from {previous} to {status}; "
            f"{len(cancelled)} package(s) cancelled"
        )
        return withdrawal, cancelled
