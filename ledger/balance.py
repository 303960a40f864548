from decimal import Decimal
import uuid
from typing import Optional

from sqlalchemy import update, select, func

from extensions import db
from logger import ledger_logger
from models import User, Transaction, TransactionType, PackagePurchase, PurchaseStatus
from ledger.exceptions import LedgerError, InsufficientBalanceError
from utils import money


# ==========================================================
#                  BALANCE MANAGER
# ==========================================================
class BalanceManager:
    """
    Every balance change goes through here: one atomic UPDATE on the user row
    plus one journal row. Nothing commits; callers own the transaction.
    """

    @staticmethod
    def credit(user_id: int, amount, kind: TransactionType, description: Optional[str] = None) -> Transaction:
        amount = money(amount)
        if amount <= 0:
            raise LedgerError("Credit amount must be positive")

        result = db.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(balance=User.balance + amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise LedgerError("User not found")

        return BalanceManager._journal(user_id, amount, kind, description)

    @staticmethod
    def debit(user_id: int, amount, kind: TransactionType, description: Optional[str] = None) -> Transaction:
        amount = money(amount)
        if amount <= 0:
            raise LedgerError("Debit amount must be positive")

        # The balance guard lives in the WHERE clause so two concurrent
        # debits cannot both pass a stale read.
        result = db.session.execute(
            update(User)
            .where(User.id == user_id, User.balance >= amount)
            .values(balance=User.balance - amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise InsufficientBalanceError("Insufficient balance")

        return BalanceManager._journal(user_id, -amount, kind, description)

    @staticmethod
    def adjust_to(user: User, new_balance, description: Optional[str] = None) -> Optional[Transaction]:
        """Set a balance outright (admin edit), journalling the difference."""
        target = money(new_balance)
        if target < 0:
            raise LedgerError("Balance cannot be negative")

        delta = target - money(user.balance)
        if delta == 0:
            return None

        db.session.execute(
            update(User)
            .where(User.id == user.id)
            .values(balance=User.balance + delta)
            .execution_options(synchronize_session=False)
        )
        return BalanceManager._journal(user.id, delta, TransactionType.ADJUSTMENT,
                                       description or "Balance adjusted by admin")

    @staticmethod
    def invested_total(user_id: int) -> Decimal:
        """Sum paid for the user's active package purchases."""
        total = db.session.execute(
            select(func.coalesce(func.sum(PackagePurchase.amount_paid), 0))
            .where(PackagePurchase.user_id == user_id,
                   PackagePurchase.status == PurchaseStatus.ACTIVE.value)
        ).scalar()
        return money(total)

    @staticmethod
    def journal_total(user_id: int) -> Decimal:
        total = db.session.execute(
            select(func.coalesce(func.sum(Transaction.amount), 0))
            .where(Transaction.user_id == user_id)
        ).scalar()
        return money(total)

    @staticmethod
    def _journal(user_id: int, amount: Decimal, kind: TransactionType, description: Optional[str]) -> Transaction:
        user = db.session.get(User, user_id)
        db.session.refresh(user, attribute_names=["balance"])
        balance_after = money(user.balance)

        entry = Transaction(
            user_id=user_id,
            type=kind.value,
            amount=amount,
            balance_after=balance_after,
            reference=f"{kind.value.upper()}-{uuid.uuid4().hex[:12].upper()}",
            description=description,
        )
        db.session.add(entry)

        ledger_logger.info(
            f"user={user_id} kind={kind.value} amount={amount} balance_after={balance_after}"
        )
        return entry
