from decimal import Decimal
from typing import List
import logging

from sqlalchemy.exc import IntegrityError

from extensions import db
from models import PackagePurchase, PurchaseStatus, DailyEarning, TransactionType
from ledger.balance import BalanceManager
from ledger.exceptions import AlreadyClaimedError, InvalidStateError
from utils import money, utc_today

logger = logging.getLogger(__name__)


class PackageEarningManager:
    """
    Daily-claim accrual and cancellation for package purchases.
    One claim per purchase per UTC calendar day.
    """

    @staticmethod
    def claimed_on(purchase_id: int, day):
        return DailyEarning.query.filter_by(purchase_id=purchase_id, claim_date=day).first()

    @staticmethod
    def claim_daily_earning(purchase: PackagePurchase) -> DailyEarning:
        if purchase.status != PurchaseStatus.ACTIVE.value:
            raise InvalidStateError("This package is no longer active")

        today = utc_today()
        if PackageEarningManager.claimed_on(purchase.id, today):
            raise AlreadyClaimedError("Already claimed today. Come back tomorrow!")

        if purchase.days_completed >= purchase.total_days:
            purchase.status = PurchaseStatus.COMPLETED.value
            # completion is kept even though this claim is refused
            db.session.commit()
            raise InvalidStateError("All earnings have been claimed for this package")

        next_day = purchase.days_completed + 1
        amount = money(purchase.daily_return)

        earning = DailyEarning(
            user_id=purchase.user_id,
            purchase_id=purchase.id,
            amount=amount,
            day=next_day,
            claim_date=today,
        )
        db.session.add(earning)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            raise AlreadyClaimedError("Already claimed today. Come back tomorrow!")

        purchase.days_completed = next_day
        purchase.total_earned = money(purchase.total_earned) + amount
        if next_day >= purchase.total_days:
            purchase.status = PurchaseStatus.COMPLETED.value

        name = purchase.package.name if purchase.package else "Package"
        BalanceManager.credit(purchase.user_id, amount, TransactionType.DAILY_EARNING,
                              f"{name} day {next_day}")
        return earning

    @staticmethod
    def cancel(purchase: PackagePurchase) -> PackagePurchase:
        if purchase.status != PurchaseStatus.ACTIVE.value:
            raise InvalidStateError("Package is not active")
        purchase.status = PurchaseStatus.CANCELLED.value
        return purchase

    @staticmethod
    def enforce_investment_cap(user_id: int, balance: Decimal) -> List[PackagePurchase]:
        """
        Cancel the newest active purchases until the active investment fits
        inside `balance`. Returns the purchases that were cancelled.
        """
        active = (
            PackagePurchase.query
            .filter_by(user_id=user_id, status=PurchaseStatus.ACTIVE.value)
            .order_by(PackagePurchase.purchased_at.desc(), PackagePurchase.id.desc())
            .all()
        )
        invested = sum((money(p.amount_paid) for p in active), Decimal("0"))
        balance = money(balance)

        cancelled = []
        for purchase in active:
            if invested <= balance:
                break
            purchase.status = PurchaseStatus.CANCELLED.value
            invested -= money(purchase.amount_paid)
            cancelled.append(purchase)

        if cancelled:
            logger.info(
                f"Cancelled {len(cancelled)} package(s) for user {user_id}: "
                f"investment now {invested}, balance {balance}"
            )
        return cancelled
