# package_helpers.py
from datetime import timedelta

from extensions import db
from models import User, InvestmentPackage, PackagePurchase, PurchaseStatus
from ledger.balance import BalanceManager
from ledger.exceptions import InsufficientBalanceError, InvestmentLimitError
from utils import money, utcnow


class PackagePurchaseValidator:
    @staticmethod
    def validate_package_purchase(user: User, package: InvestmentPackage):
        """
        A purchase never debits the balance; instead the total of active
        purchases must stay within it. Raises a LedgerError subclass.
        """
        balance = money(user.balance)
        price = money(package.price)

        if balance < price:
            raise InsufficientBalanceError("Insufficient balance. Please deposit first.")

        invested = BalanceManager.invested_total(user.id)
        if invested + price > balance:
            can_buy = int((balance - invested) // price)
            if can_buy <= 0:
                raise InvestmentLimitError(
                    f"You cannot buy more packages. Your balance (${balance:.2f}) "
                    f"is fully invested (${invested:.2f})."
                )
            raise InvestmentLimitError(
                f"Insufficient balance. You can only buy {can_buy} more package(s) of this type."
            )

    @staticmethod
    def process_package_purchase(user: User, package: InvestmentPackage) -> PackagePurchase:
        """Validate and record the purchase. The caller commits."""
        PackagePurchaseValidator.validate_package_purchase(user, package)

        now = utcnow()
        purchase = PackagePurchase(
            user_id=user.id,
            package_id=package.id,
            amount_paid=package.price,
            daily_return=package.daily_return,
            total_days=package.total_days,
            days_completed=0,
            total_earned=0,
            status=PurchaseStatus.ACTIVE.value,
            purchased_at=now,
            expires_at=now + timedelta(days=package.total_days),
        )
        db.session.add(purchase)
        db.session.flush()
        return purchase
