from decimal import Decimal

import pytest

from extensions import db
from ledger.balance import BalanceManager
from ledger.commissions import ReferralCommissionHelper
from ledger.config import LedgerConfig
from ledger.exceptions import InsufficientBalanceError, LedgerError
from ledger.packages import PackageEarningManager
from models import InvestmentPackage, PackagePurchase, PurchaseStatus, Transaction, TransactionType, User


def test_credit_and_debit_keep_journal_in_step(app, make_user):
    user = make_user()
    with app.app_context():
        BalanceManager.credit(user.id, "10.005", TransactionType.DEPOSIT)
        entry = BalanceManager.debit(user.id, Decimal("4.50"), TransactionType.WITHDRAWAL)
        db.session.commit()

        assert entry.amount == Decimal("-4.50")
        assert entry.balance_after == Decimal("5.51")
        assert db.session.get(User, user.id).balance == Decimal("5.51")
        assert BalanceManager.journal_total(user.id) == Decimal("5.51")


def test_debit_refuses_to_go_negative(app, make_user):
    user = make_user(balance=5)
    with app.app_context():
        with pytest.raises(InsufficientBalanceError):
            BalanceManager.debit(user.id, Decimal("5.01"), TransactionType.WITHDRAWAL)
        db.session.rollback()

        assert db.session.get(User, user.id).balance == Decimal("5.00")
        assert Transaction.query.filter_by(user_id=user.id).count() == 1


def test_non_positive_amounts_rejected(app, make_user):
    user = make_user()
    with app.app_context():
        with pytest.raises(LedgerError):
            BalanceManager.credit(user.id, 0, TransactionType.DEPOSIT)
        with pytest.raises(LedgerError):
            BalanceManager.debit(user.id, Decimal("-1"), TransactionType.WITHDRAWAL)
        with pytest.raises(LedgerError):
            BalanceManager.credit(9999, 1, TransactionType.DEPOSIT)


def test_adjust_to_journals_difference(app, make_user):
    user = make_user(balance=20)
    with app.app_context():
        target = db.session.get(User, user.id)
        assert BalanceManager.adjust_to(target, "20.00") is None

        entry = BalanceManager.adjust_to(target, 12)
        db.session.commit()
        assert entry.type == TransactionType.ADJUSTMENT.value
        assert entry.amount == Decimal("-8.00")

        with pytest.raises(LedgerError):
            BalanceManager.adjust_to(target, -1)


def test_signup_bonus_paid_once(app, make_user):
    referrer = make_user()
    referred = make_user(referrer=referrer)
    loner = make_user()

    with app.app_context():
        assert ReferralCommissionHelper.pay_signup_bonus(referred.id) is not None
        assert ReferralCommissionHelper.pay_signup_bonus(referred.id) is None
        assert ReferralCommissionHelper.pay_signup_bonus(loner.id) is None
        db.session.commit()

        assert db.session.get(User, referrer.id).balance == Decimal("2.00")
        assert db.session.get(User, referred.id).referral_bonus_paid is True


def test_commission_rates():
    assert LedgerConfig.get_commission_rate(1) == Decimal("0.10")
    assert LedgerConfig.get_commission_rate(3) == Decimal("0.02")
    assert LedgerConfig.get_commission_rate(4) == Decimal("0")
    assert LedgerConfig.rate_label(2) == "5%"


def test_investment_cap_cancels_newest_first(app, make_user):
    user = make_user(balance=100)
    with app.app_context():
        package = InvestmentPackage(name="Test", price=Decimal("40"), daily_return=Decimal("1"), total_days=30)
        db.session.add(package)
        db.session.flush()

        purchases = []
        for _ in range(3):
            purchase = PackagePurchase(user_id=user.id, package_id=package.id, amount_paid=package.price,
                                       daily_return=package.daily_return, total_days=package.total_days)
            db.session.add(purchase)
            db.session.flush()
            purchases.append(purchase)

        cancelled = PackageEarningManager.enforce_investment_cap(user.id, Decimal("50"))
        db.session.commit()

        assert [p.id for p in cancelled] == [purchases[2].id, purchases[1].id]
        assert purchases[0].status == PurchaseStatus.ACTIVE.value
        assert BalanceManager.invested_total(user.id) == Decimal("40.00")

        assert PackageEarningManager.enforce_investment_cap(user.id, Decimal("40")) == []
