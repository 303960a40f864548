# models.py - Flask-SQLAlchemy models
from enum import Enum

from flask_login import UserMixin
from sqlalchemy import UniqueConstraint, Index, text
from werkzeug.security import check_password_hash, generate_password_hash

from extensions import db
from utils import utcnow, utc_today

# ===========================================================
# ENUM DEFINITIONS
# ===========================================================

class DepositStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class WithdrawalStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PurchaseStatus(Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CommissionType(Enum):
    SIGNUP_BONUS = "signup_bonus"
    TASK_COMMISSION = "task_commission"


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TASK_REWARD = "task_reward"
    DAILY_EARNING = "daily_earning"
    REFERRAL_BONUS = "referral_bonus"
    COMMISSION = "commission"
    ADJUSTMENT = "adjustment"


class OTPType(Enum):
    SIGNUP = "signup"
    RESET = "reset"


def _iso(value):
    return value.isoformat() if value else None


# ===========================================================
# BASE MIXIN FOR COMMON FIELDS
# ===========================================================

class BaseMixin:
    """Provides created_at and updated_at timestamps to inheriting models."""
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

# ===========================================================
# USER MODELS
# ===========================================================

class User(UserMixin, db.Model, BaseMixin):
    """Account holder. One balance, journalled through Transaction rows."""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    name = db.Column(db.String(120), nullable=True)
    password_hash = db.Column(db.String(255), nullable=False)

    balance = db.Column(db.Numeric(18, 2), nullable=False, default=0, server_default=text("0"))
    deposit_link = db.Column(db.String(255), nullable=True)  # where withdrawals are paid to

    referral_code = db.Column(db.String(20), unique=True, nullable=False)  # User's own referral code
    referred_by = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)
    referral_bonus_paid = db.Column(db.Boolean, nullable=False, default=False)  # referrer already paid for this user

    is_verified = db.Column(db.Boolean, nullable=False, default=False)
    is_admin = db.Column(db.Boolean, nullable=False, default=False)

    referrer = db.relationship('User', remote_side=[id], backref='team_members')
    deposits = db.relationship('Deposit', back_populates='user', lazy='dynamic')
    withdrawals = db.relationship('Withdrawal', back_populates='user', lazy='dynamic')
    purchases = db.relationship('PackagePurchase', back_populates='user', lazy='dynamic')

    __table_args__ = (
        Index('idx_user_referral_code', 'referral_code'),
    )

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password or "")

    def to_dict(self):
        """Serialize user for JSON responses."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "balance": float(self.balance or 0),
            "referralCode": self.referral_code,
            "referredBy": self.referred_by,
            "depositLink": self.deposit_link,
            "isVerified": self.is_verified,
            "isAdmin": self.is_admin,
            "createdAt": _iso(self.created_at),
        }


class OTP(db.Model):
    __tablename__ = 'otps'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), nullable=False, index=True)
    code = db.Column(db.String(10), nullable=False)
    type = db.Column(db.String(20), nullable=False)  # signup, reset
    expires_at = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

# ===========================================================
# LEDGER JOURNAL
# ===========================================================

class Transaction(db.Model):
    """
    One row per balance mutation. `amount` is signed, so a user's balance is
    always the sum of their transaction amounts.
    """
    __tablename__ = 'transactions'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    type = db.Column(db.String(50), nullable=False)
    amount = db.Column(db.Numeric(18, 2), nullable=False)
    balance_after = db.Column(db.Numeric(18, 2), nullable=False)
    reference = db.Column(db.String(120), unique=True, nullable=False, index=True)
    description = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    user = db.relationship('User', backref=db.backref('transactions', lazy='dynamic'))

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "amount": float(self.amount),
            "balanceAfter": float(self.balance_after),
            "reference": self.reference,
            "description": self.description,
            "createdAt": _iso(self.created_at),
        }

# ===========================================================
# DEPOSITS & WITHDRAWALS
# ===========================================================

class Deposit(db.Model, BaseMixin):
    __tablename__ = 'deposits'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    amount = db.Column(db.Numeric(18, 2), nullable=False)
    transaction_id = db.Column(db.String(128), nullable=False)
    screenshot = db.Column(db.Text, nullable=False)  # data URI
    status = db.Column(db.String(20), nullable=False, default=DepositStatus.PENDING.value, index=True)
    reviewed_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship('User', back_populates='deposits')

    def to_dict(self, include_user=False, include_screenshot=False):
        result = {
            "id": self.id,
            "userId": self.user_id,
            "amount": float(self.amount),
            "transactionId": self.transaction_id,
            "status": self.status,
            "createdAt": _iso(self.created_at),
            "reviewedAt": _iso(self.reviewed_at),
        }
        if include_screenshot:
            result["screenshot"] = self.screenshot
        if include_user and self.user:
            result["user"] = {
                "id": self.user.id,
                "email": self.user.email,
                "name": self.user.name,
                "balance": float(self.user.balance or 0),
            }
        return result


class Withdrawal(db.Model, BaseMixin):
    __tablename__ = 'withdrawals'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    amount = db.Column(db.Numeric(18, 2), nullable=False)
    destination = db.Column(db.String(255), nullable=False)  # user's deposit link at request time
    status = db.Column(db.String(20), nullable=False, default=WithdrawalStatus.PENDING.value, index=True)
    processed_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship('User', back_populates='withdrawals')

    def to_dict(self, include_user=False):
        result = {
            "id": self.id,
            "userId": self.user_id,
            "amount": float(self.amount),
            "destination": self.destination,
            "status": self.status,
            "createdAt": _iso(self.created_at),
            "processedAt": _iso(self.processed_at),
        }
        if include_user and self.user:
            result["user"] = {
                "id": self.user.id,
                "email": self.user.email,
                "name": self.user.name,
                "balance": float(self.user.balance or 0),
                "depositLink": self.user.deposit_link,
            }
        return result

# ===========================================================
# INVESTMENT PACKAGES
# ===========================================================

class InvestmentPackage(db.Model, BaseMixin):
    __tablename__ = 'investment_packages'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    price = db.Column(db.Numeric(18, 2), nullable=False)
    daily_return = db.Column(db.Numeric(18, 2), nullable=False)
    total_days = db.Column(db.Integer, nullable=False, default=30)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    @property
    def total_return(self):
        return self.daily_return * self.total_days

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "price": float(self.price),
            "dailyReturn": float(self.daily_return),
            "totalDays": self.total_days,
            "totalReturn": float(self.total_return),
            "isActive": self.is_active,
        }


class PackagePurchase(db.Model):
    """A user's subscription to a package; balance is tracked as invested, not debited."""
    __tablename__ = 'package_purchases'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    package_id = db.Column(db.Integer, db.ForeignKey('investment_packages.id'), nullable=False)
    amount_paid = db.Column(db.Numeric(18, 2), nullable=False)
    daily_return = db.Column(db.Numeric(18, 2), nullable=False)
    total_days = db.Column(db.Integer, nullable=False)
    days_completed = db.Column(db.Integer, nullable=False, default=0)
    total_earned = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    status = db.Column(db.String(20), nullable=False, default=PurchaseStatus.ACTIVE.value)
    purchased_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship('User', back_populates='purchases')
    package = db.relationship('InvestmentPackage')

    __table_args__ = (
        Index('idx_purchase_user_status', 'user_id', 'status'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "packageId": self.package_id,
            "package": self.package.to_dict() if self.package else None,
            "amountPaid": float(self.amount_paid),
            "dailyReturn": float(self.daily_return),
            "totalDays": self.total_days,
            "daysCompleted": self.days_completed,
            "totalEarned": float(self.total_earned or 0),
            "status": self.status,
            "purchasedAt": _iso(self.purchased_at),
            "expiresAt": _iso(self.expires_at),
        }


class DailyEarning(db.Model):
    __tablename__ = 'daily_earnings'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey('package_purchases.id', ondelete='CASCADE'), nullable=False)
    amount = db.Column(db.Numeric(18, 2), nullable=False)
    day = db.Column(db.Integer, nullable=False)
    claimed_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    claim_date = db.Column(db.Date, default=utc_today, nullable=False)

    purchase = db.relationship('PackagePurchase', backref=db.backref('earnings', lazy='dynamic'))

    __table_args__ = (
        UniqueConstraint('purchase_id', 'claim_date', name='uq_daily_earning_purchase_day'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "purchaseId": self.purchase_id,
            "amount": float(self.amount),
            "day": self.day,
            "claimedAt": _iso(self.claimed_at),
            "purchase": self.purchase.to_dict() if self.purchase else None,
        }

# ===========================================================
# TASKS
# ===========================================================

class Task(db.Model, BaseMixin):
    __tablename__ = 'tasks'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(120), nullable=False)
    description = db.Column(db.String(255))
    reward = db.Column(db.Numeric(18, 2), nullable=False)
    type = db.Column(db.String(30))  # video, survey, daily, social, referral, review
    icon = db.Column(db.String(16))
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "reward": float(self.reward),
            "type": self.type,
            "icon": self.icon,
            "isActive": self.is_active,
        }


class TaskHistory(db.Model):
    __tablename__ = 'task_history'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    task_id = db.Column(db.Integer, db.ForeignKey('tasks.id'), nullable=False)
    earned = db.Column(db.Numeric(18, 2), nullable=False)
    completed_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    completed_on = db.Column(db.Date, default=utc_today, nullable=False)

    task = db.relationship('Task')

    __table_args__ = (
        UniqueConstraint('user_id', 'task_id', 'completed_on', name='uq_task_history_user_task_day'),
        Index('idx_task_history_user_day', 'user_id', 'completed_on'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "taskId": self.task_id,
            "task": self.task.to_dict() if self.task else None,
            "earned": float(self.earned),
            "completedAt": _iso(self.completed_at),
        }

# ===========================================================
# REFERRALS
# ===========================================================

class ReferralCommission(db.Model):
    __tablename__ = 'referral_commissions'

    id = db.Column(db.Integer, primary_key=True)
    receiver_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    generator_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    amount = db.Column(db.Numeric(18, 2), nullable=False)
    type = db.Column(db.String(30), nullable=False)  # signup_bonus, task_commission
    level = db.Column(db.Integer, nullable=False, default=1)
    description = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    receiver = db.relationship('User', foreign_keys=[receiver_id])
    generator = db.relationship('User', foreign_keys=[generator_id])

    def to_dict(self):
        return {
            "id": self.id,
            "receiverId": self.receiver_id,
            "generatorId": self.generator_id,
            "amount": float(self.amount),
            "type": self.type,
            "level": self.level,
            "description": self.description,
            "createdAt": _iso(self.created_at),
        }
