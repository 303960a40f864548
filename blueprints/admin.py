#======================================================================================
#
# THIS IS THE ADMIN API
#
#=======================================================================================
from functools import wraps
import logging

from flask import jsonify, request, Blueprint
from flask_login import current_user
from sqlalchemy import func, select

from extensions import db
from models import User, Deposit, DepositStatus, Withdrawal, WithdrawalStatus, PackagePurchase
from blueprints.payments_helpers import DepositReviewManager
from blueprints.withdraw_helpers import WithdrawalManager
from ledger.balance import BalanceManager
from ledger.exceptions import LedgerError
from utils import to_decimal

logger = logging.getLogger(__name__)


def admin_required(f):
    """
    Decorator to restrict access to admin-only routes.
    Anonymous users and non-admins both get 401.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated or not current_user.is_admin:
            return jsonify({"error": "Unauthorized"}), 401

        return f(*args, **kwargs)

    return decorated_function


admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


def _sum_amount(model, status):
    return db.session.execute(
        select(func.coalesce(func.sum(model.amount), 0)).where(model.status == status)
    ).scalar()


@admin_bp.route("/stats", methods=["GET"])
@admin_required
def admin_stats():
    try:
        return jsonify({
            "stats": {
                "totalUsers": User.query.filter_by(is_admin=False).count(),
                "pendingDeposits": Deposit.query.filter_by(status=DepositStatus.PENDING.value).count(),
                "pendingWithdrawals": Withdrawal.query.filter_by(status=WithdrawalStatus.PENDING.value).count(),
                "totalDeposits": float(_sum_amount(Deposit, DepositStatus.APPROVED.value)),
                "totalWithdrawals": float(_sum_amount(Withdrawal, WithdrawalStatus.APPROVED.value)),
            }
        }), 200

    except Exception as e:
        logger.error(f"Admin stats error: {e}", exc_info=True)
        return jsonify({"error": "Failed to get stats"}), 500

#============================================================================================================
#     ----------------------------DEPOSIT MODERATION-------------------------------------------
#============================================================================================================

@admin_bp.route("/deposits", methods=["GET"])
@admin_required
def admin_deposits():
    try:
        deposits = Deposit.query.order_by(Deposit.created_at.desc(), Deposit.id.desc()).all()
        return jsonify({
            "deposits": [d.to_dict(include_user=True, include_screenshot=True) for d in deposits]
        }), 200

    except Exception as e:
        logger.error(f"Admin get deposits error: {e}", exc_info=True)
        return jsonify({"error": "Failed to get deposits"}), 500


@admin_bp.route("/deposits", methods=["PUT"])
@admin_required
def admin_update_deposit():
    try:
        data = request.get_json(silent=True) or {}
        deposit_id = data.get("depositId")
        deposit = db.session.get(Deposit, deposit_id) if deposit_id else None
        if not deposit:
            return jsonify({"error": "Deposit not found"}), 404

        deposit, credited = DepositReviewManager.review(deposit, data.get("status"))
        db.session.commit()

        logger.info(f"Admin {current_user.id} set deposit {deposit.id} to {deposit.status}")
        return jsonify({"deposit": deposit.to_dict(), "credited": credited}), 200

    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), 400

    except Exception as e:
        db.session.rollback()
        logger.error(f"Admin update deposit error: {e}", exc_info=True)
        return jsonify({"error": "Failed to update deposit"}), 500

#============================================================================================================
#     ----------------------------WITHDRAWAL MODERATION-------------------------------------------
#============================================================================================================

@admin_bp.route("/withdrawals", methods=["GET"])
@admin_required
def admin_withdrawals():
    try:
        withdrawals = Withdrawal.query.order_by(Withdrawal.created_at.desc(), Withdrawal.id.desc()).all()
        return jsonify({"withdrawals": [w.to_dict(include_user=True) for w in withdrawals]}), 200

    except Exception as e:
        logger.error(f"Admin get withdrawals error: {e}", exc_info=True)
        return jsonify({"error": "Failed to get withdrawals"}), 500


@admin_bp.route("/withdrawals", methods=["PUT"])
@admin_required
def admin_update_withdrawal():
    try:
        data = request.get_json(silent=True) or {}
        withdrawal_id = data.get("withdrawalId")
        withdrawal = db.session.get(Withdrawal, withdrawal_id) if withdrawal_id else None
        if not withdrawal:
            return jsonify({"error": "Withdrawal not found"}), 404

        withdrawal, cancelled = WithdrawalManager.review(withdrawal, data.get("status"))
        db.session.commit()

        logger.info(f"Admin {current_user.id} set withdrawal {withdrawal.id} to {withdrawal.status}")
        return jsonify({
            "withdrawal": withdrawal.to_dict(),
            "cancelledPurchases": [p.id for p in cancelled],
        }), 200

    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), 400

    except Exception as e:
        db.session.rollback()
        logger.error(f"Admin update withdrawal error: {e}", exc_info=True)
        return jsonify({"error": "Failed to update withdrawal"}), 500

#============================================================================================================
#     ----------------------------USER MANAGEMENT-------------------------------------------
#============================================================================================================

def user_to_admin_dict(user, counts):
    result = user.to_dict()
    result["_count"] = {
        "deposits": counts["deposits"].get(user.id, 0),
        "withdrawals": counts["withdrawals"].get(user.id, 0),
        "purchases": counts["purchases"].get(user.id, 0),
    }
    return result


def _counts_by_user(model):
    return dict(
        db.session.execute(
            select(model.user_id, func.count(model.id)).group_by(model.user_id)
        ).all()
    )


@admin_bp.route("/users", methods=["GET"])
@admin_required
def admin_users():
    try:
        users = User.query.filter_by(is_admin=False).order_by(User.created_at.desc(), User.id.desc()).all()
        counts = {
            "deposits": _counts_by_user(Deposit),
            "withdrawals": _counts_by_user(Withdrawal),
            "purchases": _counts_by_user(PackagePurchase),
        }
        return jsonify({"users": [user_to_admin_dict(u, counts) for u in users]}), 200

    except Exception as e:
        logger.error(f"Admin get users error: {e}", exc_info=True)
        return jsonify({"error": "Failed to get users"}), 500


@admin_bp.route("/users", methods=["PUT"])
@admin_required
def admin_update_user():
    """
    Edit balance, deposit link or name. A balance edit is journalled as an
    adjustment so the ledger still sums to the balance.
    """
    try:
        data = request.get_json(silent=True) or {}
        user_id = data.get("userId")
        user = db.session.get(User, user_id) if user_id else None
        if not user:
            return jsonify({"error": "User not found"}), 404

        if data.get("balance") is not None:
            new_balance = to_decimal(data["balance"])
            if new_balance is None:
                return jsonify({"error": "Invalid balance"}), 400
            BalanceManager.adjust_to(user, new_balance, f"Balance set by admin {current_user.id}")

        if "depositLink" in data:
            user.deposit_link = data["depositLink"] or None

        if data.get("name") is not None:
            user.name = data["name"]

        db.session.commit()
        logger.info(f"Admin {current_user.id} updated user {user.id}")

        return jsonify({"user": user.to_dict()}), 200

    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), 400

    except Exception as e:
        db.session.rollback()
        logger.error(f"Admin update user error: {e}", exc_info=True)
        return jsonify({"error": "Failed to update user"}), 500
