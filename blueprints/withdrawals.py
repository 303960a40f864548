import logging

from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from extensions import db
from models import Withdrawal
from blueprints.withdraw_helpers import WithdrawalValidator, WithdrawalManager
from utils import to_decimal

logger = logging.getLogger(__name__)

bp = Blueprint("withdrawals", __name__, url_prefix="/api/withdrawals")


@bp.route("", methods=["POST"])
@login_required
def create_withdrawal():
    """
    Request a payout to the user's deposit link.
    Expected JSON: {"amount": 10.5, "password": "..."}
    """
    try:
        data = request.get_json(silent=True) or {}
        amount = to_decimal(data.get("amount"))
        password = data.get("password") or ""

        user = current_user
        is_valid, message = WithdrawalValidator.validate_withdrawal_request(user, amount, password)
        if not is_valid:
            return jsonify({"error": message}), 400

        withdrawal = WithdrawalManager.create_withdrawal(user, amount)
        db.session.commit()

        logger.info(f"Withdrawal {withdrawal.id} of {amount} requested by user {user.id}")

        return jsonify({
            "message": "Withdrawal request submitted",
            "withdrawal": withdrawal.to_dict(),
        }), 200

    except Exception as e:
        db.session.rollback()
        logger.error(f"Create withdrawal error: {e}", exc_info=True)
        return jsonify({"error": "Failed to create withdrawal"}), 500


@bp.route("", methods=["GET"])
@login_required
def list_withdrawals():
    try:
        withdrawals = (
            current_user.withdrawals
            .order_by(Withdrawal.created_at.desc(), Withdrawal.id.desc())
            .all()
        )
        return jsonify({"withdrawals": [w.to_dict() for w in withdrawals]}), 200

    except Exception as e:
        logger.error(f"Get withdrawals error: {e}", exc_info=True)
        return jsonify({"error": "Failed to get withdrawals"}), 500
