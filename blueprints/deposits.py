import base64
import logging

from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from extensions import db
from models import Deposit, DepositStatus
from ledger.config import LedgerConfig
from utils import to_decimal

logger = logging.getLogger(__name__)

bp = Blueprint("deposits", __name__, url_prefix="/api/deposits")


def screenshot_to_data_uri(upload):
    """Inline the uploaded screenshot as a base64 data URI."""
    content = upload.read()
    mimetype = upload.mimetype or "application/octet-stream"
    return f"data:{mimetype};base64,{base64.b64encode(content).decode()}"


@bp.route("", methods=["POST"])
@login_required
def create_deposit():
    """
    Submit a deposit for admin review.
    Form fields: amount, transactionId, screenshot (file)
    """
    try:
        amount = to_decimal(request.form.get("amount"))
        transaction_id = (request.form.get("transactionId") or "").strip()
        screenshot = request.files.get("screenshot")

        if not amount or not transaction_id or not screenshot or not screenshot.filename:
            return jsonify({"error": "All fields are required"}), 400

        min_deposit = LedgerConfig.min_deposit()
        if amount < min_deposit:
            return jsonify({"error": f"Minimum deposit is ${min_deposit:.0f}"}), 400

        deposit = Deposit(
            user_id=current_user.id,
            amount=amount,
            transaction_id=transaction_id,
            screenshot=screenshot_to_data_uri(screenshot),
            status=DepositStatus.PENDING.value,
        )
        db.session.add(deposit)
        db.session.commit()

        logger.info(f"Deposit {deposit.id} of {amount} submitted by user {current_user.id}")

        return jsonify({
            "message": "Deposit request submitted",
            "deposit": {"id": deposit.id, "amount": float(deposit.amount), "status": deposit.status},
        }), 200

    except Exception as e:
        db.session.rollback()
        logger.error(f"Create deposit error: {e}", exc_info=True)
        return jsonify({"error": "Failed to create deposit"}), 500


@bp.route("", methods=["GET"])
@login_required
def list_deposits():
    try:
        deposits = (
            current_user.deposits
            .order_by(Deposit.created_at.desc(), Deposit.id.desc())
            .all()
        )
        return jsonify({"deposits": [d.to_dict() for d in deposits]}), 200

    except Exception as e:
        logger.error(f"Get deposits error: {e}", exc_info=True)
        return jsonify({"error": "Failed to get deposits"}), 500
