from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user

from extensions import db
from models import Transaction


bp = Blueprint('profile', __name__, url_prefix="/api/user")


@bp.route("/update", methods=["PUT"])
@login_required
def update_user():
    """
    Update name and deposit link. The deposit link can only be set once;
    after that only an admin may change it.
    """
    try:
        data = request.get_json(silent=True) or {}
        name = (data.get("name") or "").strip()
        deposit_link = (data.get("depositLink") or "").strip()

        user = current_user

        if name:
            user.name = name

        if deposit_link and (not user.deposit_link or user.is_admin):
            user.deposit_link = deposit_link

        db.session.commit()

        return jsonify({
            "user": {
                "id": user.id,
                "name": user.name,
                "depositLink": user.deposit_link,
            }
        }), 200

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Update user error: {e}", exc_info=True)
        return jsonify({"error": "Update failed"}), 500


@bp.route("/transactions", methods=["GET"])
@login_required
def list_transactions():
    """Ledger journal for the logged-in user, newest first."""
    entries = (
        current_user.transactions
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(50)
        .all()
    )
    return jsonify({"transactions": [t.to_dict() for t in entries]}), 200
