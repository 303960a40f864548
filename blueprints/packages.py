import logging

from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from extensions import db
from models import InvestmentPackage, PackagePurchase, DailyEarning
from blueprints.package_helpers import PackagePurchaseValidator
from ledger.config import LedgerConfig
from ledger.exceptions import LedgerError
from ledger.packages import PackageEarningManager

logger = logging.getLogger(__name__)

bp = Blueprint("packages", __name__, url_prefix="/api/packages")


def _owned_purchase(purchase_id):
    """Returns (purchase, error_response)."""
    if not purchase_id:
        return None, (jsonify({"error": "Purchase ID required"}), 400)

    purchase = db.session.get(PackagePurchase, purchase_id)
    if not purchase:
        return None, (jsonify({"error": "Purchase not found"}), 404)

    if purchase.user_id != current_user.id:
        return None, (jsonify({"error": "Unauthorized"}), 401)

    return purchase, None


@bp.route("", methods=["GET"])
@login_required
def list_packages():
    try:
        packages = (
            InvestmentPackage.query
            .filter_by(is_active=True)
            .order_by(InvestmentPackage.price.asc(), InvestmentPackage.id)
            .all()
        )
        return jsonify({"packages": [p.to_dict() for p in packages]}), 200

    except Exception as e:
        logger.error(f"Get packages error: {e}", exc_info=True)
        return jsonify({"error": "Failed to get packages"}), 500


@bp.route("/purchase", methods=["POST"])
@login_required
def purchase_package():
    try:
        data = request.get_json(silent=True) or {}
        package_id = data.get("packageId")
        package = db.session.get(InvestmentPackage, package_id) if package_id else None

        if not package or not package.is_active:
            return jsonify({"error": "Package not found"}), 404

        purchase = PackagePurchaseValidator.process_package_purchase(current_user, package)
        db.session.commit()

        logger.info(f"User {current_user.id} bought package {package.id} (purchase {purchase.id})")

        return jsonify({
            "message": "Package activated successfully! Claim your daily profit.",
            "purchase": purchase.to_dict(),
        }), 200

    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), 400

    except Exception as e:
        db.session.rollback()
        logger.error(f"Purchase package error: {e}", exc_info=True)
        return jsonify({"error": "Failed to purchase package"}), 500


@bp.route("/my-purchases", methods=["GET"])
@login_required
def my_purchases():
    try:
        purchases = (
            current_user.purchases
            .order_by(PackagePurchase.purchased_at.desc(), PackagePurchase.id.desc())
            .all()
        )
        return jsonify({"purchases": [p.to_dict() for p in purchases]}), 200

    except Exception as e:
        logger.error(f"Get purchases error: {e}", exc_info=True)
        return jsonify({"error": "Failed to get purchases"}), 500


@bp.route("/claim", methods=["POST"])
@login_required
def claim_daily_earning():
    try:
        data = request.get_json(silent=True) or {}
        purchase, error = _owned_purchase(data.get("purchaseId"))
        if error:
            return error

        earning = PackageEarningManager.claim_daily_earning(purchase)
        db.session.commit()

        return jsonify({
            "message": f"Claimed ${earning.amount:.2f} for Day {earning.day}!",
            "earned": float(earning.amount),
            "day": earning.day,
            "remainingDays": purchase.total_days - earning.day,
        }), 200

    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), 400

    except Exception as e:
        db.session.rollback()
        logger.error(f"Claim earning error: {e}", exc_info=True)
        return jsonify({"error": "Failed to claim earning"}), 500


@bp.route("/earnings", methods=["GET"])
@login_required
def earnings_history():
    try:
        earnings = (
            DailyEarning.query
            .filter_by(user_id=current_user.id)
            .order_by(DailyEarning.claimed_at.desc(), DailyEarning.id.desc())
            .limit(LedgerConfig.HISTORY_LIMIT)
            .all()
        )
        return jsonify({"earnings": [e.to_dict() for e in earnings]}), 200

    except Exception as e:
        logger.error(f"Get earnings history error: {e}", exc_info=True)
        return jsonify({"error": "Failed to get history"}), 500


@bp.route("/cancel", methods=["POST"])
@login_required
def cancel_package():
    try:
        data = request.get_json(silent=True) or {}
        purchase, error = _owned_purchase(data.get("purchaseId"))
        if error:
            return error

        PackageEarningManager.cancel(purchase)
        db.session.commit()

        name = purchase.package.name if purchase.package else "Package"
        return jsonify({
            "message": f"{name} has been cancelled successfully. "
                       "You will no longer receive daily returns from this package.",
            "success": True,
        }), 200

    except LedgerError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), 400

    except Exception as e:
        db.session.rollback()
        logger.error(f"Cancel package error: {e}", exc_info=True)
        return jsonify({"error": "Failed to cancel package"}), 500
