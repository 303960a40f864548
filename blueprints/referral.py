import logging
from datetime import datetime, time

from flask import Blueprint, jsonify, current_app
from flask_login import login_required, current_user
from sqlalchemy import func, select

from extensions import db
from models import User, ReferralCommission
from utils import mask_email, money, utc_today

logger = logging.getLogger(__name__)

bp = Blueprint("referral", __name__, url_prefix="/api/referral")


def _commission_total(receiver_id, since=None):
    query = select(func.coalesce(func.sum(ReferralCommission.amount), 0)).where(
        ReferralCommission.receiver_id == receiver_id
    )
    if since is not None:
        query = query.where(ReferralCommission.created_at >= since)
    return money(db.session.execute(query).scalar())


def _referral_link(code):
    base_url = current_app.config.get("APP_BASE_URL", "").rstrip("/")
    return f"{base_url}/signup?ref={code}"


@bp.route("", methods=["GET"])
@login_required
def referral_stats():
    try:
        referral_count = User.query.filter_by(referred_by=current_user.id).count()

        return jsonify({
            "referralCode": current_user.referral_code,
            "referralLink": _referral_link(current_user.referral_code),
            "referralCount": referral_count,
            "referralEarnings": float(_commission_total(current_user.id)),
        }), 200

    except Exception as e:
        logger.error(f"Get referral stats error: {e}", exc_info=True)
        return jsonify({"error": "Failed to get referral stats"}), 500


@bp.route("/team", methods=["GET"])
@login_required
def referral_team():
    """Direct referrals plus what they have earned the current user."""
    try:
        team_members = (
            User.query
            .filter_by(referred_by=current_user.id)
            .order_by(User.created_at.desc(), User.id.desc())
            .all()
        )

        # Commission earned from each direct member (any level is attributed to its generator)
        per_member = dict(
            db.session.execute(
                select(ReferralCommission.generator_id, func.sum(ReferralCommission.amount))
                .where(ReferralCommission.receiver_id == current_user.id)
                .group_by(ReferralCommission.generator_id)
            ).all()
        )

        by_type = {
            kind: float(money(total))
            for kind, total in db.session.execute(
                select(ReferralCommission.type, func.sum(ReferralCommission.amount))
                .where(ReferralCommission.receiver_id == current_user.id)
                .group_by(ReferralCommission.type)
            ).all()
        }

        today_start = datetime.combine(utc_today(), time.min)

        member_stats = [
            {
                "id": member.id,
                "name": member.name or "Anonymous",
                "email": mask_email(member.email),
                "joinedAt": member.created_at.isoformat() if member.created_at else None,
                "isActive": member.is_verified,
                "totalEarnings": float(money(per_member.get(member.id, 0))),
            }
            for member in team_members
        ]

        return jsonify({
            "referralCode": current_user.referral_code,
            "stats": {
                "totalReferrals": len(team_members),
                "activeReferrals": sum(1 for m in team_members if m.is_verified),
                "totalEarnings": float(_commission_total(current_user.id)),
                "todayEarnings": float(_commission_total(current_user.id, since=today_start)),
            },
            "teamMembers": member_stats,
            "dailyCommissions": by_type,
        }), 200

    except Exception as e:
        logger.error(f"Team API error: {e}", exc_info=True)
        return jsonify({"error": "Failed to get team data"}), 500
