from flask import Blueprint, request, jsonify
import logging

from extensions import db
from models import User, OTPType
from blueprints.password_services import otp_service

logger = logging.getLogger(__name__)

password_bp = Blueprint('password', __name__, url_prefix="/api/auth")


@password_bp.route('/forgot-password', methods=['POST'])
def request_password_reset():
    """
    Step 1: Request password reset code
    """
    try:
        data = request.get_json(silent=True) or {}
        email = (data.get('email') or '').strip().lower()

        user = User.query.filter_by(email=email).first() if email else None
        if not user:
            return jsonify({'error': 'No account found with this email'}), 404

        otp = otp_service.issue(email, OTPType.RESET)
        db.session.commit()

        otp_service.send_email(email, otp.code, OTPType.RESET)
        logger.info(f"Password reset code issued for user {user.id}")

        return jsonify({'message': 'OTP sent to your email'}), 200

    except Exception as e:
        db.session.rollback()
        logger.error(f"Password reset request error: {e}", exc_info=True)
        return jsonify({'error': 'Failed to send reset email'}), 500


@password_bp.route('/reset-password', methods=['POST'])
def reset_password():
    """
    Step 2: Verify reset code and register new password
    """
    try:
        data = request.get_json(silent=True) or {}
        email = (data.get('email') or '').strip().lower()
        code = (data.get('code') or '').strip()
        new_password = data.get('newPassword') or ''

        if len(new_password) < 6:
            return jsonify({'error': 'Password must be at least 6 characters'}), 400

        otp = otp_service.find_valid(email, code, OTPType.RESET)
        if not otp:
            return jsonify({'error': 'Invalid or expired OTP'}), 400

        user = User.query.filter_by(email=email).first()
        if not user:
            return jsonify({'error': 'No account found with this email'}), 404

        user.set_password(new_password)
        otp_service.consume(email, OTPType.RESET)
        db.session.commit()

        logger.info(f"Password successfully reset for user {user.id}")
        return jsonify({'message': 'Password reset successful'}), 200

    except Exception as e:
        db.session.rollback()
        logger.error(f"Password reset error: {e}", exc_info=True)
        return jsonify({'error': 'Password reset failed'}), 500
