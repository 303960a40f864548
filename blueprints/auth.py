from flask import Blueprint, jsonify, request, current_app
from flask_login import login_user, logout_user, login_required, current_user
import logging

from extensions import db
from models import User, OTPType
from blueprints.password_services import otp_service
from utils import validate_email, generate_referral_code


logger = logging.getLogger(__name__)
#==================================================================================================================

bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def unique_referral_code():
    code = generate_referral_code()
    while User.query.filter_by(referral_code=code).first():
        code = generate_referral_code()
    return code


#===========================================================================
#      SIGN UP ROUTE.
#==============================================================================
@bp.route("/signup", methods=["POST"])
def signup():
    """
    Create an unverified user and email a signup code.
    Expected JSON: {"email", "password", "name"?, "referralCode"?}
    """
    try:
        data = request.get_json(silent=True)
        if not data:
            return jsonify({"error": "Invalid or missing JSON body"}), 400

        email = (data.get("email") or "").strip().lower()
        password = data.get("password") or ""
        name = (data.get("name") or "").strip()
        referral_code = (data.get("referralCode") or "").strip().upper()

        # -----------------------------------------
        #  BASIC VALIDATION
        # -----------------------------------------
        if not email or not password:
            return jsonify({"error": "Email and password are required"}), 400

        if not validate_email(email):
            return jsonify({"error": "Invalid email address"}), 400

        if len(password) < 6:
            return jsonify({"error": "Password must be at least 6 characters"}), 400

        if User.query.filter_by(email=email).first():
            return jsonify({"error": "Email already registered"}), 400

        # Unknown referral codes are ignored rather than rejected
        referrer = None
        if referral_code:
            referrer = User.query.filter_by(referral_code=referral_code).first()

        user = User(
            email=email,
            name=name or email.split("@")[0],
            referral_code=unique_referral_code(),
            referred_by=referrer.id if referrer else None,
            is_verified=False,
        )
        user.set_password(password)
        db.session.add(user)

        otp = otp_service.issue(email, OTPType.SIGNUP)
        db.session.commit()

        otp_service.send_email(email, otp.code, OTPType.SIGNUP)
        current_app.logger.info(f"User {user.id} signed up (referrer={user.referred_by})")

        return jsonify({
            "message": "OTP sent to your email",
            "userId": user.id,
        }), 200

    except Exception as e:
        db.session.rollback()
        logger.error(f"Signup error: {e}", exc_info=True)
        return jsonify({"error": "Signup failed"}), 500


@bp.route("/verify-otp", methods=["POST"])
def verify_otp():
    try:
        data = request.get_json(silent=True) or {}
        email = (data.get("email") or "").strip().lower()
        code = (data.get("code") or "").strip()

        otp = otp_service.find_valid(email, code, OTPType.SIGNUP)
        if not otp:
            return jsonify({"error": "Invalid or expired OTP"}), 400

        user = User.query.filter_by(email=email).first()
        if not user:
            return jsonify({"error": "User not found"}), 404

        user.is_verified = True
        otp_service.consume(email, OTPType.SIGNUP)
        db.session.commit()

        return jsonify({"message": "Email verified successfully", "verified": True}), 200

    except Exception as e:
        db.session.rollback()
        logger.error(f"Verify OTP error: {e}", exc_info=True)
        return jsonify({"error": "Verification failed"}), 500


# --------------------------------------------------
#      Login Route
# --------------------------------------------------
@bp.route("/login", methods=["POST"])
def login():
    """
    Authenticate a user.
    Expected JSON:
    {
        "email": "",
        "password": ""
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        email = (data.get("email") or "").strip().lower()
        password = data.get("password") or ""

        if not email or not password:
            return jsonify({"error": "Email and password are required"}), 400

        user = User.query.filter_by(email=email).first()
        if not user or not user.check_password(password):
            return jsonify({"error": "Invalid credentials"}), 401

        if not user.is_verified:
            return jsonify({"error": "Please verify your email first"}), 401

        login_user(user, remember=True)

        return jsonify({
            "message": "Login successful",
            "user": user.to_dict()
        }), 200

    except Exception as e:
        db.session.rollback()
        logger.error(f"Login error: {e}", exc_info=True)
        return jsonify({"error": "Login failed"}), 500


@bp.route("/logout", methods=["POST"])
def logout():
    """
    Destroy User session
    """
    try:
        logout_user()
        return jsonify({"message": "Logged out successfully"}), 200

    except Exception as e:
        logger.error(f"Logout error: {e}", exc_info=True)
        return jsonify({"error": "Logout failed"}), 500


@bp.route("/me", methods=["GET"])
@login_required
def me():
    """Returns current logged-in user data"""
    try:
        return jsonify({"user": current_user.to_dict()}), 200

    except Exception as e:
        logger.error(f"Get current user error: {e}", exc_info=True)
        return jsonify({"error": "Failed to get user"}), 500
