from datetime import timedelta
import logging

from flask import current_app
from flask_mail import Message

from extensions import db, mail
from models import OTP, OTPType
from utils import generate_otp, utcnow

logger = logging.getLogger(__name__)


class OTPService:
    """Issues, emails and checks the one-time codes used for signup and password reset."""

    SUBJECTS = {
        OTPType.SIGNUP: "Verify Your Email - MoneyMint",
        OTPType.RESET: "Reset Your Password - MoneyMint",
    }

    def issue(self, email, otp_type: OTPType):
        """Create a fresh code for `email`. The caller commits."""
        ttl = current_app.config.get("OTP_TTL_MINUTES", 10)
        otp = OTP(
            email=email,
            code=generate_otp(),
            type=otp_type.value,
            expires_at=utcnow() + timedelta(minutes=ttl),
        )
        db.session.add(otp)
        return otp

    def send_email(self, email, code, otp_type: OTPType):
        """Send the code via Flask-Mail; a delivery failure is logged, not raised."""
        try:
            ttl = current_app.config.get("OTP_TTL_MINUTES", 10)
            msg = Message(
                subject=self.SUBJECTS[otp_type],
                recipients=[email],
                body=(
                    f"Your verification code is: {code}\n\n"
                    f"This code will expire in {ttl} minutes.\n"
                    "If you didn't request this, please ignore this email."
                ),
            )
            mail.send(msg)
            logger.info(f"{otp_type.value} code emailed to {email}")
            return True

        except Exception as e:
            logger.error(f"Email sending failed for {email}: {e}")
            return False

    def find_valid(self, email, code, otp_type: OTPType):
        """Newest unexpired code matching email, code and type, or None."""
        if not email or not code:
            return None
        return (
            OTP.query
            .filter(
                OTP.email == email,
                OTP.code == str(code),
                OTP.type == otp_type.value,
                OTP.expires_at > utcnow(),
            )
            .order_by(OTP.created_at.desc(), OTP.id.desc())
            .first()
        )

    def consume(self, email, otp_type: OTPType):
        OTP.query.filter_by(email=email, type=otp_type.value).delete()


# Global instance
otp_service = OTPService()
