# ledger/config.py
from decimal import Decimal
from typing import Dict
from flask import current_app


class LedgerConfig:
    """
    Commission percentages paid up the referral chain on every task reward.
    Level 1: 10%, Level 2: 5%, Level 3: 2%
    """

    COMMISSION_RATES: Dict[int, Decimal] = {
        1: Decimal('0.10'),
        2: Decimal('0.05'),
        3: Decimal('0.02'),
    }

    MAX_LEVEL = 3
    HISTORY_LIMIT = 50

    @staticmethod
    def get_commission_rate(level: int) -> Decimal:
        return LedgerConfig.COMMISSION_RATES.get(level, Decimal('0'))

    @staticmethod
    def rate_label(level: int) -> str:
        return f"{int(LedgerConfig.get_commission_rate(level) * 100)}%"

    @staticmethod
    def referral_bonus() -> Decimal:
        return Decimal(str(current_app.config.get("REFERRAL_BONUS", "2.00")))

    @staticmethod
    def min_deposit() -> Decimal:
        return Decimal(str(current_app.config.get("MIN_DEPOSIT", "30")))

    @staticmethod
    def daily_limit_divisor() -> int:
        return int(current_app.config.get("DAILY_LIMIT_DIVISOR", 30))
