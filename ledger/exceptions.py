# ==========================================================
#                  LEDGER EXCEPTIONS
# ==========================================================

class LedgerError(Exception):
    """
    Base ledger exception. Handlers turn it into a 400 response; any keyword
    details are merged into the JSON body next to the error message.
    """

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        return {"error": self.message, **self.details}


class InsufficientBalanceError(LedgerError):
    pass


class AlreadyClaimedError(LedgerError):
    pass


class DailyLimitError(LedgerError):
    pass


class InvestmentLimitError(LedgerError):
    pass


class InvalidStateError(LedgerError):
    pass
