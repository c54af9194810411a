"""Error taxonomy shared by the engine, the services and the routers.

Caller-input errors carry the HTTP status the routers answer with; they are
raised immediately and never retried. ``OracleUnavailable`` is transient and
handled by the poll policy. ``SettlementPartialFailure`` is collected into a
settlement summary rather than raised.
"""


class CrapsError(Exception):
    status_code = 400


class OracleUnavailable(CrapsError):
    status_code = 503


class BettingWindowClosed(CrapsError):
    status_code = 409

    def __init__(self, message: str = "betting window is closed"):
        super().__init__(message)


class InvalidAmount(CrapsError):
    pass


class InsufficientBalance(CrapsError):
    pass


class InvalidBetType(CrapsError):
    pass


class DuplicateBet(CrapsError):
    status_code = 409


class UnknownBettor(CrapsError):
    status_code = 404


class UnknownBet(CrapsError):
    status_code = 404


class SchedulerStateError(CrapsError):
    status_code = 409


class SettlementPartialFailure(CrapsError):
    """One ledger application that failed; successful ones are not rolled back."""

    def __init__(self, bet_id: int, bettor_id: int, cause: BaseException):
        super().__init__(f"settlement of bet {bet_id} for bettor {bettor_id} failed: {cause!r}")
        self.bet_id = bet_id
        self.bettor_id = bettor_id
        self.cause = cause


class SchedulerTickError(CrapsError):
    status_code = 500
