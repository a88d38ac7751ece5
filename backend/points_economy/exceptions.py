"""Error types raised by the points economy engine.

Every error carries the HTTP status code and the user-facing ``detail``
string that the API layer returns, so routes never have to translate
engine failures by hand.
"""


class PointsEconomyError(Exception):
    """Base class for all expected engine failures."""

    status_code = 400
    code = "points_economy_error"

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class ValidationError(PointsEconomyError):
    """Malformed input rejected before any state is touched."""

    code = "validation_error"


class AccountNotFound(PointsEconomyError):
    status_code = 404
    code = "account_not_found"

    def __init__(self, child_id: int) -> None:
        self.child_id = child_id
        super().__init__("Child account not found")


class RewardNotFound(PointsEconomyError):
    status_code = 404
    code = "reward_not_found"

    def __init__(self, reward_id: int) -> None:
        self.reward_id = reward_id
        super().__init__("Reward not found")


class RedemptionNotFound(PointsEconomyError):
    status_code = 404
    code = "redemption_not_found"

    def __init__(self, redemption_id: int) -> None:
        self.redemption_id = redemption_id
        super().__init__("Redemption not found")


class CapViolation(PointsEconomyError):
    """A redemption gate refused the attempt (expired, sold out, limit hit)."""

    status_code = 409
    code = "cap_violation"


class InvalidRedemptionState(PointsEconomyError):
    status_code = 409
    code = "invalid_redemption_state"


class InsufficientBalance(PointsEconomyError):
    """A debit would take the balance below zero.

    Attributes:
        child_id: The child whose balance was checked
        current_balance: Balance at the time of the check
        requested_amount: Magnitude of the attempted debit
        shortfall: How many more points would be needed
    """

    code = "insufficient_balance"

    def __init__(
        self, child_id: int, current_balance: int, requested_amount: int
    ) -> None:
        self.child_id = child_id
        self.current_balance = current_balance
        self.requested_amount = requested_amount
        self.shortfall = requested_amount - current_balance
        super().__init__(
            f"Not enough points. You have {current_balance} "
            f"but need {requested_amount}"
        )


class ConcurrencyConflict(PointsEconomyError):
    """Retries on a contended write path were exhausted."""

    status_code = 503
    code = "concurrency_conflict"

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(
            "Another update was in progress. Please try again."
        )


class IntegrityViolation(PointsEconomyError):
    """Replaying a child's ledger does not reproduce the stored balance."""

    status_code = 500
    code = "integrity_violation"

    def __init__(self, child_id: int, detail: str) -> None:
        self.child_id = child_id
        super().__init__(detail)
