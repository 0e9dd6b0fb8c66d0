"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Account
  3xxx: Offering
  4xxx: Subscription
  5xxx: Allocation
  9xxx: System
"""

from src.ipo_common.money import cents_to_display


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


class SubscriptionValidationError(AppError):
    """Base of every typed rejection the subscription validator can produce."""


# --- 1xxx: Auth/User ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired credentials", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


class UserNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(1006, f"User not found: {user_id}", 404)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1007, "Administrator privileges required", 403)


# --- 2xxx: Account ---

class InsufficientBalanceError(SubscriptionValidationError):
    def __init__(self, available: int, required: int) -> None:
        self.available = available
        self.required = required
        super().__init__(
            2001,
            "Insufficient balance: "
            f"available {cents_to_display(available)}, "
            f"required {cents_to_display(required)}",
            422,
        )


# --- 3xxx: Offering ---

class OfferingNotFoundError(AppError):
    def __init__(self, offering_id: int) -> None:
        super().__init__(3001, f"Offering not found: {offering_id}", 404)


class PhaseError(SubscriptionValidationError):
    def __init__(self, offering_id: int, detail: str) -> None:
        super().__init__(3002, f"Offering {offering_id} is not open: {detail}", 422)


class OfferingNotEditableError(AppError):
    def __init__(self, offering_id: int, status: str) -> None:
        super().__init__(
            3003, f"Offering {offering_id} in status {status} cannot be edited", 422
        )


class InvalidOfferingError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3004, f"Invalid offering: {detail}", 422)


class OfferingSymbolExistsError(AppError):
    def __init__(self, symbol: str) -> None:
        super().__init__(3005, f"Offering symbol already exists: {symbol}", 409)


class OfferingNotArchivableError(AppError):
    def __init__(self, offering_id: int, reserved: int) -> None:
        super().__init__(
            3006,
            f"Offering {offering_id} still holds {reserved} reserved subscription(s)",
            409,
        )


# --- 4xxx: Subscription ---

class PriceOutOfBandError(SubscriptionValidationError):
    def __init__(self, price: int, price_min: int, price_max: int) -> None:
        super().__init__(
            4001,
            f"Price {cents_to_display(price)} outside band "
            f"[{cents_to_display(price_min)}, {cents_to_display(price_max)}]",
            422,
        )


class LotSizeError(SubscriptionValidationError):
    def __init__(self, quantity: int, lot_size: int) -> None:
        super().__init__(
            4002,
            f"Quantity {quantity} must be a positive multiple of lot size {lot_size}",
            422,
        )


class DuplicateSubscriptionError(SubscriptionValidationError):
    def __init__(self, offering_id: int) -> None:
        super().__init__(
            4003, f"An active subscription already exists for offering {offering_id}", 409
        )


class SubscriptionNotFoundError(AppError):
    def __init__(self, subscription_id: int) -> None:
        super().__init__(4004, f"Subscription not found: {subscription_id}", 404)


class NotCancellableError(AppError):
    def __init__(self, subscription_id: int, reason: str) -> None:
        super().__init__(
            4005, f"Subscription {subscription_id} cannot be cancelled: {reason}", 422
        )


# --- 5xxx: Allocation ---

class AllocationConflictError(AppError):
    def __init__(self, offering_id: int, detail: str) -> None:
        super().__init__(5001, f"Allocation conflict on offering {offering_id}: {detail}", 409)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class TickInProgressError(AppError):
    def __init__(self) -> None:
        super().__init__(9003, "A lifecycle tick is already running", 409)
