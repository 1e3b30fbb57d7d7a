# fulfillment/domain/errors.py
"""
Bledy domenowe. Dziedzicza po wbudowanych wyjatkach (ValueError,
PermissionError, LookupError), wiec kod lapiacy ogolne typy dalej dziala.
"""


class FulfillmentError(Exception):
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class NotFoundError(FulfillmentError, LookupError):
    status_code = 404


class ForbiddenError(FulfillmentError, PermissionError):
    status_code = 403


class InvalidError(FulfillmentError, ValueError):
    status_code = 400


class EmptyCartError(InvalidError):
    pass


class UnauthorizedError(FulfillmentError, PermissionError):
    status_code = 401


class ConflictError(FulfillmentError):
    status_code = 409


class UnavailableError(FulfillmentError):
    status_code = 503


class RateLimitedError(FulfillmentError):
    status_code = 429
