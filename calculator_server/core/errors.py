# calculator_server/core/errors.py

"""
Domain errors raised by the stores, the security helpers and the calculation engine.

Each error carries the HTTP status, a short title and a caller-facing message.
The exception handlers in calculator_server.main turn them into the response envelope.
"""


class CalculatorServerError(Exception):
    status_code = 500
    error = "Internal server error"
    message = "Something went wrong on the server"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"success": False, "error": self.error, "message": self.message}


class DuplicateIdentity(CalculatorServerError):
    status_code = 400
    error = "User already exists"

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        if message is None:
            message = (
                "User with this email already exists" if field == "email"
                else "Username is already taken"
            )
        super().__init__(message)

    def to_dict(self) -> dict:
        return {**super().to_dict(), "field": self.field}


class NotFound(CalculatorServerError):
    status_code = 404
    error = "Not found"
    message = "The requested resource was not found"


class InvalidCredentials(CalculatorServerError):
    status_code = 401
    error = "Invalid credentials"
    message = "Invalid username/email or password"


class TokenInvalid(CalculatorServerError):
    status_code = 401
    error = "Access denied"
    message = "Invalid token"


class TokenExpired(CalculatorServerError):
    status_code = 401
    error = "Access denied"
    message = "Token expired. Please log in again."


class InactiveAccount(CalculatorServerError):
    status_code = 401
    error = "Access denied"
    message = "User not found or inactive"


class InvalidOperand(CalculatorServerError):
    status_code = 400
    error = "Invalid operand"

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f'Parameter "{field}" must be a number')

    def to_dict(self) -> dict:
        return {**super().to_dict(), "field": self.field}


class DivisionByZero(CalculatorServerError):
    status_code = 400
    error = "Division by zero"
    message = "Cannot divide by zero"


class NegativeOperand(CalculatorServerError):
    status_code = 400
    error = "Invalid operand"
    message = "Cannot calculate square root of a negative number"


class NonFiniteResult(CalculatorServerError):
    status_code = 400
    error = "Invalid result"
    message = "The result is not a finite number"


class ValidationFailed(CalculatorServerError):
    status_code = 400
    error = "Validation failed"
    message = "The request contains invalid fields"

    def __init__(self, details: list[dict] | None = None, message: str | None = None):
        self.details = details or []
        super().__init__(message)

    def to_dict(self) -> dict:
        return {**super().to_dict(), "details": self.details}


class Internal(CalculatorServerError):
    pass
