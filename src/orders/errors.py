"""Order domain errors.

Raised by the aggregate and command handlers when a business rule rejects
an operation. Each error carries a stable ``code`` and a ``details`` dict
with enough structure for the caller to decide whether to retry; the API
layer translates them into HTTP responses.
"""


class OrderError(Exception):
    """Base class for every caller-visible order error."""

    code = "ORDER_ERROR"

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


class NotFound(OrderError):
    """The order, item or webhook does not exist (or the order is soft-deleted)."""

    code = "NOT_FOUND"

    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind} not found", kind=kind, id=str(identifier))


class VersionConflict(OrderError):
    """The caller's expected version does not match the stored one."""

    code = "VERSION_CONFLICT"

    def __init__(self, expected, actual):
        super().__init__(
            f"Version conflict: expected {expected}, current is {actual}",
            expected_version=expected,
            current_version=actual,
        )


class InvalidTransition(OrderError):
    """The requested status change is not in the transition table."""

    code = "INVALID_TRANSITION"

    def __init__(self, current: str, target: str, allowed):
        super().__init__(
            f"Cannot transition {current} -> {target}",
            current_status=current,
            target_status=target,
            allowed_transitions=sorted(allowed),
        )


class PreconditionFailed(OrderError):
    """A field required to enter the target status was not supplied."""

    code = "PRECONDITION_FAILED"

    def __init__(self, field: str, target: str):
        super().__init__(f"{field} required for {target}", missing_field=field, target_status=target)


class AlreadyTerminal(OrderError):
    code = "ALREADY_TERMINAL"

    def __init__(self, status: str):
        super().__init__(f"Order already terminal ({status})", current_status=status)


class NotModifiable(OrderError):
    """Items can only change while the order is DRAFT or PENDING."""

    code = "NOT_MODIFIABLE"

    def __init__(self, status: str, allowed):
        super().__init__(
            f"Items cannot be modified in {status} state",
            current_status=status,
            modifiable_states=sorted(allowed),
        )


class InvalidInput(OrderError):
    code = "INVALID_INPUT"

    def __init__(self, errors: dict):
        super().__init__("Invalid input", errors=errors)


class UpstreamUnavailable(OrderError):
    """The reservation gateway or product catalogue failed the call."""

    code = "UPSTREAM_UNAVAILABLE"

    def __init__(self, service: str, reason: str | None = None):
        super().__init__(f"{service} unavailable", service=service, reason=reason)


class IdempotencyKeyTaken(Exception):
    """The store rejected a second binding of an idempotency key.

    Internal signal: placement turns it into "return the winner's order".
    """

    def __init__(self, key: str):
        super().__init__(f"Idempotency key already bound: {key}")
        self.key = key
