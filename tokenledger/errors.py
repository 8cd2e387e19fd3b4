"""
tokenledger.errors
------------------

A small, consistent error system for the token ledger.

Design goals
------------
- One root `TokenError` with a machine-friendly `code` and optional `data`.
- One concrete subclass per failure kind the public operations can report.
- Safe JSON representation (`to_dict`) suitable for logs and host bridges.
- Clear separation of *retryable* (StateConflict) vs *permanent* failures.

Every public operation either returns its value or raises one of these; the
core never retries, never downgrades a failure to a default, and never
catches exceptions raised by the store or identity collaborators.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

# ---------------------------------------------------------------------------
# Error codes & root class
# ---------------------------------------------------------------------------


class TokenErrorCode(str, Enum):
    NOT_INITIALIZED = "TOKEN/NOT_INITIALIZED"
    UNAUTHORIZED = "TOKEN/UNAUTHORIZED"
    INVALID_ADDRESS = "TOKEN/INVALID_ADDRESS"
    SELF_OPERATION = "TOKEN/SELF_OPERATION"
    LENGTH_MISMATCH = "TOKEN/LENGTH_MISMATCH"
    ALREADY_EXISTS = "TOKEN/ALREADY_EXISTS"
    NOT_FOUND = "TOKEN/NOT_FOUND"
    ARITHMETIC_OVERFLOW = "TOKEN/ARITHMETIC_OVERFLOW"
    INSUFFICIENT_FUNDS = "TOKEN/INSUFFICIENT_FUNDS"
    ALLOWANCE_EXCEEDED = "TOKEN/ALLOWANCE_EXCEEDED"
    INVALID_AMOUNT = "TOKEN/INVALID_AMOUNT"
    INVALID_ARGUMENT = "TOKEN/INVALID_ARGUMENT"
    STATE_CONFLICT = "TOKEN/STATE_CONFLICT"
    IDENTITY_UNAVAILABLE = "TOKEN/IDENTITY_UNAVAILABLE"


@dataclass(eq=False)
class TokenError(Exception):
    """
    Root error for ledger operations.

    Attributes
    ----------
    code: str
        Machine-stable error code (see TokenErrorCode).
    message: str
        Human hint suitable for logs.
    data: dict
        Optional machine data (ids, amounts, accounts). JSON-serializable.
    retryable: bool
        Whether the same call may succeed if simply re-submitted.
    """

    code: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    retryable: bool = False

    def __post_init__(self) -> None:
        super().__init__(f"{self.code}: {self.message}")

    def with_context(self, **ctx: Any) -> "TokenError":
        """Return a copy with extra context merged into `data`."""
        # Subclass __init__ signatures differ, so bypass them.
        clone = self.__class__.__new__(self.__class__)
        clone.__dict__.update(self.__dict__)
        clone.data = {**self.data, **_jsonmap(ctx)}
        Exception.__init__(clone, *self.args)
        return clone

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe shape suitable for logs and host bridges."""
        return {
            "code": str(self.code.value if isinstance(self.code, Enum) else self.code),
            "message": self.message,
            "data": _jsonmap(self.data),
            "retryable": self.retryable,
        }

    def __str__(self) -> str:
        code = self.code.value if isinstance(self.code, Enum) else self.code
        if self.data:
            preview = ", ".join(f"{k}={v}" for k, v in self.data.items())
            return f"{code}: {self.message} [{preview}]"
        return f"{code}: {self.message}"


# ---------------------------------------------------------------------------
# Concrete errors
# ---------------------------------------------------------------------------


class NotInitialized(TokenError):
    def __init__(self, message: str = "contract options need to be set; call initialize() first") -> None:
        super().__init__(code=TokenErrorCode.NOT_INITIALIZED, message=message)


class Unauthorized(TokenError):
    def __init__(self, message: str = "caller is not authorized", **data: Any) -> None:
        super().__init__(
            code=TokenErrorCode.UNAUTHORIZED, message=message, data=_jsonmap(data)
        )


class InvalidAddress(TokenError):
    def __init__(self, account: Optional[str], reason: str = "invalid account") -> None:
        super().__init__(
            code=TokenErrorCode.INVALID_ADDRESS,
            message=reason,
            data={"account": account},
        )


class SelfOperation(TokenError):
    def __init__(self, account: str, message: str = "source and target are the same account") -> None:
        super().__init__(
            code=TokenErrorCode.SELF_OPERATION,
            message=message,
            data={"account": account},
        )


class LengthMismatch(TokenError):
    def __init__(self, left: int, right: int, what: str = "ids/amounts") -> None:
        super().__init__(
            code=TokenErrorCode.LENGTH_MISMATCH,
            message=f"{what} length mismatch",
            data={"left": left, "right": right},
        )


class AlreadyExists(TokenError):
    def __init__(self, subject: str, key: Any = None) -> None:
        super().__init__(
            code=TokenErrorCode.ALREADY_EXISTS,
            message=f"{subject} already exists",
            data=_jsonmap({"key": key}) if key is not None else {},
        )


class NotFound(TokenError):
    def __init__(self, subject: str, key: Any = None) -> None:
        super().__init__(
            code=TokenErrorCode.NOT_FOUND,
            message=f"{subject} not found",
            data=_jsonmap({"key": key}) if key is not None else {},
        )


class ArithmeticOverflow(TokenError):
    def __init__(self, a: int, b: int, limit: int) -> None:
        super().__init__(
            code=TokenErrorCode.ARITHMETIC_OVERFLOW,
            message="addition overflow",
            data={"a": a, "b": b, "limit": limit},
        )


class InsufficientFunds(TokenError):
    """
    Raised when a debit asks for more than is available.

    `token_id` is None for fungible balances and allowance-free subtractions.
    """

    def __init__(self, needed: int, available: int, token_id: Any = None) -> None:
        data: Dict[str, Any] = {"needed": needed, "available": available}
        if token_id is not None:
            data["token_id"] = token_id
        super().__init__(
            code=TokenErrorCode.INSUFFICIENT_FUNDS,
            message="insufficient funds",
            data=data,
        )

    @property
    def needed(self) -> int:
        return int(self.data["needed"])

    @property
    def available(self) -> int:
        return int(self.data["available"])


class AllowanceExceeded(TokenError):
    def __init__(self, owner: str, spender: str, allowance: int, requested: int) -> None:
        super().__init__(
            code=TokenErrorCode.ALLOWANCE_EXCEEDED,
            message="spender does not have enough allowance",
            data={
                "owner": owner,
                "spender": spender,
                "allowance": allowance,
                "requested": requested,
            },
        )


class InvalidAmount(TokenError):
    def __init__(self, amount: Any, reason: str = "amount out of range") -> None:
        super().__init__(
            code=TokenErrorCode.INVALID_AMOUNT,
            message=reason,
            data=_jsonmap({"amount": amount}),
        )


class InvalidArgument(TokenError):
    def __init__(self, message: str = "invalid argument", **data: Any) -> None:
        super().__init__(
            code=TokenErrorCode.INVALID_ARGUMENT, message=message, data=_jsonmap(data)
        )


class StateConflict(TokenError):
    """
    The unit of work observed state that changed before it could commit.
    Nothing was written; the caller may re-submit the operation.
    """

    def __init__(self, message: str = "state changed during operation", **data: Any) -> None:
        super().__init__(
            code=TokenErrorCode.STATE_CONFLICT,
            message=message,
            data=_jsonmap(data),
            retryable=True,
        )


class IdentityUnavailable(TokenError):
    def __init__(self, what: str = "caller id") -> None:
        super().__init__(
            code=TokenErrorCode.IDENTITY_UNAVAILABLE,
            message=f"identity collaborator returned no {what}",
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _jsonmap(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: _coerce_json(v) for k, v in data.items()}


def _coerce_json(v: Any) -> Any:
    # Keep JSON primitives; stringify the rest; hex-encode bytes.
    if v is None or isinstance(v, (bool, int, float, str, list, dict)):
        return v
    if isinstance(v, (bytes, bytearray)):
        return v.hex()
    return str(v)


__all__ = [
    "TokenErrorCode",
    "TokenError",
    "NotInitialized",
    "Unauthorized",
    "InvalidAddress",
    "SelfOperation",
    "LengthMismatch",
    "AlreadyExists",
    "NotFound",
    "ArithmeticOverflow",
    "InsufficientFunds",
    "AllowanceExceeded",
    "InvalidAmount",
    "InvalidArgument",
    "StateConflict",
    "IdentityUnavailable",
]
