from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from folio.permissions import GrantMode, Resource, GLOBAL_PERMISSION_FLAGS
from folio.time_utils import parse_iso_date


# Upper bound for a single trade price / dividend per share
MAX_UNIT_AMOUNT = Decimal("1000000000")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate ticker)."""


# =============================================================================
# FIELD COERCION
# =============================================================================

def _require_dict(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def _required_str(payload: dict, key: str, max_length: int = 255) -> str:
    value = payload.get(key)
    if value is None:
        raise ValidationError(f"{key} is required")
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    value = value.strip()
    if not value:
        raise ValidationError(f"{key} cannot be blank")
    if len(value) > max_length:
        raise ValidationError(f"{key} exceeds max length {max_length}")
    return value


def _optional_str(payload: dict, key: str, max_length: int = 255) -> str | None:
    if payload.get(key) is None:
        return None
    value = _required_str(payload, key, max_length)
    return value or None


def _optional_bool(payload: dict, key: str) -> bool | None:
    value = payload.get(key)
    if value is None:
        return None
    # Strict: "false" as a string must not become True
    if not isinstance(value, bool):
        raise ValidationError(f"{key} must be a boolean")
    return value


def _required_bool(payload: dict, key: str) -> bool:
    value = _optional_bool(payload, key)
    if value is None:
        raise ValidationError(f"{key} is required")
    return value


def _choice(payload: dict, key: str, allowed: tuple[str, ...]) -> str:
    value = _required_str(payload, key, 32).lower()
    if value not in allowed:
        raise ValidationError(f"{key} must be one of: {', '.join(allowed)}")
    return value


def _positive_int(payload: dict, key: str) -> int:
    value = payload.get(key)
    if value is None:
        raise ValidationError(f"{key} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped.isdigit():
            raise ValidationError(f"{key} must be a positive integer")
        value = int(stripped)
    if not isinstance(value, int):
        raise ValidationError(f"{key} must be an integer")
    if value <= 0:
        raise ValidationError(f"{key} must be > 0")
    return value


def _positive_decimal(payload: dict, key: str) -> Decimal:
    value = payload.get(key)
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{key} is required")
    try:
        # str() first so floats keep their printed value
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{key} must be a number")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"{key} must be > 0")
    if amount >= MAX_UNIT_AMOUNT:
        raise ValidationError(f"{key} must be < {MAX_UNIT_AMOUNT}")
    return amount


def _required_date(payload: dict, key: str) -> date:
    try:
        value = parse_iso_date(payload.get(key))
    except ValueError:
        raise ValidationError(f"{key} must be an ISO-8601 date")
    if value is None:
        raise ValidationError(f"{key} is required")
    return value


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

@dataclass(frozen=True)
class GrantRequest:
    """Body of POST/DELETE /api/grant."""
    resource: str
    owner_id: str | None
    grantee_id: str
    mode: str

    @classmethod
    def from_payload(cls, payload: Any) -> "GrantRequest":
        payload = _require_dict(payload)
        resource = _choice(payload, "resource", Resource.ALL)
        mode = _choice(payload, "mode", GrantMode.ALL)
        grantee_id = _required_str(payload, "grantee_id", 64)
        owner_id = _optional_str(payload, "owner_id", 64)

        if resource == Resource.DICTIONARIES and owner_id is not None:
            raise ValidationError("owner_id must be empty for dictionaries")
        if resource in Resource.OWNED and owner_id is None:
            raise ValidationError(f"owner_id is required for {resource}")
        if owner_id is not None and owner_id == grantee_id:
            raise ValidationError("owner_id and grantee_id must differ")

        return cls(resource=resource, owner_id=owner_id, grantee_id=grantee_id, mode=mode)


@dataclass(frozen=True)
class PermissionRequest:
    """
    Body of POST /api/permissions.

    Flags left out of the body are None and are merged with the stored values
    by the route before the all-fields upsert.
    """
    user_id: str
    can_view_all: bool | None
    can_edit_all: bool | None
    can_edit_dictionaries: bool | None
    is_admin: bool | None

    @classmethod
    def from_payload(cls, payload: Any) -> "PermissionRequest":
        payload = _require_dict(payload)
        flags = {flag: _optional_bool(payload, flag) for flag in GLOBAL_PERMISSION_FLAGS}
        return cls(
            user_id=_required_str(payload, "user_id", 64),
            is_admin=_optional_bool(payload, "is_admin"),
            **flags,
        )


@dataclass(frozen=True)
class CreateUserRequest:
    email: str
    password: str
    is_admin: bool
    full_name: str | None

    @classmethod
    def from_payload(cls, payload: Any) -> "CreateUserRequest":
        payload = _require_dict(payload)
        email = _required_str(payload, "email").lower()
        if "@" not in email or email.startswith("@") or email.endswith("@"):
            raise ValidationError("email must be a valid address")
        return cls(
            email=email,
            password=_required_str(payload, "password", 128),
            is_admin=bool(_optional_bool(payload, "is_admin")),
            full_name=_optional_str(payload, "full_name"),
        )


@dataclass(frozen=True)
class UserIdRequest:
    """Body of the delete / soft-delete endpoints."""
    user_id: str

    @classmethod
    def from_payload(cls, payload: Any) -> "UserIdRequest":
        payload = _require_dict(payload)
        return cls(user_id=_required_str(payload, "user_id", 64))


@dataclass(frozen=True)
class SetActiveRequest:
    user_id: str
    is_active: bool

    @classmethod
    def from_payload(cls, payload: Any) -> "SetActiveRequest":
        payload = _require_dict(payload)
        return cls(
            user_id=_required_str(payload, "user_id", 64),
            is_active=_required_bool(payload, "is_active"),
        )


@dataclass(frozen=True)
class ResetPasswordRequest:
    user_id: str
    new_password: str

    @classmethod
    def from_payload(cls, payload: Any) -> "ResetPasswordRequest":
        payload = _require_dict(payload)
        return cls(
            user_id=_required_str(payload, "user_id", 64),
            new_password=_required_str(payload, "new_password", 128),
        )


@dataclass(frozen=True)
class TradeRequest:
    stock_id: int
    trade_type: str
    trade_date: date
    quantity: int
    price_per_share: Decimal

    @classmethod
    def from_payload(cls, payload: Any) -> "TradeRequest":
        payload = _require_dict(payload)
        trade_type = _required_str(payload, "trade_type", 4).upper()
        if trade_type not in ("BUY", "SELL"):
            raise ValidationError("trade_type must be BUY or SELL")
        return cls(
            stock_id=_positive_int(payload, "stock_id"),
            trade_type=trade_type,
            trade_date=_required_date(payload, "trade_date"),
            quantity=_positive_int(payload, "quantity"),
            price_per_share=_positive_decimal(payload, "price_per_share"),
        )


@dataclass(frozen=True)
class DividendRequest:
    stock_id: int
    payment_date: date
    quantity: int
    amount_per_share: Decimal

    @classmethod
    def from_payload(cls, payload: Any) -> "DividendRequest":
        payload = _require_dict(payload)
        return cls(
            stock_id=_positive_int(payload, "stock_id"),
            payment_date=_required_date(payload, "payment_date"),
            quantity=_positive_int(payload, "quantity"),
            amount_per_share=_positive_decimal(payload, "amount_per_share"),
        )


@dataclass(frozen=True)
class ExchangeRequest:
    code: str
    name: str
    currency: str

    @classmethod
    def from_payload(cls, payload: Any) -> "ExchangeRequest":
        payload = _require_dict(payload)
        return cls(
            code=_required_str(payload, "code", 16).upper(),
            name=_required_str(payload, "name", 128),
            currency=_required_str(payload, "currency", 8).upper(),
        )


@dataclass(frozen=True)
class StockRequest:
    ticker: str
    name: str
    exchange_id: int
    isin: str | None
    sector: str | None

    @classmethod
    def from_payload(cls, payload: Any) -> "StockRequest":
        payload = _require_dict(payload)
        return cls(
            ticker=_required_str(payload, "ticker", 32).upper(),
            name=_required_str(payload, "name"),
            exchange_id=_positive_int(payload, "exchange_id"),
            isin=_optional_str(payload, "isin", 12),
            sector=_optional_str(payload, "sector", 128),
        )
