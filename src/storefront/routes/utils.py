from datetime import datetime, timezone
from typing import Dict, Optional

from flask import abort, g, jsonify, request
from marshmallow import Schema
from marshmallow import ValidationError as MarshmallowValidationError
from sqlalchemy.orm import Session

from storefront.core.result import Failure
from storefront.db import SessionLocal, get_engine
from storefront.models.cart import CartIdentity
from storefront.schemas.common_schemas import ErrorResponse


def success_response(data, message: Optional[str] = None, status: int = 200):
    """Consistent success response envelope."""
    response = {
        "success": True,
        "data": data,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if message:
        response["message"] = message
    return jsonify(response), status


def failure_response(failure: Failure):
    """Error envelope for a service Failure, with the status its kind maps to."""
    body = ErrorResponse(error=failure.to_error()).model_dump(mode="json")
    return jsonify(body), failure.kind.status_code


def parse_int(
    v,
    default=None,
    min_val: Optional[int] = None,
    max_val: Optional[int] = None,
    field_name: str = "value",
) -> Optional[int]:
    """Parse an integer with optional range validation."""
    if v is None or v == "":
        return default
    try:
        result = int(v)
    except (TypeError, ValueError):
        abort(400, f"Invalid {field_name}: must be a valid integer")
    if min_val is not None and result < min_val:
        abort(400, f"{field_name} must be at least {min_val}")
    if max_val is not None and result > max_val:
        abort(400, f"{field_name} cannot exceed {max_val}")
    return result


def parse_bool(v, default: Optional[bool] = False) -> Optional[bool]:
    """Parse a boolean value from a query string."""
    if v is None:
        return default
    if isinstance(v, bool):
        return v
    return str(v).lower() in ("1", "true", "t", "yes", "y", "on")


def parse_options() -> Dict[str, str]:
    """options[color]=Silver&options[storage]=512GB -> {"color": "Silver", "storage": "512GB"}"""
    options = {}
    for key, value in request.args.items():
        if key.startswith("options[") and key.endswith("]") and len(key) > len("options[]"):
            options[key[len("options["):-1]] = value
    return options


def load_json(schema: Schema, allow_empty: bool = False) -> dict:
    """Validate the JSON body against a marshmallow schema, aborting with 400 on errors."""
    if not request.is_json:
        if allow_empty and not request.content_length:
            return schema.load({})
        abort(400, "Content-Type must be application/json.")
    try:
        return schema.load(request.get_json(force=True) or {})
    except MarshmallowValidationError as err:
        abort(400, str(err.messages))


def get_current_user_id() -> int:
    """Extract and validate user ID from X-User-Id request header."""
    uid = request.headers.get("X-User-Id")
    if not uid:
        abort(401, "Missing X-User-Id header.")
    try:
        user_id = int(uid)
    except ValueError:
        abort(400, "Invalid X-User-Id header: must be a positive integer.")
    if user_id <= 0:
        abort(400, "User ID must be a positive integer.")
    return user_id


def get_cart_identity() -> CartIdentity:
    """Signed-in users are identified by X-User-Id, guests by X-Session-Id."""
    if request.headers.get("X-User-Id"):
        return CartIdentity.for_user(get_current_user_id())

    session_id = (request.headers.get("X-Session-Id") or "").strip()
    if not session_id:
        abort(401, "Missing X-User-Id or X-Session-Id header.")
    if len(session_id) > 128:
        abort(400, "X-Session-Id header cannot exceed 128 characters.")
    return CartIdentity.for_session(session_id)


def get_session() -> Session:
    """Database session for the current request, closed on app teardown."""
    if "db_session" not in g:
        get_engine()
        g.db_session = SessionLocal()
    return g.db_session
