"""Request helpers shared by route modules: session lookup and body parsing."""

from __future__ import annotations

import json
import logging
from typing import Any, TypeVar

from aiohttp import web
from pydantic import BaseModel, ValidationError

from zhaomu.core.config_manager import get_config_value
from zhaomu.core.exceptions import AuthenticationError, RequestValidationError
from zhaomu.services.content import ClientFactory
from zhaomu.services.supabase_client import SupabaseClient, bearer_token

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


async def supabase_for_request(
    request: web.Request, config: Any, client_factory: ClientFactory
) -> SupabaseClient:
    """Supabase client carrying the request's bearer token (if any).

    Raises:
        ConfigurationError: Supabase URL or anon key missing
    """
    client = await client_factory(None)
    return SupabaseClient(
        client,
        get_config_value(config, "supabase_url"),
        get_config_value(config, "supabase_anon_key"),
        access_token=bearer_token(request.headers.get("Authorization")),
    )


async def require_user(
    request: web.Request, config: Any, client_factory: ClientFactory
) -> tuple[SupabaseClient, dict[str, Any]]:
    """Resolve the signed-in user of the request.

    Returns:
        (Supabase client bound to the user's token, user record)

    Raises:
        AuthenticationError: missing or rejected bearer token
        ConfigurationError: Supabase not configured
    """
    db = await supabase_for_request(request, config, client_factory)
    if not bearer_token(request.headers.get("Authorization")):
        raise AuthenticationError("请先登录")
    return db, await db.get_user()


def first_validation_message(error: ValidationError) -> str:
    errors = error.errors()
    if not errors:
        return "invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = str(first.get("msg", "invalid value"))
    return f"{location}: {message}" if location else message


async def parse_body(request: web.Request, model: type[ModelT]) -> ModelT:
    """Decode the JSON body and validate it against ``model``.

    Raises:
        RequestValidationError: body is not JSON or fails validation
    """
    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise RequestValidationError("invalid json") from None

    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise RequestValidationError(first_validation_message(e)) from None
