"""Classification of model stream failures into errors carried as data."""

import json
import logging

import anthropic
from pydantic_ai.exceptions import ModelHTTPError, UserError

from provider.base import MissingAPIKeyError

from .exceptions import NamedError, ProviderAuthError, UnknownError


logger = logging.getLogger(__name__)

AUTH_STATUS_CODES = (401, 403)
API_KEY_MARKERS = ("api_key", "api key")


def is_auth_error(error: BaseException) -> bool:
    """Whether the provider rejected or could not find credentials."""
    if isinstance(error, (MissingAPIKeyError, anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return True
    if isinstance(error, ModelHTTPError):
        return error.status_code in AUTH_STATUS_CODES
    if isinstance(error, UserError):
        message = str(error).lower()
        return any(marker in message for marker in API_KEY_MARKERS)
    return False


def classify_error(error: BaseException | object, provider_id: str) -> NamedError:
    """
    Convert a stream failure into a serializable NamedError.

    Args:
        error: The exception (or arbitrary error payload) reported by the stream
        provider_id: Provider the failing model belongs to

    Returns:
        ProviderAuthError for credential problems, UnknownError otherwise
    """
    if isinstance(error, NamedError):
        return error
    if isinstance(error, BaseException):
        if is_auth_error(error):
            return ProviderAuthError(provider_id, str(error))
        return UnknownError(str(error) or type(error).__name__)
    try:
        message = json.dumps(error)
    except (TypeError, ValueError):
        message = repr(error)
    return UnknownError(message)
