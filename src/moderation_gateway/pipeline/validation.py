"""
Validation gate for inbound chat completion requests.

This module checks the structure of a request before anything is sent
upstream. A request that fails here never reaches the moderation provider.

Components:
- validate_message: pure predicate over a single message
- validate_completion_request: required-field checks, raising InvalidRequestError
"""

import json
import logging
from typing import Any
from urllib.parse import urlsplit

from pydantic import ValidationError

from moderation_gateway.models.gateway import ModerationPolicy
from moderation_gateway.models.openai import CompletionRequest
from moderation_gateway.utils.errors import InvalidRequestError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")


def is_valid_image_url(url: Any) -> bool:
    """
    Check an image reference.

    Accepts base64 data URLs (``data:image/...;base64,...``) and http(s) URLs
    whose path ends in a recognized image extension.

    Args:
        url: Candidate URL

    Returns:
        True if the URL is an acceptable image reference
    """
    if not isinstance(url, str):
        return False
    if url.startswith("data:image/") and ";base64," in url:
        return True

    parts = urlsplit(url)
    if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
        return False
    return parts.path.lower().endswith(IMAGE_EXTENSIONS)


def _is_valid_content_part(part: Any) -> bool:
    if not isinstance(part, dict):
        return False

    part_type = part.get("type")
    if part_type == "text":
        return isinstance(part.get("text"), str)
    if part_type == "image_url":
        image_url = part.get("image_url")
        if isinstance(image_url, dict):
            image_url = image_url.get("url")
        return is_valid_image_url(image_url)
    return False


def _is_structured_json(text: str) -> bool:
    try:
        return isinstance(json.loads(text), (dict, list))
    except (ValueError, RecursionError):
        return False


def validate_message(message: Any, require_structured_string_content: bool = False) -> bool:
    """
    Validate the structure of one chat message.

    Rules:
    - role must be a non-empty string
    - content must be present
    - list content: every part must be a text part or a valid image_url part
    - string content: any string, or only JSON objects/arrays in strict mode

    Args:
        message: Message as received in the request body
        require_structured_string_content: Reject prose string content

    Returns:
        True if the message is structurally valid
    """
    if not isinstance(message, dict):
        return False

    role = message.get("role")
    if not isinstance(role, str) or not role:
        return False

    content = message.get("content")
    if not content:
        return False

    if isinstance(content, list):
        return all(_is_valid_content_part(part) for part in content)

    if isinstance(content, str):
        if require_structured_string_content:
            return _is_structured_json(content)
        return True

    return False


def validate_completion_request(body: Any, policy: ModerationPolicy) -> CompletionRequest:
    """
    Validate a raw request body and build a CompletionRequest.

    Checks run in a fixed order so the first failure determines the error code.

    Args:
        body: Parsed JSON request body
        policy: Moderation policy carrying the validation switches

    Returns:
        Validated CompletionRequest

    Raises:
        InvalidRequestError: If any check fails
    """
    if not isinstance(body, dict):
        raise InvalidRequestError("Invalid request body", error_code="invalid_body")

    messages = body.get("messages")
    if not isinstance(messages, list):
        raise InvalidRequestError(
            "messages is required and must be an array", error_code="invalid_messages"
        )
    if not messages and not policy.allow_empty_messages:
        raise InvalidRequestError("messages must not be empty", error_code="invalid_messages")

    for index, message in enumerate(messages):
        if not validate_message(message, policy.require_structured_string_content):
            logger.warning("Invalid message format", extra={"message_index": index})
            raise InvalidRequestError(
                "Invalid message format",
                error_code="invalid_message_format",
                details="Each message must have a valid role and content",
            )

    model = body.get("model")
    if not isinstance(model, str) or not model:
        raise InvalidRequestError("model is required", error_code="invalid_model")

    response_format = body.get("response_format")
    if response_format is not None and not isinstance(response_format, dict):
        raise InvalidRequestError("Invalid response_format", error_code="invalid_response_format")

    tools = body.get("tools")
    if tools is not None and not isinstance(tools, list):
        raise InvalidRequestError("tools must be an array", error_code="invalid_tools")

    try:
        return CompletionRequest.model_validate(body)
    except ValidationError as exc:
        error_details = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            error_details.append(f"{field}: {error['msg']}")
        raise InvalidRequestError(
            "Invalid request body",
            error_code="invalid_body",
            details=", ".join(error_details),
        ) from exc
