"""
Moderation projection of a chat conversation.

Builds the conversation the moderation model judges from the caller's
original messages. The original request is never modified; the completion
provider always receives the caller's messages as sent.

Projection rules:
- caller system messages are dropped; the moderation prompt is authoritative
- list content is flattened to its text parts joined by newlines, unless the
  image-aware policy is on and the request carries images
- JSON string content is pretty-printed with a stable format
- output order: moderation system prompt, projected messages, optional
  trailing reinforcement of the same prompt
"""

import json
from typing import Any

from moderation_gateway.models.gateway import ModerationPolicy, ModerationProjection
from moderation_gateway.models.openai import MessageRole
from moderation_gateway.utils.logging import get_logger

logger = get_logger(__name__)


def has_image_content(messages: list[dict[str, Any]]) -> bool:
    """Return True if any message carries an image_url content part."""
    for message in messages:
        content = message.get("content")
        if isinstance(content, list) and any(
            isinstance(part, dict) and part.get("type") == "image_url" for part in content
        ):
            return True
    return False


def pretty_print_json_content(content: str) -> str:
    """
    Re-serialize JSON string content with a stable, indented format.

    Strings that do not start with '{' or '[', or that fail to parse, are
    returned unchanged. Applying this twice yields the same output.

    Args:
        content: Message content string

    Returns:
        Pretty-printed JSON or the original string
    """
    if not content.startswith(("{", "[")):
        return content
    try:
        parsed = json.loads(content)
    except (ValueError, RecursionError):
        return content
    return json.dumps(parsed, indent=2, ensure_ascii=False)


def extract_text(content: list[Any]) -> str:
    """Join the text parts of structured content with newlines."""
    return "\n".join(
        part["text"]
        for part in content
        if isinstance(part, dict) and part.get("type") == "text" and isinstance(part.get("text"), str)
    )


def project_message(message: dict[str, Any], keep_structured: bool = False) -> dict[str, Any]:
    """
    Project a single message for moderation.

    Args:
        message: Original message
        keep_structured: Keep list content as-is instead of flattening to text

    Returns:
        New message dict with role and projected content
    """
    content = message.get("content")

    if isinstance(content, list):
        if keep_structured:
            return {"role": message["role"], "content": content}
        return {"role": message["role"], "content": extract_text(content)}

    if isinstance(content, str):
        return {"role": message["role"], "content": pretty_print_json_content(content)}

    return {"role": message["role"], "content": content}


def project_for_moderation(
    messages: list[dict[str, Any]],
    policy: ModerationPolicy,
    system_prompt: str,
) -> ModerationProjection:
    """
    Build the moderation conversation for a request.

    Args:
        messages: Original validated messages
        policy: Moderation policy (image awareness, prompt reinforcement)
        system_prompt: Moderation instructions for the judge

    Returns:
        ModerationProjection with the judge messages and image flags
    """
    images = has_image_content(messages)
    uses_vision = policy.image_aware and images

    projected = [
        project_message(message, keep_structured=uses_vision)
        for message in messages
        if message.get("role") != MessageRole.SYSTEM
    ]

    moderation_messages = [{"role": MessageRole.SYSTEM, "content": system_prompt}, *projected]
    if policy.reinforce_prompt and not uses_vision:
        moderation_messages.append({"role": MessageRole.USER, "content": system_prompt})

    logger.debug(
        "Moderation projection built",
        extra={
            "original_message_count": len(messages),
            "moderation_message_count": len(moderation_messages),
            "has_image_content": images,
            "uses_vision": uses_vision,
        },
    )

    return ModerationProjection(
        messages=moderation_messages,
        has_image_content=images,
        uses_vision=uses_vision,
    )
