"""
Moderation-gated forwarding pipeline.

validation -> projection -> moderation -> forwarding, sequenced by the
RequestOrchestrator, with every failure funneled through the normalizer.
"""

from moderation_gateway.pipeline.forwarder import Forwarder, build_completion_payload
from moderation_gateway.pipeline.moderation import ModerationClient
from moderation_gateway.pipeline.normalizer import error_event, error_response, normalize_error
from moderation_gateway.pipeline.orchestrator import RequestOrchestrator
from moderation_gateway.pipeline.projection import has_image_content, project_for_moderation
from moderation_gateway.pipeline.validation import validate_completion_request, validate_message

__all__ = [
    "Forwarder",
    "ModerationClient",
    "RequestOrchestrator",
    "build_completion_payload",
    "error_event",
    "error_response",
    "has_image_content",
    "normalize_error",
    "project_for_moderation",
    "validate_completion_request",
    "validate_message",
]
