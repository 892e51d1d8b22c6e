"""
moderation gateway
"""

__version__ = "0.1.0"

from moderation_gateway.config import Settings
from moderation_gateway.main import create_app

__all__ = ["Settings", "create_app", "__version__"]
