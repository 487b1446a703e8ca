"""
Adapters package for the Relay Service.

Contains HTTP client wrappers for external dependencies (model gateway,
translation sheet, speech provider). Adapters encapsulate base URLs,
request shapes and the mapping of upstream failures to shared errors.

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .gateway_client import GatewayClient
from .speech_client import SpeechClient
from .translation_source import SheetTranslationSource

__all__ = [
    "GatewayClient",
    "SpeechClient",
    "SheetTranslationSource",
]
