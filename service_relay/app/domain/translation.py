"""
Translation lookup, the translation pass and the translator lifecycle.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

from shared.errors import (
    Err,
    Ok,
    Result,
    ServerConfigurationError,
    SystemPromptUnconfigured,
    TranslatorInitFailed,
)
from shared.logging import get_logger
from ..caching.cache_keys import build_translation_key
from .conversation import ConversationRequest

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector
    from ..adapters.translation_source import SheetTranslationSource
    from ..caching.response_cache import ResponseCache


logger = get_logger("relay.translation")


class Translator:
    """Resolves text keys to localized strings."""

    def __init__(self, mapping: Mapping[str, str]):
        self._mapping = dict(mapping)

    @classmethod
    def from_translations(cls, translations: Mapping[str, Any], sheet_name: str) -> "Translator":
        """Build a translator from fetched data keyed by sheet name."""
        if not isinstance(translations, Mapping):
            raise ValueError("Translation data must be an object keyed by sheet name")
        sheet = translations.get(sheet_name)
        if not isinstance(sheet, Mapping):
            raise ValueError(f"Sheet {sheet_name!r} missing from translation data")
        return cls({str(key): str(value) for key, value in sheet.items()})

    def lookup(self, key: str) -> Optional[str]:
        """Return the mapped value, or None when the key has no translation."""
        return self._mapping.get(key)

    def translate(self, text: str) -> str:
        """Return the translation of text, or text itself on a miss."""
        value = self._mapping.get(text)
        return text if value is None else value

    def __len__(self) -> int:
        return len(self._mapping)


def apply_translation(conversation: ConversationRequest, translator: Optional[Translator]) -> None:
    """Rewrite event contents and the prompt in place."""
    if translator is None:
        return
    for event in conversation.events:
        event.content = translator.translate(event.content)
    conversation.prompt = translator.translate(conversation.prompt)


def resolve_system_prompt(
    translator: Optional[Translator],
    key: str,
    fallback: Optional[str],
) -> Result[str]:
    """Pick the translated override under key, else the configured fallback."""
    if translator is not None:
        override = translator.lookup(key)
        if override:
            return Ok(override)
    if fallback:
        return Ok(fallback)
    return Err(SystemPromptUnconfigured())


class TranslatorState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class TranslatorLifecycle:
    """Owns the process-wide translator.

    Initialization is not serialized: concurrent first requests may each
    fetch the sheet, and the last cache write wins. A failed initialization
    leaves the state UNINITIALIZED so the next request tries again.
    """

    def __init__(
        self,
        source: Optional["SheetTranslationSource"],
        cache: "ResponseCache",
        *,
        cache_ttl: int = 86400,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.source = source
        self.cache = cache
        self.cache_ttl = cache_ttl
        self.metrics = metrics
        self._translator: Optional[Translator] = None

    @property
    def state(self) -> TranslatorState:
        return TranslatorState.READY if self._translator is not None else TranslatorState.UNINITIALIZED

    @property
    def enabled(self) -> bool:
        return self.source is not None

    def cache_key(self, origin: str) -> str:
        return build_translation_key(origin, self.source.spreadsheet_id, self.source.sheet_name)

    async def ensure_ready(self, origin: str) -> Result[Optional[Translator]]:
        """Return the ready translator, initializing it first if needed."""
        if self.source is None:
            return Ok(None)
        if self._translator is not None:
            return Ok(self._translator)

        key = self.cache_key(origin)
        try:
            data = await self.cache.get_json(key)
            if self.metrics:
                self.metrics.record_cache_access("translations", hit=data is not None)
            if data is None:
                data = await self.source.fetch()
                await self.cache.put_json(key, data, self.cache_ttl)
            translator = Translator.from_translations(data, self.source.sheet_name)
        except (ServerConfigurationError, TranslatorInitFailed) as exc:
            logger.error("Translator initialization failed", code=exc.code, details=exc.details)
            self._record("misconfigured" if isinstance(exc, ServerConfigurationError) else "error")
            return Err(exc)
        except Exception as exc:
            logger.error(
                "Translator initialization failed",
                spreadsheet_id=self.source.spreadsheet_id,
                sheet_name=self.source.sheet_name,
                error=str(exc),
                exc_info=True,
            )
            self._record("error")
            return Err(TranslatorInitFailed(str(exc)))

        self._translator = translator
        self._record("ok")
        logger.info("Translator ready", sheet_name=self.source.sheet_name, entries=len(translator))
        return Ok(translator)

    async def clear(self, origin: str) -> bool:
        """Drop the cached translation data and return to UNINITIALIZED."""
        self._translator = None
        if self.source is None:
            return True
        return await self.cache.delete(self.cache_key(origin))

    def _record(self, status: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("translator_initializations_total", status=status)

    def describe(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "state": self.state.value}
