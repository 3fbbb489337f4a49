"""Recognition of utility and streaming providers in free-text descriptions."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import re
from typing import List, Optional, Pattern, Tuple

from .config import get_classification_config

STREAMING = 'streaming'
CONDOMINIUM = 'condominium'


@dataclass(frozen=True)
class ProviderMatch:
    provider: Optional[str]
    kind: Optional[str]

    @property
    def is_utility(self) -> bool:
        return self.provider is not None and self.kind != STREAMING


NO_MATCH = ProviderMatch(None, None)


def _token_pattern(token: str) -> Pattern[str]:
    # Short names like "TIM" must not match inside other words
    return re.compile(r'(?<![a-z0-9])' + re.escape(token.lower()) + r'(?![a-z0-9])')


@lru_cache(maxsize=1)
def _provider_patterns() -> Tuple[Tuple[str, str, Pattern[str]], ...]:
    config = get_classification_config()
    patterns: List[Tuple[str, str, Pattern[str]]] = []
    for kind, providers in config.get('utility_providers', {}).items():
        for provider in providers:
            patterns.append((provider, kind, _token_pattern(provider)))
    for provider in config.get('subscription', {}).get('streaming_providers', []):
        patterns.append((provider, STREAMING, _token_pattern(provider)))
    return tuple(patterns)


@lru_cache(maxsize=1)
def _condominium_keywords() -> Tuple[str, ...]:
    return tuple(kw.lower() for kw in get_classification_config().get('condominium_keywords', []))


def detect_provider(text: Optional[str]) -> ProviderMatch:
    """Find the first known provider mentioned in ``text``.

    Utility providers are checked before streaming services, then the
    condominium keywords.

    Example:
        >>> detect_provider('Bolletta Enel Energia marzo')
        ProviderMatch(provider='Enel Energia', kind='energy')
    """
    if not text:
        return NO_MATCH
    normalized = text.lower().strip()
    for provider, kind, pattern in _provider_patterns():
        if pattern.search(normalized):
            return ProviderMatch(provider, kind)
    if any(keyword in normalized for keyword in _condominium_keywords()):
        return ProviderMatch('Condominio', CONDOMINIUM)
    return NO_MATCH


def is_utility_provider(text: Optional[str]) -> bool:
    return detect_provider(text).is_utility


def mentions_streaming_provider(text: Optional[str]) -> bool:
    if not text:
        return False
    normalized = text.lower()
    return any(
        pattern.search(normalized)
        for _, kind, pattern in _provider_patterns()
        if kind == STREAMING
    )
