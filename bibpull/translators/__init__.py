"""Translators turn recognized identifiers into Items."""

from typing import Optional

import requests

from ..config import Settings
from ..network import create_session
from .arxiv import ArxivTranslator
from .base import Translator
from .doi import DOITranslator
from .embedded import EmbeddedTranslator, UsenixTranslator
from .isbn import ISBNTranslator
from .registry import TranslatorRegistry


def default_registry(settings=None, session: Optional[requests.Session] = None) -> TranslatorRegistry:
    """Build the standard registry: DOI, arXiv, ISBN, USENIX, embedded page.

    Args:
        settings: Settings (timeout, user agent, mailto, arXiv cooldown); defaults if None
        session: Shared HTTP session (created from settings if None)
    """
    settings = settings or Settings()
    session = session or create_session(settings.user_agent)
    timeout = settings.timeout

    return TranslatorRegistry([
        DOITranslator(session=session, timeout=timeout),
        ArxivTranslator(session=session, timeout=timeout, cooldown=settings.arxiv_cooldown),
        ISBNTranslator(session=session, timeout=timeout, mailto=settings.mailto),
        UsenixTranslator(session=session, timeout=timeout),
        EmbeddedTranslator(session=session, timeout=timeout),
    ])


__all__ = [
    'Translator',
    'TranslatorRegistry',
    'DOITranslator',
    'ArxivTranslator',
    'ISBNTranslator',
    'UsenixTranslator',
    'EmbeddedTranslator',
    'default_registry',
]
