"""
Base Translator

Abstract base class for source-specific translators. Each translator knows
how to recognize one kind of identifier and turn it into an Item using one
upstream source.

This is the ONLY contract between the pipeline and translators.
"""

from abc import ABC, abstractmethod
from typing import Optional
import logging

import requests

from ..inputs import Input
from ..item import Item
from ..network import create_session

logger = logging.getLogger(__name__)


class Translator(ABC):
    """
    Recognizes inputs and fetches their metadata from one source.

    Knows how to:
    - Detect whether it can handle an input (pure, no network)
    - Fetch and normalize metadata into an Item
    - Classify its failures as permanent or transient

    Does NOT:
    - Manage retries (the pipeline does that)
    - Decide what happens when it fails (the pipeline does that)

    Translators are created once and shared by all pipelines, so they must
    not keep per-input state. A rate limiter the translator owns must do its
    own locking.
    """

    #: Stable name used in logs, reports and the registry
    name: str = "base"

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 30):
        """
        Args:
            session: HTTP session to use (default: a new bibpull session)
            timeout: Per-request timeout in seconds
        """
        self.session = session or create_session()
        self.timeout = timeout

    @abstractmethod
    def can_handle(self, input: Input) -> bool:
        """
        Check whether this translator claims the input.

        Must be deterministic and must not touch the network.
        """
        pass

    @abstractmethod
    def fetch(self, input: Input) -> Item:
        """
        Fetch metadata for an input.

        Returns:
            Item with ``source`` set to this translator's name

        Raises:
            PermanentError: The input can never succeed with this source
            TransientError: Worth retrying later
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"
