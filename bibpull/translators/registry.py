"""Ordered, read-only collection of translators."""

from typing import Iterable, Iterator, List, Optional
import logging

from ..inputs import Input, InputKind
from .base import Translator

logger = logging.getLogger(__name__)

# Inputs that carry no identifier (unparseable files, entries without one)
UNCLAIMABLE = frozenset({InputKind.FILE, InputKind.UNIDENTIFIED})


class TranslatorRegistry:
    """
    Holds the available translators in registration order.

    Registration order is priority order: when several translators claim the
    same input, the first registered one wins. The registry is built once at
    startup and only read afterwards, so it can be shared across threads.
    """

    def __init__(self, translators: Optional[Iterable[Translator]] = None):
        self._translators: List[Translator] = []
        for translator in translators or ():
            self.register(translator)

    def register(self, translator: Translator) -> None:
        """Append a translator (lowest priority so far).

        Raises:
            ValueError: If a translator with the same name is already registered
        """
        if any(t.name == translator.name for t in self._translators):
            raise ValueError(f"Translator '{translator.name}' is already registered")
        self._translators.append(translator)
        logger.debug(f"Registered translator {translator.name}")

    def match(self, input: Input) -> List[Translator]:
        """Return every translator that claims the input, in registration order."""
        if input.kind in UNCLAIMABLE:
            return []
        return [t for t in self._translators if t.can_handle(input)]

    def first_match(self, input: Input) -> Optional[Translator]:
        candidates = self.match(input)
        if len(candidates) > 1:
            logger.debug(
                f"{input.value}: claimed by {[t.name for t in candidates]}, using {candidates[0].name}"
            )
        return candidates[0] if candidates else None

    def get(self, name: str) -> Translator:
        for translator in self._translators:
            if translator.name == name:
                return translator
        raise KeyError(name)

    @property
    def names(self) -> List[str]:
        return [t.name for t in self._translators]

    def __iter__(self) -> Iterator[Translator]:
        return iter(self._translators)

    def __len__(self) -> int:
        return len(self._translators)
