"""
Fetch pipeline: the per-input state machine.

    Pending ──match──> Translating(translator, 0) ──ok──> Fetched(item)
       │                  │    ▲
       │                  │    └── transient, attempts left: wait, attempt + 1
       │                  ├── permanent ──────────> Invalid(Fatal)
       │                  └── transient, no attempts left ──> Invalid(FetchExhausted)
       └── no candidate ──> Invalid(Unrecognized)

Fetched and Invalid are terminal. A pipeline is owned by exactly one worker;
the only thing it shares is the cancellation event.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional
import logging
import threading

from .errors import TranslationError
from .inputs import Input
from .item import Item
from .retry import RetryPolicy, WaitFn
from .translators.base import Translator
from .translators.registry import TranslatorRegistry

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------------
# Invalid reasons
# ----------------------------------------------------------------------------

@dataclass(frozen=True)
class Unrecognized:
    """No translator claimed the input."""

    def __str__(self):
        return "unrecognized input"


@dataclass(frozen=True)
class Fatal:
    """The claiming translator failed permanently."""
    reason: str

    def __str__(self):
        return self.reason


@dataclass(frozen=True)
class FetchExhausted:
    """Every attempt failed with a transient error."""
    last_error: str

    def __str__(self):
        return f"gave up after retries: {self.last_error}"


@dataclass(frozen=True)
class Cancelled:
    """The run was interrupted before the pipeline finished."""

    def __str__(self):
        return "cancelled"


# ----------------------------------------------------------------------------
# States
# ----------------------------------------------------------------------------

@dataclass(frozen=True)
class Pending:
    terminal = False


@dataclass(frozen=True)
class Translating:
    translator: Translator
    attempt: int
    terminal = False


@dataclass(frozen=True)
class Fetched:
    item: Item
    terminal = True


@dataclass(frozen=True)
class Invalid:
    reason: Any
    terminal = True

    def __str__(self):
        return str(self.reason)


Listener = Callable[["RetryingPipeline", Any], None]


class RetryingPipeline:
    """
    Shared machinery for pipelines that retry one operation.

    Subclasses implement ``_advance(state)`` and use ``_attempt()`` for the
    fallible step. Error handling is the same for every pipeline:

    - PermanentError  -> Invalid(Fatal)
    - TransientError  -> wait and retry while attempts remain, then
                         Invalid(FetchExhausted)
    - anything else   -> Invalid(Fatal("unexpected error: ..."))
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        wait: Optional[WaitFn] = None,
        cancel_event: Optional[threading.Event] = None,
        listener: Optional[Listener] = None,
    ):
        """
        Args:
            policy: Retry policy (default: MAX_RETRIES attempts, exponential backoff)
            wait: Called with a delay in seconds; returns True if cancelled.
                  Defaults to waiting on ``cancel_event``.
            cancel_event: Set to stop at the next backoff wait
            listener: Called as ``listener(pipeline, state)`` on every reported transition
        """
        self.policy = policy or RetryPolicy()
        self.cancel_event = cancel_event or threading.Event()
        self.wait = wait or self.cancel_event.wait
        self.listener = listener
        self.state = Pending()
        self.attempts = 0

    @property
    def label(self) -> str:
        raise NotImplementedError

    @property
    def done(self) -> bool:
        return self.state.terminal

    @property
    def succeeded(self) -> bool:
        return self.done and not isinstance(self.state, Invalid)

    def step(self):
        """Perform exactly one transition and return the new state."""
        if self.done:
            return self.state
        self._set_state(self._advance(self.state))
        return self.state

    def run(self):
        """Step until a terminal state is reached."""
        while not self.done:
            self.step()
        return self.state

    def cancel(self) -> None:
        """Terminate a pipeline that has not finished as Invalid(Cancelled)."""
        if not self.done:
            self._set_state(Invalid(Cancelled()))

    def _advance(self, state):
        raise NotImplementedError

    def _attempt(self, attempt: int, operation: Callable[[], Any],
                 on_success: Callable[[Any], Any], on_retry: Callable[[int], Any]):
        """Run one attempt of ``operation`` and return the next state."""
        self.attempts += 1
        try:
            result = operation()
        except TranslationError as e:
            if e.permanent:
                return Invalid(Fatal(str(e)))
            if not self.policy.can_retry(attempt):
                return Invalid(FetchExhausted(str(e)))

            delay = self.policy.delay(attempt, getattr(e, 'retry_after', None))
            logger.info(f"{self.label}: {e}; retrying in {delay:.1f}s "
                        f"(attempt {attempt + 2}/{self.policy.max_retries})")
            if self.wait(delay) or self.cancel_event.is_set():
                return Invalid(Cancelled())
            return on_retry(attempt + 1)
        except Exception as e:
            logger.exception(f"{self.label}: unexpected error")
            return Invalid(Fatal(f"unexpected error: {e}"))
        return on_success(result)

    def _set_state(self, state) -> None:
        self.state = state
        self._report(state)
        if self.listener is not None:
            self.listener(self, state)

    def _report(self, state) -> None:
        if isinstance(state, Invalid):
            logger.info(f"{self.label}: failed ({state.reason})")


class FetchPipeline(RetryingPipeline):
    """Resolve one Input into an Item."""

    def __init__(self, input: Input, registry: TranslatorRegistry, **kwargs):
        super().__init__(**kwargs)
        self.input = input
        self.registry = registry

    @property
    def label(self) -> str:
        return self.input.label

    @property
    def item(self) -> Optional[Item]:
        return self.state.item if isinstance(self.state, Fetched) else None

    def _advance(self, state):
        if isinstance(state, Pending):
            translator = self.registry.first_match(self.input)
            if translator is None:
                return Invalid(Unrecognized())
            return Translating(translator, 0)

        if isinstance(state, Translating):
            translator = state.translator
            return self._attempt(
                state.attempt,
                lambda: translator.fetch(self.input),
                on_success=Fetched,
                on_retry=lambda attempt: Translating(translator, attempt),
            )

        raise RuntimeError(f"Cannot advance from {state!r}")

    def _report(self, state) -> None:
        if isinstance(state, Translating):
            logger.debug(f"{self.label}: {state.translator.name} attempt {state.attempt + 1}")
        elif isinstance(state, Fetched):
            logger.info(f"{self.label}: fetched via {state.item.source} after "
                        f"{self.attempts} attempt(s)")
        else:
            super()._report(state)


__all__ = [
    'Pending',
    'Translating',
    'Fetched',
    'Invalid',
    'Unrecognized',
    'Fatal',
    'FetchExhausted',
    'Cancelled',
    'RetryingPipeline',
    'FetchPipeline',
]
