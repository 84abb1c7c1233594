"""Pytest configuration and fixtures for bibpull tests."""

from pathlib import Path
from typing import Callable, List, Optional
import json
import threading

import pytest
from requests.structures import CaseInsensitiveDict

from bibpull.errors import PermanentError, TransientError
from bibpull.inputs import Input
from bibpull.item import Attachment, AttachmentKind, Item
from bibpull.retry import FixedBackoff, RetryPolicy
from bibpull.translators.base import Translator
from bibpull.translators.registry import TranslatorRegistry


class FakeTranslator(Translator):
    """Translator driven by a script of outcomes.

    Each call to fetch() consumes the next outcome: an Item is returned, an
    exception is raised. The last outcome repeats once the script runs out.
    """

    def __init__(self, name: str, handles: Callable[[Input], bool] = lambda i: True,
                 outcomes: Optional[List] = None, delay: Callable[[Input], float] = None):
        super().__init__(session=FakeSession())
        self.name = name
        self.handles = handles
        self.outcomes = list(outcomes or [])
        self.delay = delay
        self.calls: List[Input] = []
        self._lock = threading.Lock()

    def can_handle(self, input: Input) -> bool:
        return self.handles(input)

    def fetch(self, input: Input) -> Item:
        with self._lock:
            self.calls.append(input)
            index = min(len(self.calls) - 1, len(self.outcomes) - 1)
        if self.delay is not None:
            threading.Event().wait(self.delay(input))
        outcome = self.outcomes[index] if self.outcomes else make_item(title=input.value, source=self.name)
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return outcome(input)
        return outcome


def make_item(title: str = "A Title", doi: Optional[str] = None, source: str = "fake",
              attachments=()) -> Item:
    identifiers = {'doi': doi} if doi else {}
    return Item(title=title, identifiers=identifiers, attachments=attachments, source=source)


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code: int = 200, text: str = "", content: Optional[bytes] = None,
                 headers: Optional[dict] = None, url: str = "", json_data=None):
        self.status_code = status_code
        self.headers = CaseInsensitiveDict(headers or {})
        self._json = json_data
        if json_data is not None and not text:
            text = json.dumps(json_data)
        self.text = text
        self.content = content if content is not None else text.encode('utf-8')
        self.url = url
        self.encoding = 'utf-8'
        self.closed = False

    def json(self):
        if self._json is not None:
            return self._json
        return json.loads(self.text)

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]

    def close(self):
        self.closed = True


class FakeSession:
    """Session whose get() returns (or raises) queued results per URL prefix."""

    def __init__(self, routes: Optional[dict] = None):
        self.routes = {k: list(v) if isinstance(v, list) else [v] for k, v in (routes or {}).items()}
        self.calls = []
        self.headers = {}

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        for prefix, queue in self.routes.items():
            if url.startswith(prefix):
                result = queue.pop(0) if len(queue) > 1 else queue[0]
                if isinstance(result, BaseException):
                    raise result
                if not result.url:
                    result.url = url
                return result
        return FakeResponse(status_code=404, url=url)


@pytest.fixture
def no_wait_policy() -> RetryPolicy:
    """Default attempt budget, zero backoff."""
    return RetryPolicy(max_retries=3, backoff=FixedBackoff(0.0))


@pytest.fixture
def waits() -> List[float]:
    """Delays requested by pipelines; pass ``record_wait`` as the wait function."""
    return []


@pytest.fixture
def record_wait(waits) -> Callable[[float], bool]:
    def wait(delay: float) -> bool:
        waits.append(delay)
        return False
    return wait


@pytest.fixture
def fake_translator_cls():
    return FakeTranslator


@pytest.fixture
def registry_of():
    def build(*translators) -> TranslatorRegistry:
        return TranslatorRegistry(translators)
    return build


@pytest.fixture
def pdf_item() -> Item:
    return Item(
        title="Attention Is All You Need",
        identifiers={'arxiv': '1706.03762', 'doi': '10.48550/arxiv.1706.03762'},
        attachments=(
            Attachment("https://arxiv.org/pdf/1706.03762", AttachmentKind.PDF),
            Attachment("https://arxiv.org/abs/1706.03762", AttachmentKind.HTML),
        ),
        source="arxiv",
    )


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch) -> Path:
    """Run with no user config and an empty working directory."""
    monkeypatch.setattr('bibpull.config.get_config_dir', lambda package_name='bibpull': tmp_path / 'home')
    workdir = tmp_path / 'work'
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    return workdir


TRANSIENT = TransientError("HTTP 503 fetching test")
PERMANENT = PermanentError("test not found (HTTP 404)")
