"""
Attachment puller.

Downloads the attachments of fetched Items. Each (Item, Attachment) pair
gets its own DownloadPipeline, which has the same shape, retry policy and
error classification as the fetch pipeline:

    Pending -> Downloading(0) -> Downloaded(path) | Invalid(reason)
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional
import logging

import requests

from .errors import PermanentError
from .inputs import Input
from .item import Attachment, AttachmentKind, Item
from .network import classify_request_errors, create_session, get
from .pipeline import FetchPipeline, Pending, RetryingPipeline
from .storage import AttachmentStore

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
PDF_MAGIC = b'%PDF'


@dataclass(frozen=True)
class Downloading:
    attempt: int
    terminal = False


@dataclass(frozen=True)
class Downloaded:
    path: Path
    terminal = True


def download(session: requests.Session, attachment: Attachment, timeout: float = 30) -> bytes:
    """Download an attachment body.

    Raises:
        PermanentError: Bad URL, 4xx, or a PDF attachment that is not a PDF
        TransientError: Timeouts, connection errors, 5xx, rate limits
    """
    what = f"{attachment.kind.value} {attachment.url}"
    response = get(session, attachment.url, what=what, timeout=timeout, stream=True)
    with classify_request_errors(what):
        try:
            content = b"".join(response.iter_content(chunk_size=CHUNK_SIZE))
        finally:
            response.close()

    if attachment.kind is AttachmentKind.PDF and not content.startswith(PDF_MAGIC):
        content_type = response.headers.get('Content-Type', 'unknown')
        raise PermanentError(f"{attachment.url} did not return a PDF (Content-Type: {content_type})")
    return content


class DownloadPipeline(RetryingPipeline):
    """Download one attachment of one Item."""

    def __init__(self, item: Item, attachment: Attachment, store: AttachmentStore,
                 session: Optional[requests.Session] = None, timeout: float = 30,
                 input: Optional[Input] = None, **kwargs):
        super().__init__(**kwargs)
        self.item = item
        self.attachment = attachment
        self.store = store
        self.session = session or create_session()
        self.timeout = timeout
        self.input = input

    @property
    def label(self) -> str:
        return f"{self.item.key} [{self.attachment.kind.value}]"

    @property
    def path(self) -> Optional[Path]:
        return self.state.path if isinstance(self.state, Downloaded) else None

    def _advance(self, state):
        if isinstance(state, Pending):
            return Downloading(0)

        if isinstance(state, Downloading):
            return self._attempt(
                state.attempt,
                self._download_and_save,
                on_success=Downloaded,
                on_retry=Downloading,
            )

        raise RuntimeError(f"Cannot advance from {state!r}")

    def _download_and_save(self) -> Path:
        content = download(self.session, self.attachment, timeout=self.timeout)
        if self.store.exists(self.item.key, self.attachment.kind):
            logger.info(f"{self.label}: replacing existing {self.store.filename(self.item.key, self.attachment.kind)}")
        try:
            return self.store.save(self.item.key, self.attachment.kind, content)
        except OSError as e:
            raise PermanentError(f"Could not write {self.label}: {e}") from e

    def _report(self, state) -> None:
        if isinstance(state, Downloading):
            logger.debug(f"{self.label}: download attempt {state.attempt + 1} from {self.attachment.url}")
        elif isinstance(state, Downloaded):
            logger.info(f"{self.label}: saved to {state.path}")
        else:
            super()._report(state)


class Puller:
    """Turns fetched Items into download pipelines."""

    def __init__(self, store: AttachmentStore, session: Optional[requests.Session] = None,
                 timeout: float = 30, **pipeline_kwargs):
        """
        Args:
            store: Where files are written
            session: Shared HTTP session
            timeout: Per-request timeout in seconds
            pipeline_kwargs: policy, wait, cancel_event, listener for each pipeline
        """
        self.store = store
        self.session = session or create_session()
        self.timeout = timeout
        self.pipeline_kwargs = pipeline_kwargs

    def pipelines_for(self, item: Item, input: Optional[Input] = None) -> List[DownloadPipeline]:
        """One pipeline per attachment kind; later attachments of a kind already seen are skipped."""
        pipelines = []
        seen = set()
        for attachment in item.attachments:
            if attachment.kind in seen:
                logger.debug(f"{item.key}: skipping extra {attachment.kind.value} {attachment.url}")
                continue
            seen.add(attachment.kind)
            pipelines.append(DownloadPipeline(item, attachment, self.store, session=self.session,
                                              timeout=self.timeout, input=input, **self.pipeline_kwargs))
        return pipelines

    def plan(self, fetches: Iterable[FetchPipeline]) -> List[DownloadPipeline]:
        """Download pipelines for every Fetched Item, in input order.

        Items that failed to fetch contribute nothing.
        """
        pipelines = []
        for fetch in fetches:
            item = fetch.item
            if item is None:
                continue
            if not item.attachments:
                logger.warning(f"{fetch.label}: no attachments to pull")
            pipelines.extend(self.pipelines_for(item, fetch.input))
        return pipelines


__all__ = [
    'Downloading',
    'Downloaded',
    'DownloadPipeline',
    'Puller',
    'download',
]
