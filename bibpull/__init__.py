"""
bibpull - Resolve bibliographic identifiers into metadata and pull their attachments.

Supports:
- DOIs (content negotiation at doi.org)
- arXiv IDs and URLs (arXiv Atom API)
- ISBNs (Crossref)
- USENIX presentation pages and other web pages with embedded metadata
- BibTeX and Hayagriva bibliography files (one input per entry)

Example:
    >>> from bibpull import Scheduler, default_registry, resolve_arguments
    >>> inputs = resolve_arguments(["10.1000/xyz123", "refs.bib"])
    >>> for pipeline in Scheduler(max_workers=4).fetch_all(inputs, default_registry()):
    ...     print(pipeline.input.label, pipeline.state)
"""

__version__ = "0.3.0"

from .config import Settings, load_config
from .errors import (
    BibliographyError,
    BibpullError,
    ConfigError,
    PermanentError,
    TransientError,
    TranslationError,
)
from .inputs import Input, InputKind, resolve_argument, resolve_arguments
from .item import Attachment, AttachmentKind, Author, Item
from .pipeline import (
    Cancelled,
    Fatal,
    FetchExhausted,
    FetchPipeline,
    Fetched,
    Invalid,
    Pending,
    Translating,
    Unrecognized,
)
from .puller import DownloadPipeline, Downloaded, Downloading, Puller
from .retry import MAX_RETRIES, ExponentialBackoff, FixedBackoff, RetryPolicy
from .scheduler import Scheduler
from .storage import AttachmentStore
from .translators import Translator, TranslatorRegistry, default_registry

__all__ = [
    '__version__',
    'Settings',
    'load_config',
    'BibpullError',
    'BibliographyError',
    'ConfigError',
    'TranslationError',
    'PermanentError',
    'TransientError',
    'Input',
    'InputKind',
    'resolve_argument',
    'resolve_arguments',
    'Item',
    'Author',
    'Attachment',
    'AttachmentKind',
    'Pending',
    'Translating',
    'Fetched',
    'Invalid',
    'Unrecognized',
    'Fatal',
    'FetchExhausted',
    'Cancelled',
    'FetchPipeline',
    'DownloadPipeline',
    'Downloading',
    'Downloaded',
    'Puller',
    'MAX_RETRIES',
    'ExponentialBackoff',
    'FixedBackoff',
    'RetryPolicy',
    'Scheduler',
    'AttachmentStore',
    'Translator',
    'TranslatorRegistry',
    'default_registry',
]
