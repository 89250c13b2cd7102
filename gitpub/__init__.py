"""
gitpub: A Micropub publishing core backed by Git.

Normalizes Micropub posts into one canonical record, files them as Markdown
documents with a YAML header and commits them to a Git repository.
"""

__version__ = "0.1.0"
__author__ = "gitpub Project"

# Import main components
from .models import Record, FormattedPost, PublishResult, PublishSettings
from .parsers import from_structured, from_form, from_document, to_structured
from .content import classify, format_post
from .updates import UpdateMerger
from .storage import StorageClient, GitHubStorage, LocalGitStorage, CommitPipeline
from .enrichment import Enricher
from .publisher import Publisher

__all__ = [
    "Record",
    "FormattedPost",
    "PublishResult",
    "PublishSettings",
    "from_structured",
    "from_form",
    "from_document",
    "to_structured",
    "classify",
    "format_post",
    "UpdateMerger",
    "StorageClient",
    "GitHubStorage",
    "LocalGitStorage",
    "CommitPipeline",
    "Enricher",
    "Publisher",
]
