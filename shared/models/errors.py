"""Error taxonomy of the knowledge-base pipeline.

Extraction and indexing errors are contained per file / per chunk, retrieval
and configuration errors trigger the next retrieval strategy. Only
cancellation and malformed arguments reach the caller.
"""


class KnowledgeBaseError(Exception):
    """Base class for all pipeline errors.

    Attributes:
        source (str | None): What the error relates to (file name, chunk index, strategy).
    """

    def __init__(self, message: str, source: str | None = None):
        self.source = source
        super().__init__(message)


class ExtractionError(KnowledgeBaseError):
    """A specific file could not be converted to text."""


class ValidationError(KnowledgeBaseError):
    """A file was rejected before extraction (size limit, empty or binary payload)."""


class IndexingError(KnowledgeBaseError):
    """A chunk embedding call or a persistence flush failed."""


class RetrievalError(KnowledgeBaseError):
    """A retrieval strategy could not serve the query."""


class ConfigurationError(KnowledgeBaseError):
    """A required setting (typically the embedding key) is missing."""


class OperationCancelledError(KnowledgeBaseError):
    """The caller signalled cancellation between pages, files or batches."""
