"""Exception hierarchy shared by every pipeline stage.

A cache miss is not an error: lookups return ``None`` instead of raising.
"""


class PageDigestError(Exception):
    """Base class for failures that end the current invocation."""


class IdentityResolutionError(PageDigestError, ValueError):
    """The input could not be turned into a canonical key (malformed URL)."""


class ExtractionError(PageDigestError):
    """Content could not be acquired from a tab, a video or a site."""


class SummarizationError(PageDigestError):
    """The summarization oracle failed or returned nothing usable."""


class SummarizationTimeout(SummarizationError):
    """The summarization oracle did not answer within the configured bound."""


class PersistenceError(PageDigestError):
    """Writing an artifact bundle to storage failed."""


class DiscussionError(PageDigestError):
    """The interactive discussion session could not be started."""
