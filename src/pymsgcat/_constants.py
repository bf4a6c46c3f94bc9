"""Internal constants shared across the library."""

USER_AGENT = "pymsgcat/1"

#: Version tag written alongside every cache entry.  Entries carrying a
#: different tag are ignored and replaced on the next successful fetch.
CACHE_VERSION = "1"

DEFAULT_REQUEST_TIMEOUT: float = 30.0

HEADER_ETAG = "ETag"
HEADER_IF_NONE_MATCH = "If-None-Match"

STATUS_NOT_MODIFIED = 304
