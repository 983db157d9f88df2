# =============================================================================
# MIME Module
# =============================================================================
# Locates the plain-text body inside an RFC822 message by walking its MIME
# tree. Pure functions over bytes: no network, no UI.
# =============================================================================

from readmail.mime.resolver import (
    DEFAULT_MAX_DEPTH,
    MimePart,
    MimeError,
    MalformedEnvelopeError,
    ExcessiveNestingError,
    find_plain_text_part,
    parse_media_type,
    parse_part,
    resolve_plain_text,
    split_multipart,
)

__all__ = [
    "DEFAULT_MAX_DEPTH",
    "MimePart",
    "MimeError",
    "MalformedEnvelopeError",
    "ExcessiveNestingError",
    "find_plain_text_part",
    "parse_media_type",
    "parse_part",
    "resolve_plain_text",
    "split_multipart",
]
