# =============================================================================
# MIME Part Resolver
# =============================================================================
# Finds the plain-text body of an RFC822 message.
#
# Mail bodies are trees: a multipart container holds parts, and each part
# can itself be a container. We walk that tree depth-first, left to right,
# and stop at the first text/plain leaf. That order matters because
# multipart/alternative lists the preferred rendering first.
#
# The input is untrusted network data, so:
#   - Recursion depth is bounded (ExcessiveNestingError past max_depth)
#   - A broken sibling part is skipped instead of failing the whole message
#   - Nothing here does I/O or touches the UI
# =============================================================================

import base64
import binascii
import io
import logging
import quopri
import re
from dataclasses import dataclass, field
from email.message import Message
from email.utils import collapse_rfc2231_value
from functools import cached_property
from typing import BinaryIO

logger = logging.getLogger(__name__)

# Most real mail nests two or three containers deep
DEFAULT_MAX_DEPTH = 20

# RFC 2045: a body without a Content-Type header is plain text
DEFAULT_MEDIA_TYPE = "text/plain"

# The first empty line ends the header block
_BLANK_LINE = re.compile(rb"\r?\n\r?\n")
_LINE_BREAK = re.compile(rb"\r?\n")

# Field names are printable US-ASCII except colon (RFC 5322 section 2.2)
_FIELD_NAME = re.compile(rb"^[!-9;-~]+$")

_MEDIA_TYPE = re.compile(r"^[^\s/;\"]+/[^\s/;\"]+$")


@dataclass
class MimePart:
    """
    One parsed MIME part. Exists only while a message is being resolved.

    Attributes:
        headers: Header fields keyed by lower-case name. Folded lines are
                 unfolded. When a field repeats, the first value wins.
        body: The raw body bytes, exactly as received.
        media_type: Lower-cased media type (e.g. "text/plain").
        params: Content-Type parameters with lower-cased keys.
    """
    headers: dict[str, str]
    body: bytes
    media_type: str = DEFAULT_MEDIA_TYPE
    params: dict[str, str] = field(default_factory=dict)

    @property
    def is_multipart(self) -> bool:
        """True for multipart/* containers."""
        return self.media_type.startswith("multipart/")

    @property
    def boundary(self) -> str | None:
        """The multipart boundary. Only containers have one."""
        if not self.is_multipart:
            return None
        return self.params.get("boundary")

    @property
    def transfer_encoding(self) -> str:
        return self.headers.get("content-transfer-encoding", "").strip().lower()

    @cached_property
    def content(self) -> bytes:
        """
        The body with its Content-Transfer-Encoding removed.

        base64 and quoted-printable are decoded. Anything else (7bit, 8bit,
        binary, or an encoding we don't know) passes through untouched.

        Raises:
            MalformedEnvelopeError: If a base64 body cannot be decoded.
        """
        encoding = self.transfer_encoding
        if encoding == "base64":
            try:
                return base64.b64decode(re.sub(rb"\s+", b"", self.body), validate=True)
            except (binascii.Error, ValueError) as e:
                raise MalformedEnvelopeError(f"Invalid base64 body: {e}") from e
        if encoding == "quoted-printable":
            return quopri.decodestring(self.body)
        return self.body

    def open(self) -> BinaryIO:
        """Return a binary reader over the decoded content."""
        return io.BytesIO(self.content)


# =============================================================================
# Parsing
# =============================================================================

def parse_headers(block: bytes) -> dict[str, str]:
    """
    Parse a header block into a dict keyed by lower-case field name.

    Continuation lines (starting with space or tab) are joined onto the
    previous field, which is the only normalization applied.

    Raises:
        MalformedEnvelopeError: On a line without a colon, an invalid field
            name, or a continuation line with nothing before it.
    """
    fields: list[bytes] = []
    for line in _LINE_BREAK.split(block):
        if not line:
            continue
        if line[:1] in (b" ", b"\t"):
            if not fields:
                raise MalformedEnvelopeError("Header block starts with a continuation line")
            fields[-1] += line
            continue
        fields.append(line)

    headers: dict[str, str] = {}
    for raw_field in fields:
        name, sep, value = raw_field.partition(b":")
        if not sep or not _FIELD_NAME.match(name):
            raise MalformedEnvelopeError(f"Invalid header line: {raw_field[:60]!r}")
        key = name.decode("ascii").lower()
        if key not in headers:
            headers[key] = value.decode("utf-8", errors="replace").strip()
    return headers


def parse_media_type(value: str) -> tuple[str, dict[str, str]]:
    """
    Parse a Content-Type value into (media_type, params).

    Parameter syntax is left to the email package, so quoted values and
    RFC 2231 continuations (boundary*0=...; boundary*1=...) and encoded
    values (title*=us-ascii'en'...) come back as plain strings. Parameters
    without a value are dropped.

    Example:
        >>> parse_media_type('Multipart/Mixed; Boundary="abc"')
        ('multipart/mixed', {'boundary': 'abc'})

    Raises:
        MalformedEnvelopeError: If the media type is not type/subtype or the
            parameters cannot be decoded.
    """
    header = Message()
    header["Content-Type"] = value
    try:
        entries = header.get_params()
    except (TypeError, ValueError) as e:
        # Mixed numbered and unnumbered continuations of one name
        raise MalformedEnvelopeError(f"Invalid Content-Type parameters: {value!r}") from e

    (first, leftover), *rest = entries or [("", "")]
    media_type = first.strip().lower()
    if leftover or not _MEDIA_TYPE.match(media_type):
        raise MalformedEnvelopeError(f"Invalid media type: {value!r}")

    params: dict[str, str] = {}
    for key, param in rest:
        if isinstance(param, tuple):
            param = collapse_rfc2231_value(param, errors="replace")
        key = key.strip().lower()
        if key and param:
            params[key] = param
    return media_type, params


def split_envelope(raw: bytes) -> tuple[bytes, bytes]:
    """
    Split a message into (header_block, body) at the first empty line.

    A message that starts with an empty line has no headers. One without
    any empty line is all headers.
    """
    if raw.startswith(b"\r\n"):
        return b"", raw[2:]
    if raw.startswith(b"\n"):
        return b"", raw[1:]

    match = _BLANK_LINE.search(raw)
    if match is None:
        return raw, b""
    return raw[:match.start()], raw[match.end():]


def parse_part(raw: bytes) -> MimePart:
    """
    Parse one message or body part.

    Raises:
        MalformedEnvelopeError: If the framing or Content-Type is invalid,
            or a multipart container has no boundary.
    """
    if not raw.strip():
        raise MalformedEnvelopeError("Empty message")

    header_block, body = split_envelope(raw)
    headers = parse_headers(header_block)

    content_type = headers.get("content-type", "")
    if content_type:
        media_type, params = parse_media_type(content_type)
    else:
        media_type, params = DEFAULT_MEDIA_TYPE, {}

    part = MimePart(headers=headers, body=body, media_type=media_type, params=params)
    if part.is_multipart and not part.boundary:
        raise MalformedEnvelopeError(f"{media_type} without a boundary parameter")
    return part


def split_multipart(body: bytes, boundary: str) -> list[bytes]:
    """
    Split a multipart body into its raw parts (RFC 2046 section 5.1.1).

    The preamble before the first delimiter and the epilogue after the close
    delimiter are dropped. The line break before a delimiter belongs to the
    delimiter, not to the part. A body that never closes ends its last part
    at the end of the input.
    """
    delimiter = re.compile(
        rb"(?:\A|\r?\n)--"
        + re.escape(boundary.encode("utf-8"))
        + rb"(--)?[ \t]*(?=\r?\n|\Z)"
    )

    parts: list[bytes] = []
    start: int | None = None
    for match in delimiter.finditer(body):
        if start is not None:
            parts.append(body[start:max(start, match.start())])
        if match.group(1):
            return parts
        start = _skip_line_break(body, match.end())

    if start is not None:
        parts.append(body[start:])
    return parts


def _skip_line_break(data: bytes, pos: int) -> int:
    if data.startswith(b"\r\n", pos):
        return pos + 2
    if data.startswith(b"\n", pos):
        return pos + 1
    return pos


# =============================================================================
# Resolution
# =============================================================================

def find_plain_text_part(raw: bytes, *, max_depth: int = DEFAULT_MAX_DEPTH) -> MimePart | None:
    """
    Find the first text/plain leaf of a message.

    Args:
        raw: The full RFC822 message bytes.
        max_depth: How many multipart levels to descend before giving up.

    Returns:
        The matching part, or None if the message has no text/plain leaf.

    Raises:
        MalformedEnvelopeError: If the top-level message cannot be parsed.
        ExcessiveNestingError: If the parts nest deeper than max_depth.
    """
    if max_depth < 0:
        raise ValueError(f"max_depth must be >= 0, got {max_depth}")
    return _resolve(raw, 0, max_depth)


def resolve_plain_text(raw: bytes, *, max_depth: int = DEFAULT_MAX_DEPTH) -> BinaryIO | None:
    """
    Return a reader over the first text/plain body of a message.

    Returns None when there is no text/plain part anywhere, which is a
    normal outcome (HTML-only mail, attachment-only mail).

    Usage:
        >>> reader = resolve_plain_text(raw_message)
        >>> if reader is not None:
        ...     text = reader.read().decode("utf-8", errors="replace")
    """
    part = find_plain_text_part(raw, max_depth=max_depth)
    if part is None:
        return None
    return part.open()


def _resolve(raw: bytes, depth: int, max_depth: int) -> MimePart | None:
    if depth > max_depth:
        raise ExcessiveNestingError(
            f"MIME parts nest deeper than {max_depth} levels"
        )

    part = parse_part(raw)

    if part.is_multipart:
        logger.debug(f"Descending into {part.media_type} at depth {depth}")
        for index, child in enumerate(split_multipart(part.body, part.boundary)):
            if not child.strip():
                continue
            try:
                found = _resolve(child, depth + 1, max_depth)
            except MalformedEnvelopeError as e:
                # One broken part must not hide its siblings
                logger.debug(f"Skipping malformed part {index} at depth {depth + 1}: {e}")
                continue
            if found is not None:
                return found
        return None

    if part.media_type == "text/plain":
        # Decode now so a broken sibling is skipped rather than returned
        _ = part.content
        return part

    return None


# =============================================================================
# Exceptions
# =============================================================================

class MimeError(Exception):
    """Base exception for MIME resolution."""
    pass


class MalformedEnvelopeError(MimeError):
    """Raised when header/body framing or a Content-Type cannot be parsed."""
    pass


class ExcessiveNestingError(MimeError):
    """Raised when multipart nesting exceeds the configured depth."""
    pass
