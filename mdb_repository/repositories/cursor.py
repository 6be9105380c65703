"""
Page token encoding.

A page token is URL-safe base64 over a MongoDB Extended JSON (relaxed mode)
rendering of a :class:`PageCursor`. Extended JSON keeps BSON values such as
``ObjectId`` and ``datetime`` in the stored filter intact, so the next page is
queried with exactly the values the first one was. Tokens are not signed; a
token is only meaningful for the filter it was created from.
"""

import base64
import binascii
from typing import Any

from bson import json_util
from bson.errors import InvalidId
from bson.json_util import RELAXED_JSON_OPTIONS
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..constants import CURSOR_FORMAT_VERSION
from ..exceptions import InvalidPageTokenError


class PageCursor(BaseModel):
    """Decoded page token."""

    model_config = ConfigDict(populate_by_name=True)

    version: int = Field(default=CURSOR_FORMAT_VERSION, alias="v")
    # Validated by the repository so that an unknown direction fails at query time
    type: str
    ref: str
    take: int
    where: list[tuple[str, str, Any]] | None = None
    order_by: list[tuple[str, str]] | None = Field(default=None, alias="orderBy")
    page: int = 0


def encode_cursor(cursor: PageCursor) -> str:
    """Serialize a cursor into an opaque token."""
    payload = json_util.dumps(
        cursor.model_dump(by_alias=True, exclude_none=True),
        json_options=RELAXED_JSON_OPTIONS,
    )
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")


def decode_cursor(token: str) -> PageCursor:
    """
    Parse a token produced by :func:`encode_cursor`.

    Both the URL-safe and the standard base64 alphabet are accepted.

    Raises:
        InvalidPageTokenError: If the token is not valid base64/Extended JSON,
            has fields of the wrong type, or was written with another format version
    """
    try:
        raw = base64.b64decode(token, altchars=b"-_", validate=True)
        payload = json_util.loads(raw.decode("utf-8"), json_options=RELAXED_JSON_OPTIONS)
    except (binascii.Error, UnicodeDecodeError, ValueError, TypeError, KeyError, InvalidId) as e:
        raise InvalidPageTokenError(
            f"Malformed page token: {e}", token=token, reason="decode"
        ) from e

    if not isinstance(payload, dict):
        raise InvalidPageTokenError(
            "Malformed page token: payload is not an object", token=token, reason="decode"
        )

    version = payload.get("v")
    if version != CURSOR_FORMAT_VERSION:
        raise InvalidPageTokenError(
            f"Unsupported page token version: {version!r}",
            token=token,
            reason="version",
        )

    try:
        return PageCursor.model_validate(payload)
    except ValidationError as e:
        raise InvalidPageTokenError(
            f"Malformed page token: {e.error_count()} invalid field(s)",
            token=token,
            reason="schema",
        ) from e
