"""
County Directory Backend: Structured Field Decoding
=====================================================

What:  Decodes `companies` / `robots` values that arrive as JSON text.
Who:   CountyService, for both create and update payloads.

Multipart clients send structured values as JSON.stringify'd text. A value
that cannot be decoded is replaced with an empty default instead of failing
the request; the outcome says which of the two happened.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecodeResult:
    """
    Outcome of decoding one field.

    Either `decoded` (value came from the client, parsed if it was text)
    or `fallback` (text could not be parsed; value is the empty default).
    """

    value: Any
    fell_back: bool = False
    error: Optional[str] = None

    @property
    def decoded(self) -> bool:
        return not self.fell_back


def decode_structured(
    raw: Any,
    default_factory: Callable[[], Any],
    field: str,
) -> DecodeResult:
    """
    Decode `raw` if it is text, pass it through otherwise.

    Args:
        raw: Value as received in the request body
        default_factory: Builds the fallback value (list or dict)
        field: Field name, used for logging only

    Returns:
        DecodeResult; never raises for undecodable text.
    """
    if not isinstance(raw, (str, bytes)):
        return DecodeResult(value=raw)

    try:
        return DecodeResult(value=json.loads(raw))
    except ValueError as e:
        logger.warning("Could not decode '%s' as JSON, using empty default: %s", field, e)
        return DecodeResult(value=default_factory(), fell_back=True, error=str(e))


def decode_companies(raw: Any) -> DecodeResult:
    return decode_structured(raw, list, "companies")


def decode_robots(raw: Any) -> DecodeResult:
    return decode_structured(raw, dict, "robots")
