"""
Value Codec

Values are stored as JSON text. Encoding is strict, decoding is soft:
a store miss or a payload that is not valid JSON both decode to None.
"""

import json
import logging
from typing import Any, Optional

from ..exceptions import SerializationError

logger = logging.getLogger(__name__)


def encode(value: Any) -> str:
    """
    Serialize value to JSON text.

    Raises:
        SerializationError: value is not JSON representable
    """
    try:
        return json.dumps(value, separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Cannot encode {type(value).__name__}: {e}")


def decode(text: Optional[str]) -> Any:
    """Deserialize JSON text; None for a miss or malformed payload."""
    if text is None:
        return None
    try:
        return json.loads(text)
    except (TypeError, ValueError) as e:
        logger.debug(f"Discarding undecodable payload: {e}")
        return None
