"""Mention detection.

The server sends the mention list as a JSON-encoded array of user ids.
Decoding never fails: anything unusable is an empty list.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable

_LOGGER = logging.getLogger(__name__)


def parse_mention_list(raw: object) -> tuple[str, ...]:
    """Decode a transport mention list into user ids."""
    if raw is None or raw == "":
        return ()

    value = raw
    if isinstance(raw, (str, bytes)):
        try:
            value = json.loads(raw)
        except ValueError:
            _LOGGER.debug("Ignoring malformed mention list: %r", raw)
            return ()

    if not isinstance(value, (list, tuple)):
        _LOGGER.debug("Ignoring non-list mention list: %r", raw)
        return ()

    return tuple(str(user_id) for user_id in value if user_id)


def is_mentioned(mentions: Iterable[str], user_id: str) -> bool:
    """Check whether user_id is explicitly named in the mention list."""
    return user_id in set(mentions)
