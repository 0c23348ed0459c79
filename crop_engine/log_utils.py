from __future__ import annotations

import logging
import time

_LAST: dict[str, float] = {}
_MAX_CODES = 1024


def warn_once(logger: logging.Logger, code: str, message: str, *args, window: int = 60) -> bool:
    """Log a warning once per time window for a given code.

    Returns ``True`` when the warning was emitted. The cache is capped and the
    oldest entries are discarded so many unique codes cannot grow it forever.
    """
    now = time.monotonic()
    last = _LAST.get(code)
    if last is not None and now - last <= window:
        logger.debug(message, *args)
        return False
    if len(_LAST) >= _MAX_CODES:
        oldest = min(_LAST, key=_LAST.get)
        _LAST.pop(oldest, None)
    _LAST[code] = now
    logger.warning(message, *args)
    return True


def reset_warnings() -> None:
    _LAST.clear()
