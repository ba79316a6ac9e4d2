"""Root logger setup for applications that embed the vault client.

The library itself only creates module loggers. ``AppController.from_settings``
calls :func:`configure_logging` when ``SettingsConfig.log_level`` is set
(``GOALVAULT_LOG_LEVEL``); otherwise the host application's logging is left
untouched.
"""

from __future__ import annotations

import logging
from typing import Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
# web3 and urllib3 log every RPC round trip at DEBUG
TRANSPORT_LOGGERS = ("urllib3", "web3")


def level_from_name(value: Union[int, str]) -> int:
    """Resolve ``"debug"``, ``"WARNING"`` or ``"10"`` to a numeric level."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    text = str(value).strip().upper()
    if text.isdigit():
        return int(text)
    level = logging.getLevelName(text)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {value!r}")
    return level


def configure_logging(level: Union[int, str] = logging.INFO) -> int:
    """Attach one stream handler to the root logger and apply ``level``.

    Transport loggers follow the root level only at DEBUG and stay at
    WARNING otherwise. Returns the numeric level applied.
    """
    effective = level_from_name(level)
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        root.addHandler(handler)
    root.setLevel(effective)
    transport_level = effective if effective <= logging.DEBUG else logging.WARNING
    for name in TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)
    return effective


__all__ = ["LOG_FORMAT", "TRANSPORT_LOGGERS", "configure_logging", "level_from_name"]
