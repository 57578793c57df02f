"""
Notifications emitted by resolution and spoofing, for callers to render.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

REQUEST_SENT = "request_sent"
REPLY_MATCHED = "reply_matched"
FRAME_FORGED = "frame_forged"
RESTORED = "restored"
CYCLE_FAILED = "cycle_failed"


@dataclass
class Notification:
    """A single observable action"""
    kind: str
    address: Optional[object] = None
    hardware_address: Optional[object] = None
    detail: str = ""
    timestamp: datetime = field(default_factory=datetime.now)


class EventDispatcher:
    """Fans notifications out to callbacks registered per event kind, or '*' for all."""

    def __init__(self):
        self._callbacks: Dict[str, List[Callable[[Notification], None]]] = defaultdict(list)

    def register_callback(self, event: str, callback: Callable[[Notification], None]):
        """Register a callback for an event kind"""
        self._callbacks[event].append(callback)

    def unregister_callback(self, event: str, callback: Callable[[Notification], None]):
        if callback in self._callbacks.get(event, []):
            self._callbacks[event].remove(callback)

    def emit(self, kind: str, address=None, hardware_address=None, detail: str = "") -> Notification:
        notification = Notification(kind, address, hardware_address, detail)
        logger.debug("%s %s -> %s %s", kind, address, hardware_address, detail)
        for callback in self._callbacks.get(kind, []) + self._callbacks.get('*', []):
            try:
                callback(notification)
            except Exception as e:
                logger.warning("Callback error on %s: %s", kind, e)
        return notification
