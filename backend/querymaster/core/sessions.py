import logging
import uuid
from collections import OrderedDict
from typing import Callable, Optional

from .controller import InteractionController

logger = logging.getLogger("querymaster.sessions")


class SessionStore:
    """Keeps one controller per browser session, oldest evicted first."""

    def __init__(self, factory: Callable[[], InteractionController], *, max_entries: int = 256) -> None:
        self._factory = factory
        self._store: "OrderedDict[str, InteractionController]" = OrderedDict()
        self._max_entries = max_entries

    def create(self) -> tuple[str, InteractionController]:
        session_id = uuid.uuid4().hex
        controller = self._factory()
        self._store[session_id] = controller
        while len(self._store) > self._max_entries:
            evicted, _ = self._store.popitem(last=False)
            logger.info(f"Evicted session={evicted}")
        logger.debug(f"Created session={session_id} ({len(self._store)} active)")
        return session_id, controller

    def get(self, session_id: str) -> Optional[InteractionController]:
        return self._store.get(session_id)

    def pop(self, session_id: str) -> Optional[InteractionController]:
        return self._store.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._store
