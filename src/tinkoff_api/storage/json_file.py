"""
JSON file session storage.

File layout: a single JSON object keyed by phone number.

    {"+79990000000": {"id": "<sessionid>"}}

A missing file means no sessions. Storing None removes the phone's entry.
File access runs in a worker thread to keep the event loop free; one lock
per storage serializes the read-modify-write of all phones.
"""

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from ..services.exceptions import SessionStorageException
from ..services.session_cache import Session

logger = logging.getLogger(__name__)


class JsonFileSessionStorage:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()
        self._lock = asyncio.Lock()

    async def load_session(self, phone: str) -> Session | None:
        async with self._lock:
            contents = await asyncio.to_thread(self._read)
        data = contents.get(phone)
        if data is None:
            return None
        return Session.from_dict(data)

    async def update_session(self, phone: str, session: Session | None) -> None:
        async with self._lock:
            await asyncio.to_thread(self._update, phone, session)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists() or self.path.stat().st_size == 0:
            return {}

        try:
            with open(self.path, encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise SessionStorageException(f"Invalid JSON in sessions file {self.path}: {e}") from e

    def _update(self, phone: str, session: Session | None) -> None:
        contents = self._read()
        if session is None:
            contents.pop(phone, None)
        else:
            contents[phone] = session.to_dict()

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(contents, f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug(f"Sessions file updated: {self.path}")
