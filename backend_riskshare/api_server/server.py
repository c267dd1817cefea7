"""
FastAPI server - point-to-point message store for sealed risk certificates.

    POST /{message_id}   store body (octet-stream), replacing any previous message
    GET  /{message_id}   return stored bytes, 404 if absent
    GET  /health

No authentication: payloads are encrypted for their recipient and message ids
are unguessable hashes of both public keys.
"""

from __future__ import annotations

import re
import threading
from pathlib import Path
from typing import Protocol

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import Response
from pydantic import BaseModel, Field

from backend_riskshare.config.settings import Settings
from backend_riskshare.core.files import atomic_write
from backend_riskshare.riskshare_logging import get_logger

logger = get_logger(__name__)

MESSAGE_ID_PATTERN = re.compile(r"^[0-9a-f]{64}$")
MAX_MESSAGE_BYTES = 4096
OCTET_STREAM = "application/octet-stream"


class MessageStore(Protocol):
    def put(self, message_id: str, payload: bytes) -> None: ...

    def get(self, message_id: str) -> bytes | None: ...


class MemoryMessageStore:
    def __init__(self) -> None:
        self._messages: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def put(self, message_id: str, payload: bytes) -> None:
        with self._lock:
            self._messages[message_id] = payload

    def get(self, message_id: str) -> bytes | None:
        with self._lock:
            return self._messages.get(message_id)


class DirectoryMessageStore:
    """One file per message id; writes replace the file atomically."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def put(self, message_id: str, payload: bytes) -> None:
        atomic_write(self.directory / message_id, payload)

    def get(self, message_id: str) -> bytes | None:
        try:
            return (self.directory / message_id).read_bytes()
        except FileNotFoundError:
            return None


def store_from_settings(settings: Settings) -> MessageStore:
    if settings.store_dir is not None:
        return DirectoryMessageStore(settings.store_dir)
    return MemoryMessageStore()


class StoreResponse(BaseModel):
    """POST /{message_id} response."""

    message_id: str = Field(..., description="Message id the payload was stored under")
    size: int = Field(..., ge=0, description="Stored payload size in bytes")


def _check_message_id(message_id: str) -> str:
    if not MESSAGE_ID_PATTERN.match(message_id):
        raise HTTPException(status_code=400, detail="message_id must be 64 lowercase hex characters")
    return message_id


def create_app(store: MessageStore | None = None) -> FastAPI:
    app = FastAPI(title="RiskShare message store", version="0.1.0")
    app.state.store = store if store is not None else MemoryMessageStore()

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/{message_id}", response_model=StoreResponse)
    async def store_message(message_id: str, request: Request) -> StoreResponse:
        _check_message_id(message_id)
        body = await request.body()
        if not body:
            raise HTTPException(status_code=400, detail="Empty body")
        if len(body) > MAX_MESSAGE_BYTES:
            raise HTTPException(status_code=413, detail=f"Body exceeds {MAX_MESSAGE_BYTES} bytes")
        request.app.state.store.put(message_id, body)
        logger.info("message_stored", message_id=message_id, size=len(body))
        return StoreResponse(message_id=message_id, size=len(body))

    @app.get("/{message_id}")
    def fetch_message(message_id: str, request: Request) -> Response:
        _check_message_id(message_id)
        payload = request.app.state.store.get(message_id)
        if payload is None:
            raise HTTPException(status_code=404, detail="Message not found")
        logger.debug("message_fetched", message_id=message_id, size=len(payload))
        return Response(content=payload, media_type=OCTET_STREAM)

    return app
