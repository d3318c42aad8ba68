"""공용 테스트 픽스처."""

import uuid
from typing import Any, List, Optional

import pytest

from modules.signaling import CallRelay, IdentityRegistry


class RecordingConnection:
    """송신 메시지를 기록하는 가짜 연결."""

    def __init__(self, name: str = ""):
        self.connection_id = name or str(uuid.uuid4())
        self.sent: List[dict] = []

    def send(self, event: str, **data: Any) -> bool:
        self.sent.append({"type": event, "data": data})
        return True

    def events(self, event: Optional[str] = None) -> List[dict]:
        """기록된 메시지 (event 지정 시 해당 타입만)."""
        if event is None:
            return list(self.sent)
        return [msg for msg in self.sent if msg["type"] == event]

    def types(self) -> List[str]:
        return [msg["type"] for msg in self.sent]

    def clear(self) -> None:
        self.sent.clear()

    def __repr__(self) -> str:
        return f"RecordingConnection({self.connection_id})"


@pytest.fixture
def registry():
    return IdentityRegistry()


@pytest.fixture
def relay(registry):
    return CallRelay(registry)


@pytest.fixture
def make_connection():
    def _make(name: str = "") -> RecordingConnection:
        return RecordingConnection(name)
    return _make
