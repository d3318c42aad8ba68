"""클라이언트 연결 래퍼.

WebSocket 하나를 감싸고, 송신을 큐에 넣어 즉시 반환하는 fire-and-forget
방식으로 처리합니다. 느리거나 끊긴 피어가 다른 연결의 이벤트 처리를
막지 않도록 실제 전송은 연결마다 하나씩 도는 송신 태스크가 담당합니다.
"""

import asyncio
import logging
import uuid
from typing import Any

from fastapi import WebSocket

from .messages import make_message

logger = logging.getLogger(__name__)


class ClientConnection:
    """하나의 라이브 WebSocket 세션.

    Attributes:
        connection_id (str): 프로세스 내 고유한 임시 식별자 (UUID)
        websocket (WebSocket): 실제 전송 채널

    Examples:
        >>> connection = ClientConnection(websocket, queue_size=64)
        >>> task = asyncio.create_task(connection.run_sender())
        >>> connection.send("registered", userId="1234")
        True
    """

    def __init__(self, websocket: WebSocket, queue_size: int = 256):
        self.connection_id = str(uuid.uuid4())
        self.websocket = websocket
        self._outbox: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event: str, **data: Any) -> bool:
        """메시지를 송신 큐에 넣습니다.

        블로킹하지 않으며, 닫힌 연결이거나 큐가 가득 찬 경우 메시지를
        버리고 False를 반환합니다.
        """
        if self._closed:
            logger.debug(f"닫힌 연결 {self.connection_id[:8]}로의 '{event}' 드롭")
            return False
        try:
            self._outbox.put_nowait(make_message(event, **data))
        except asyncio.QueueFull:
            logger.warning(f"연결 {self.connection_id[:8]} 송신 큐 가득 참, '{event}' 드롭")
            return False
        return True

    async def run_sender(self) -> None:
        """송신 큐를 비우며 WebSocket으로 전송합니다.

        전송 실패 시 연결을 닫힌 상태로 표시하고 종료합니다. 레지스트리
        정리는 전송 계층이 연결 종료를 보고할 때 수행됩니다.
        """
        while not self._closed:
            message = await self._outbox.get()
            try:
                await self.websocket.send_json(message)
            except Exception as e:
                logger.warning(f"연결 {self.connection_id[:8]} 전송 실패: {e}")
                self._closed = True

    def close(self) -> int:
        """연결을 닫힌 상태로 표시하고 전송되지 못한 메시지 수를 반환합니다."""
        self._closed = True
        return self._outbox.qsize()

    def __repr__(self) -> str:
        return f"ClientConnection({self.connection_id[:8]})"
