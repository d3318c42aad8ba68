"""WebRTC 통화 시그널링 WebSocket 라우터.

ID 등록, 온라인 사용자 목록, 통화 요청/수락/거절/종료,
offer/answer/ICE candidate 전달을 위한 WebSocket 엔드포인트를 제공합니다.
"""

import asyncio
import json
import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from modules.signaling import CallRelay, ClientConnection, relay_config
from modules.signaling import messages

logger = logging.getLogger(__name__)

router = APIRouter()

# 글로벌 릴레이 참조 (app.py에서 설정됨)
_relay: Optional[CallRelay] = None


def init_relay(relay: CallRelay):
    """릴레이 인스턴스를 초기화합니다.

    app.py에서 호출하여 글로벌 릴레이 참조를 설정합니다.
    테스트에서는 새 인스턴스로 교체할 수 있습니다.

    Args:
        relay: CallRelay 인스턴스
    """
    global _relay
    _relay = relay
    logger.info("시그널링 라우터 릴레이 초기화 완료")


def get_relay() -> Optional[CallRelay]:
    """현재 릴레이를 반환합니다."""
    return _relay


@router.get("/api/online-users")
async def get_online_users():
    """현재 온라인 ID 목록을 조회합니다.

    Returns:
        dict: 정렬된 ID 리스트 ({"users": [...]})
    """
    if _relay is None:
        return {"users": []}
    return {"users": _relay.registry.current_identities()}


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """통화 시그널링을 위한 WebSocket 엔드포인트.

    모든 프레임은 ``{"type": ..., "data": {...}}`` JSON 객체입니다.
    바이너리 프레임은 UTF-8 JSON으로 해석합니다. 파싱 실패는 error-msg로
    응답하고 연결은 유지합니다.

    Args:
        websocket: FastAPI WebSocket 연결 객체
    """
    relay = _relay
    if relay is None:
        logger.error("릴레이가 초기화되지 않음")
        await websocket.close(code=1011, reason="Server not ready")
        return

    await websocket.accept()

    connection = ClientConnection(websocket, queue_size=relay_config.SEND_QUEUE_SIZE)
    sender_task = asyncio.create_task(connection.run_sender())
    await relay.connect(connection)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))

            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            try:
                data = json.loads(raw)
            except ValueError:
                connection.send(messages.ERROR_MSG, message=messages.MSG_INVALID_JSON)
                continue

            await relay.handle_message(connection, data)

    except WebSocketDisconnect:
        logger.debug(f"{connection!r} WebSocket 연결 종료")
    except Exception as e:
        logger.error(f"{connection!r} WebSocket 처리 중 오류: {e}", exc_info=True)
        try:
            await websocket.close(code=1011)
        except RuntimeError as close_error:
            logger.debug(f"{connection!r} 소켓 닫기 실패: {close_error}")
    finally:
        await relay.disconnect(connection)
        pending = connection.close()
        if pending:
            logger.debug(f"{connection!r} 미전송 메시지 {pending}개 폐기")
        sender_task.cancel()
