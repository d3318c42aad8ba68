"""Health Check API 라우터.

서비스 상태 확인을 위한 엔드포인트를 제공합니다.
"""

from fastapi import APIRouter

from .signaling import get_relay

router = APIRouter(prefix="/api/health", tags=["health"])

SERVICE_NAME = "Call Signaling Relay"


@router.get("")
async def health_check():
    """릴레이 상태를 확인합니다.

    Returns:
        dict: 서비스 상태와 접속/온라인 수
            - status (str): "ok" 또는 "not_ready"
            - online (int): 등록된 ID 수
            - connections (int): 접속 중인 연결 수
    """
    relay = get_relay()
    if relay is None:
        return {"status": "not_ready", "service": SERVICE_NAME, "online": 0, "connections": 0}

    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "online": len(relay.registry),
        "connections": len(relay.clients),
    }
