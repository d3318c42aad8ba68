"""시그널링 모듈.

4자리 ID 기반 presence 레지스트리와 1:1 통화 시그널링 릴레이를 제공합니다.

Classes:
    IdentityRegistry: ID ↔ 연결 양방향 레지스트리
    RegisterResult: 등록 결과
    CallRelay: 시그널링 메시지 라우터
    ClientConnection: 논블로킹 송신 큐를 가진 WebSocket 래퍼

Config:
    server_config: 서버 바인딩/CORS/정적 파일 설정
    relay_config: 릴레이 설정
"""

from .connection import ClientConnection
from .registry import IdentityRegistry, RegisterResult
from .relay import CallRelay
from .config import (
    server_config,
    relay_config,
    ServerConfig,
    RelayConfig,
)

__all__ = [
    # Classes
    "ClientConnection",
    "IdentityRegistry",
    "RegisterResult",
    "CallRelay",
    # Config
    "server_config",
    "relay_config",
    "ServerConfig",
    "RelayConfig",
]
