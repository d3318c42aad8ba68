"""Backend modules package.

이 패키지는 4자리 ID 기반 통화 시그널링 릴레이의 핵심 모듈을 포함합니다.

Modules:
    signaling: ID 레지스트리, 통화 시그널링 릴레이, 연결 래퍼, 설정
"""

from .signaling import (
    CallRelay,
    ClientConnection,
    IdentityRegistry,
    RegisterResult,
)


__all__ = [
    # Signaling
    "CallRelay",
    "ClientConnection",
    "IdentityRegistry",
    "RegisterResult",
]
