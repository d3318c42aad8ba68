"""시그널링 모듈 설정.

서버 바인딩, CORS, 정적 클라이언트 경로, 릴레이 송신 큐 등
환경변수 기반 설정값.
"""

import os
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Tuple

# 환경변수 로드 (상위에서 이미 로드됨)
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_env_path = Path(__file__).parent.parent.parent / "config" / ".env"
load_dotenv(_env_path)

_default_client_dir = Path(__file__).parent.parent.parent.parent / "client"


def _parse_origins(value: str) -> Tuple[str, ...]:
    """쉼표로 구분된 origin 문자열을 튜플로 변환."""
    origins = tuple(o.strip() for o in value.split(",") if o.strip())
    return origins or ("*",)


# ============================================================
# 서버 설정
# ============================================================

@dataclass(frozen=True)
class ServerConfig:
    """HTTP/WebSocket 서버 설정."""

    # 바인딩 주소
    HOST: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))

    # 리슨 포트
    PORT: int = field(default_factory=lambda: int(os.getenv("PORT", "3000")))

    # 실행 환경 (development, production)
    ENV: str = field(default_factory=lambda: os.getenv("ENV", "development"))

    # CORS 허용 origin 목록
    CORS_ORIGINS: Tuple[str, ...] = field(
        default_factory=lambda: _parse_origins(os.getenv("CORS_ORIGINS", "*"))
    )

    # 정적 클라이언트 디렉토리
    CLIENT_DIR: Path = field(
        default_factory=lambda: Path(os.getenv("CLIENT_DIR", str(_default_client_dir)))
    )

    @property
    def serve_client(self) -> bool:
        """정적 클라이언트 디렉토리 존재 여부."""
        return self.CLIENT_DIR.is_dir()


# ============================================================
# 릴레이 설정
# ============================================================

@dataclass(frozen=True)
class RelayConfig:
    """시그널링 릴레이 설정."""

    # 연결당 송신 대기열 크기 (초과 시 메시지 드롭)
    SEND_QUEUE_SIZE: int = field(
        default_factory=lambda: int(os.getenv("SEND_QUEUE_SIZE", "256"))
    )

    # call-reject 에 reason 이 없을 때 사용할 기본값
    DEFAULT_REJECT_REASON: str = field(
        default_factory=lambda: os.getenv("DEFAULT_REJECT_REASON", "Rejected")
    )


# ============================================================
# 싱글톤 인스턴스
# ============================================================

server_config = ServerConfig()
relay_config = RelayConfig()


logger.debug(f"[Signaling Config] .env 경로: {_env_path} (존재: {_env_path.exists()})")
logger.debug(f"[Signaling Config] 포트: {server_config.PORT}, 송신 큐: {relay_config.SEND_QUEUE_SIZE}")
