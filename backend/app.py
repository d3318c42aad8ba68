"""FastAPI Call Signaling Relay.

이 모듈은 4자리 ID 기반 1:1 WebRTC 통화를 위한 시그널링 서버를
제공합니다. FastAPI와 WebSocket을 사용하여 클라이언트 간 통화 협상
메시지를 중계합니다.

주요 기능:
    - 4자리 ID 등록 및 온라인 사용자 목록 브로드캐스트
    - 통화 요청/수락/거절/종료 중계
    - WebRTC offer/answer/ICE candidate 전달 (페이로드는 해석하지 않음)
    - 정적 클라이언트 파일 제공 (CLIENT_DIR 존재 시)
    - CORS 설정을 통한 크로스 오리진 요청 지원

Architecture:
    - IdentityRegistry: ID ↔ 연결 상태 관리
    - CallRelay: 메시지 라우팅, presence 브로드캐스트
    - WebSocket: 실시간 시그널링 메시지 전송
"""
import logging
from contextlib import asynccontextmanager
import os
from datetime import datetime, timedelta
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from modules import CallRelay, IdentityRegistry
from modules.signaling import server_config
from routes import health_router, signaling_router, init_relay, get_relay
from dotenv import load_dotenv
from pathlib import Path

# 환경변수 로드 from config/.env
load_dotenv(Path(__file__).parent / "config" / ".env")


# 환경별 로그 레벨 설정 (환경변수로 제어)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR", "logs")

# 로그 보관 기간 (일) - 기본 60일 (2개월)
LOG_RETENTION_DAYS = int(os.getenv("LOG_RETENTION_DAYS", "60"))


def cleanup_old_logs(log_dir: str = LOG_DIR, retention_days: int = LOG_RETENTION_DAYS) -> int:
    """오래된 로그 파일을 삭제합니다.

    Args:
        log_dir: 로그 디렉토리 경로
        retention_days: 보관 기간 (일)

    Returns:
        삭제된 파일 수
    """
    log_path = Path(log_dir)
    if not log_path.is_dir():
        return 0

    cutoff_date = datetime.now() - timedelta(days=retention_days)
    deleted_count = 0

    for log_file in log_path.glob("server_*.log"):
        try:
            date_str = log_file.stem.replace("server_", "")
            file_date = datetime.strptime(date_str, "%Y%m%d")

            if file_date < cutoff_date:
                log_file.unlink()
                deleted_count += 1
        except (ValueError, OSError):
            continue

    return deleted_count


def setup_logging() -> None:
    """콘솔 + 일별 파일 로깅을 설정합니다."""
    os.makedirs(LOG_DIR, exist_ok=True)
    log_filename = os.path.join(LOG_DIR, f"server_{datetime.now().strftime('%Y%m%d')}.log")

    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(),  # 콘솔 출력
            logging.FileHandler(log_filename, encoding="utf-8"),  # 파일 저장
        ]
    )


setup_logging()
logger = logging.getLogger(__name__)
logger.info(f"로깅 초기화 완료: level={LOG_LEVEL}, env={server_config.ENV}")


# 글로벌 릴레이 인스턴스
registry = IdentityRegistry()
relay = CallRelay(registry)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI 앱의 생명주기를 관리하는 컨텍스트 매니저.

    시작 시 오래된 로그를 정리하고, 종료 시 남아 있는 연결의
    송신 큐를 닫습니다.

    Args:
        app (FastAPI): FastAPI 애플리케이션 인스턴스

    Yields:
        None: 앱이 실행되는 동안 제어를 반환
    """
    logger.info("시그널링 릴레이 서버 시작 중...")

    deleted_logs = cleanup_old_logs()
    if deleted_logs > 0:
        logger.info(f"오래된 로그 파일 {deleted_logs}개 정리 완료 ({LOG_RETENTION_DAYS}일 이상)")

    yield

    logger.info("서버 종료 중...")
    current = get_relay()
    if current is not None:
        for client in list(current.clients.values()):
            client.close()
        logger.info(f"연결 {len(current.clients)}개 정리 완료")


app = FastAPI(title="Call Signaling Relay", lifespan=lifespan)

# CORS - 기본은 모든 origin 허용
_allow_all = "*" in server_config.CORS_ORIGINS
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(server_config.CORS_ORIGINS),
    allow_credentials=not _allow_all,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 라우터 등록
app.include_router(health_router)
app.include_router(signaling_router)

# WebSocket 시그널링 라우터에 릴레이 인스턴스 전달
init_relay(relay)

# 정적 클라이언트 (API 라우트보다 뒤에 마운트)
if server_config.serve_client:
    app.mount("/", StaticFiles(directory=server_config.CLIENT_DIR, html=True), name="client")
    logger.info(f"정적 클라이언트 제공: {server_config.CLIENT_DIR}")


def main():
    """uvicorn으로 서버를 실행합니다 (HOST/PORT 환경변수)."""
    import uvicorn
    logger.info(f"Open http://localhost:{server_config.PORT}")
    uvicorn.run(app, host=server_config.HOST, port=server_config.PORT, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
