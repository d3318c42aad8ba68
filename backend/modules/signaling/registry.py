"""식별자 레지스트리 모듈.

4자리 숫자 ID와 라이브 연결 사이의 양방향 매핑을 관리합니다.
누가 온라인인지에 대한 유일한 기준이며, ID 유일성을 보장합니다.

주요 기능:
    - ID 등록 (형식 검증, 중복 거부, 동일 연결 재등록은 멱등)
    - ID → 연결 조회
    - 연결 종료 시 ID 해제
    - 정렬된 온라인 ID 스냅샷 (presence 브로드캐스트용)

Architecture:
    - users: Dict[str, ClientConnection] - ID → 연결
    - sockets: Dict[str, str] - connection_id → ID (역 매핑)

충돌 정책:
    이미 다른 연결이 사용 중인 ID를 등록하려 하면 요청한 쪽을 거부하고
    기존 바인딩은 그대로 둡니다.

Examples:
    >>> registry = IdentityRegistry()
    >>> result = await registry.register("1234", connection)
    >>> result.success, result.changed
    (True, True)
    >>> registry.current_identities()
    ['1234']

See Also:
    relay.py: 레지스트리 위에서 동작하는 시그널링 릴레이
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .connection import ClientConnection
from .messages import MSG_ID_IN_USE, MSG_INVALID_ID, is_valid_user_id, normalize_user_id

logger = logging.getLogger(__name__)


@dataclass
class RegisterResult:
    """등록 결과.

    Attributes:
        success (bool): 등록 성공 여부
        user_id (str): 정규화된 ID
        error (Optional[str]): 실패 시 클라이언트에 보낼 메시지
        changed (bool): 레지스트리 멤버십이 바뀌었는지 여부
            (False면 presence 브로드캐스트 불필요)
        released (Optional[str]): 같은 연결이 이전에 갖고 있다가 해제된 ID
    """
    success: bool
    user_id: str
    error: Optional[str] = None
    changed: bool = False
    released: Optional[str] = None


class IdentityRegistry:
    """ID ↔ 연결 양방향 레지스트리.

    두 매핑은 항상 하나의 락 안에서 함께 변경되므로 ``resolve``와
    역 매핑이 서로 어긋나는 상태가 생기지 않습니다. 어떤 입력에도
    예외를 밖으로 던지지 않고 결과 값으로 성공/실패를 표현합니다.

    Attributes:
        users (Dict[str, ClientConnection]): ID → 연결
        sockets (Dict[str, str]): connection_id → ID
    """

    def __init__(self):
        # userId -> connection
        self.users: Dict[str, ClientConnection] = {}

        # connection_id -> userId
        self.sockets: Dict[str, str] = {}

        self._lock = asyncio.Lock()

    async def register(self, user_id: Any, connection: ClientConnection) -> RegisterResult:
        """연결에 ID를 바인딩합니다.

        Args:
            user_id: 클라이언트가 요청한 ID (문자열로 정규화됨)
            connection: 요청한 연결

        Returns:
            RegisterResult: 등록 결과

        Note:
            - 형식이 잘못된 ID는 상태를 바꾸지 않고 실패
            - 다른 연결이 쓰는 ID면 실패 (기존 연결 유지)
            - 같은 연결이 같은 ID를 다시 등록하면 changed=False로 성공
            - 같은 연결이 다른 ID를 등록하면 이전 ID는 해제됨
        """
        user_id = normalize_user_id(user_id)
        if not is_valid_user_id(user_id):
            return RegisterResult(success=False, user_id=user_id, error=MSG_INVALID_ID)

        async with self._lock:
            existing = self.users.get(user_id)
            if existing is not None and existing.connection_id != connection.connection_id:
                logger.info(f"ID '{user_id}' 등록 거부: 이미 {existing!r}가 사용 중")
                return RegisterResult(success=False, user_id=user_id, error=MSG_ID_IN_USE)

            if existing is not None:
                return RegisterResult(success=True, user_id=user_id)

            released = self.sockets.get(connection.connection_id)
            if released is not None:
                del self.users[released]

            self.users[user_id] = connection
            self.sockets[connection.connection_id] = user_id

        if released:
            logger.info(f"{connection!r} ID 변경: '{released}' -> '{user_id}'")
        else:
            logger.info(f"{connection!r} ID '{user_id}' 등록. 온라인 {len(self.users)}명")
        return RegisterResult(success=True, user_id=user_id, changed=True, released=released)

    def resolve(self, user_id: Any) -> Optional[ClientConnection]:
        """ID로 연결을 조회합니다. 없으면 None."""
        return self.users.get(normalize_user_id(user_id))

    def identity_of(self, connection: ClientConnection) -> Optional[str]:
        """연결에 바인딩된 ID를 조회합니다. 없으면 None."""
        return self.sockets.get(connection.connection_id)

    async def unregister_by_connection(self, connection: ClientConnection) -> Optional[str]:
        """연결이 가진 ID를 해제합니다.

        Args:
            connection: 종료된 연결

        Returns:
            Optional[str]: 해제된 ID. 연결이 ID를 갖고 있지 않았으면 None
        """
        async with self._lock:
            user_id = self.sockets.pop(connection.connection_id, None)
            if user_id is not None and self.users.get(user_id) is connection:
                del self.users[user_id]

        if user_id is not None:
            logger.info(f"{connection!r} ID '{user_id}' 해제. 온라인 {len(self.users)}명")
        return user_id

    def current_identities(self) -> List[str]:
        """정렬된 온라인 ID 목록."""
        return sorted(self.users)

    def __len__(self) -> int:
        return len(self.users)

    def __contains__(self, user_id: object) -> bool:
        return normalize_user_id(user_id) in self.users
