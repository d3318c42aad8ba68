"""1:1 통화 시그널링 릴레이 모듈.

레지스트리 위에서 동작하는 메시지 라우터입니다. 발신자 ID를 확인하고
대상 ID를 연결로 변환해 타입별 시그널링 메시지를 전달합니다.
offer/answer/ICE candidate 페이로드는 해석하지 않고 그대로 넘깁니다.

처리하는 메시지 타입:
    - register: ID 등록 (+ presence 브로드캐스트)
    - call-user: 통화 요청 (대상 오프라인이면 user-offline 응답)
    - call-accept / call-reject: 통화 수락 / 거절
    - offer / answer / ice-candidate: WebRTC 협상 데이터 전달
    - end-call: 통화 종료

Note:
    릴레이는 통화 상태를 저장하지 않습니다. call-user를 제외한 모든
    메시지는 대상이 없으면 조용히 버려지며, 순서가 맞지 않는 메시지
    (offer 없는 answer 등)도 그대로 전달됩니다.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import ValidationError

from . import messages as m
from .config import relay_config, RelayConfig
from .connection import ClientConnection
from .registry import IdentityRegistry

logger = logging.getLogger(__name__)

Handler = Callable[[ClientConnection, dict], Awaitable[None]]


class CallRelay:
    """시그널링 이벤트를 처리하는 릴레이.

    Attributes:
        registry (IdentityRegistry): ID ↔ 연결 레지스트리
        clients (Dict[str, ClientConnection]): 접속 중인 모든 연결
            (등록 여부와 무관, presence 브로드캐스트 대상)

    Examples:
        >>> relay = CallRelay()
        >>> await relay.connect(connection)
        >>> await relay.handle_message(connection, {"type": "register", "data": {"userId": "1111"}})
    """

    def __init__(self, registry: Optional[IdentityRegistry] = None, config: RelayConfig = relay_config):
        self.registry = registry if registry is not None else IdentityRegistry()
        self.config = config
        self.clients: Dict[str, ClientConnection] = {}

        self._handlers: Dict[str, Handler] = {
            m.REGISTER: self.register,
            m.CALL_USER: self.call_user,
            m.CALL_ACCEPT: self.accept_call,
            m.CALL_REJECT: self.reject_call,
            m.OFFER: self.relay_offer,
            m.ANSWER: self.relay_answer,
            m.ICE_CANDIDATE: self.relay_candidate,
            m.END_CALL: self.end_call,
        }

    # ------------------------------------------------------------
    # 연결 수명주기
    # ------------------------------------------------------------

    async def connect(self, connection: ClientConnection) -> None:
        self.clients[connection.connection_id] = connection
        logger.info(f"연결됨: {connection!r} (접속 {len(self.clients)}개)")

    async def disconnect(self, connection: ClientConnection) -> Optional[str]:
        """연결 종료 처리.

        연결을 추적 목록에서 제거하고 ID를 해제합니다. ID가 실제로
        해제된 경우에만 presence를 브로드캐스트합니다.

        Returns:
            Optional[str]: 해제된 ID
        """
        self.clients.pop(connection.connection_id, None)
        user_id = await self.registry.unregister_by_connection(connection)
        if user_id is not None:
            self.broadcast_presence()
        logger.info(f"연결 끊김: {connection!r} userId: {user_id}")
        return user_id

    # ------------------------------------------------------------
    # 디스패치
    # ------------------------------------------------------------

    async def handle_message(self, connection: ClientConnection, message: Any) -> None:
        """수신 프레임 하나를 처리합니다.

        Args:
            connection: 발신 연결
            message: 디코딩된 JSON 값 ({"type": ..., "data": {...}})
        """
        try:
            envelope = m.Envelope.model_validate(message)
        except ValidationError:
            connection.send(m.ERROR_MSG, message=m.MSG_MALFORMED)
            return

        handler = self._handlers.get(envelope.type)
        if handler is None:
            logger.warning(f"알 수 없는 메시지 타입: {envelope.type}")
            connection.send(m.ERROR_MSG, message=f"Unknown event: {envelope.type}")
            return

        await handler(connection, envelope.data)

    def broadcast_presence(self) -> List[str]:
        """접속 중인 모든 연결에 온라인 ID 목록을 전송합니다."""
        users = self.registry.current_identities()
        for client in list(self.clients.values()):
            client.send(m.ONLINE_USERS, users=users)
        logger.debug(f"presence 브로드캐스트: {users} -> {len(self.clients)}개 연결")
        return users

    # ------------------------------------------------------------
    # 등록
    # ------------------------------------------------------------

    async def register(self, connection: ClientConnection, data: dict) -> None:
        payload = m.RegisterPayload.model_validate(data)
        result = await self.registry.register(payload.user_id, connection)

        if not result.success:
            connection.send(m.REGISTER_ERROR, message=result.error)
            return

        connection.send(m.REGISTERED, userId=result.user_id)
        if result.changed:
            self.broadcast_presence()

    # ------------------------------------------------------------
    # 통화
    # ------------------------------------------------------------

    async def call_user(self, connection: ClientConnection, data: dict) -> None:
        """통화 요청.

        발신자에게 결과를 알려주는 유일한 통화 이벤트입니다.
        """
        from_user_id = self.registry.identity_of(connection)
        payload = m.TargetPayload.model_validate(data)
        to_user_id = payload.to_user_id

        if not from_user_id:
            connection.send(m.CALL_ERROR, message=m.MSG_REGISTER_FIRST)
            return
        if not m.is_valid_user_id(to_user_id):
            connection.send(m.CALL_ERROR, message=m.MSG_INVALID_TARGET)
            return
        if to_user_id == from_user_id:
            connection.send(m.CALL_ERROR, message=m.MSG_CALL_SELF)
            return

        target = self.registry.resolve(to_user_id)
        if target is None:
            logger.info(f"통화 요청 {from_user_id} -> {to_user_id}: 대상 오프라인")
            connection.send(m.USER_OFFLINE, toUserId=to_user_id)
            return

        target.send(m.INCOMING_CALL, fromUserId=from_user_id)
        connection.send(m.CALLING, toUserId=to_user_id)
        logger.info(f"통화 요청 {from_user_id} -> {to_user_id}")

    async def accept_call(self, connection: ClientConnection, data: dict) -> None:
        payload = m.TargetPayload.model_validate(data)
        self._forward(connection, m.CALL_ACCEPT, payload.to_user_id,
                      lambda by: (m.CALL_ACCEPTED, {"by": by}))

    async def reject_call(self, connection: ClientConnection, data: dict) -> None:
        payload = m.RejectPayload.model_validate(data)
        reason = self.config.DEFAULT_REJECT_REASON if payload.reason is None else payload.reason
        self._forward(connection, m.CALL_REJECT, payload.to_user_id,
                      lambda by: (m.CALL_REJECTED, {"by": by, "reason": reason}))

    async def relay_offer(self, connection: ClientConnection, data: dict) -> None:
        payload = m.OfferPayload.model_validate(data)
        self._forward(connection, m.OFFER, payload.to_user_id,
                      lambda sender: (m.OFFER, {"fromUserId": sender, "offer": payload.offer}))

    async def relay_answer(self, connection: ClientConnection, data: dict) -> None:
        payload = m.AnswerPayload.model_validate(data)
        self._forward(connection, m.ANSWER, payload.to_user_id,
                      lambda sender: (m.ANSWER, {"fromUserId": sender, "answer": payload.answer}))

    async def relay_candidate(self, connection: ClientConnection, data: dict) -> None:
        payload = m.CandidatePayload.model_validate(data)
        self._forward(connection, m.ICE_CANDIDATE, payload.to_user_id,
                      lambda sender: (m.ICE_CANDIDATE, {"fromUserId": sender, "candidate": payload.candidate}))

    async def end_call(self, connection: ClientConnection, data: dict) -> None:
        payload = m.TargetPayload.model_validate(data)
        self._forward(connection, m.END_CALL, payload.to_user_id,
                      lambda by: (m.CALL_ENDED, {"by": by}))

    def _forward(
        self,
        connection: ClientConnection,
        event: str,
        to_user_id: str,
        build: Callable[[str], tuple],
    ) -> bool:
        """통화 중 메시지를 대상에게 전달합니다.

        발신자가 미등록이거나 대상이 없으면 조용히 버립니다.
        """
        from_user_id = self.registry.identity_of(connection)
        if not from_user_id:
            logger.warning(f"미등록 연결 {connection!r}의 '{event}' 드롭")
            return False

        target = self.registry.resolve(to_user_id)
        if target is None:
            logger.debug(f"'{event}' {from_user_id} -> {to_user_id}: 대상 없음, 드롭")
            return False

        out_event, out_data = build(from_user_id)
        target.send(out_event, **out_data)
        logger.debug(f"'{out_event}' 전달: {from_user_id} -> {to_user_id}")
        return True
