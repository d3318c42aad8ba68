"""시그널링 와이어 메시지 정의.

모든 프레임은 ``{"type": <event>, "data": {...}}`` 형태의 JSON 객체입니다.
수신 페이로드는 pydantic 모델로 검증하고, 송신 메시지는 ``make_message``로
만듭니다. offer/answer/candidate 페이로드는 해석하지 않고 그대로 전달합니다.
"""

import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

USER_ID_PATTERN = re.compile(r"^[0-9]{4}$")


# 클라이언트 → 릴레이
REGISTER = "register"
CALL_USER = "call-user"
CALL_ACCEPT = "call-accept"
CALL_REJECT = "call-reject"
OFFER = "offer"
ANSWER = "answer"
ICE_CANDIDATE = "ice-candidate"
END_CALL = "end-call"

# 릴레이 → 클라이언트
REGISTERED = "registered"
REGISTER_ERROR = "register-error"
CALL_ERROR = "call-error"
ERROR_MSG = "error-msg"
ONLINE_USERS = "online-users"
INCOMING_CALL = "incoming-call"
CALLING = "calling"
USER_OFFLINE = "user-offline"
CALL_ACCEPTED = "call-accepted"
CALL_REJECTED = "call-rejected"
CALL_ENDED = "call-ended"

# 에러 메시지
MSG_INVALID_ID = "ID must be exactly 4 digits (0000-9999)"
MSG_ID_IN_USE = "This ID is already in use. Choose another."
MSG_REGISTER_FIRST = "Register your ID first."
MSG_INVALID_TARGET = "Target ID must be 4 digits."
MSG_CALL_SELF = "You cannot call yourself."
MSG_INVALID_JSON = "Invalid JSON"
MSG_MALFORMED = "Malformed message"


def normalize_user_id(value: Any) -> str:
    """클라이언트가 보낸 ID를 문자열로 정규화합니다.

    None은 빈 문자열이 되고, 정수값 float(1234.0)은 "1234"로, 그 외 값은
    문자열로 변환한 뒤 앞뒤 공백을 제거합니다.
    """
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def is_blank(value: Any) -> bool:
    """JavaScript의 falsy 값 (null, false, 0, NaN, 빈 문자열) 여부."""
    if value is None or value is False or value == "":
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0 or value != value
    return False


def is_valid_user_id(user_id: str) -> bool:
    """4자리 숫자 ID 여부."""
    return bool(USER_ID_PATTERN.fullmatch(user_id))


def make_message(event: str, **data: Any) -> dict:
    """송신용 메시지 봉투를 만듭니다."""
    return {"type": event, "data": data}


class _Payload(BaseModel):
    """수신 페이로드 공통 설정."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Envelope(BaseModel):
    """모든 수신 프레임의 봉투."""

    type: str
    data: dict = Field(default_factory=dict)

    @field_validator("data", mode="before")
    @classmethod
    def _default_data(cls, value: Any) -> Any:
        return {} if value is None else value


class RegisterPayload(_Payload):
    """register { userId }"""

    user_id: str = Field(default="", alias="userId")

    @field_validator("user_id", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> str:
        return normalize_user_id(value)


class TargetPayload(_Payload):
    """대상 ID를 가진 페이로드 (call-user, call-accept, end-call)."""

    to_user_id: str = Field(default="", alias="toUserId")

    @field_validator("to_user_id", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> str:
        return normalize_user_id(value)


class RejectPayload(TargetPayload):
    """call-reject { toUserId, reason? }"""

    reason: Optional[Any] = None

    @field_validator("reason", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Optional[Any]:
        return None if is_blank(value) else value


class OfferPayload(TargetPayload):
    """offer { toUserId, offer }"""

    offer: Any = None


class AnswerPayload(TargetPayload):
    """answer { toUserId, answer }"""

    answer: Any = None


class CandidatePayload(TargetPayload):
    """ice-candidate { toUserId, candidate }"""

    candidate: Any = None
