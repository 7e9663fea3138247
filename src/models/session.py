"""Request session context."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, model_validator

from src.utils.errors import PermissionDeniedError


class SessionRole(str, Enum):
    AGENT = "agent"
    BROKER = "broker"
    BUYER = "buyer"


class SessionContext(BaseModel):
    """
    Identity of the caller for one request.

    Passed explicitly into every service call that needs it. Brokers get a
    read-only view; buyers only ever reach their own buyer record.
    """
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    user_id: str
    role: SessionRole
    name: Optional[str] = None
    buyer_id: Optional[str] = None

    @model_validator(mode="after")
    def _buyer_session_has_buyer(self) -> "SessionContext":
        if self.role == SessionRole.BUYER.value and not self.buyer_id:
            raise ValueError("buyer sessions must carry buyer_id")
        return self

    @property
    def is_agent(self) -> bool:
        return self.role == SessionRole.AGENT.value

    @property
    def is_read_only(self) -> bool:
        return self.role == SessionRole.BROKER.value

    def require_agent(self, action: str) -> None:
        if not self.is_agent:
            raise PermissionDeniedError(f"{self.role} cannot {action}")

    def require_buyer_access(self, buyer_id: str) -> None:
        """Agents and brokers may read any buyer; buyers only their own."""
        if self.role == SessionRole.BUYER.value and self.buyer_id != buyer_id:
            raise PermissionDeniedError("buyer session cannot access another buyer")
