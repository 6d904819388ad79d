from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class SessionOut(BaseModel):
    # the token is deliberately absent
    id: int
    user_id: int
    expires_at: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
