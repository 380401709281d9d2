from pydantic import BaseModel
from typing import Optional
from ris_app.models.shared.enums import UserRole

class CurrentUser(BaseModel):
    """Authenticated actor taken from the access token"""
    id: int
    role: UserRole = UserRole.USER
    username: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
