from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from busops.constants import UserRole, EmployeeSubrole, ADMIN_ROLES

class UserSummary(BaseModel):
    """Minimal user fields attached to trips and bookings for display"""
    id: int
    name: str
    phone: Optional[str] = None

    class Config:
        from_attributes = True

class User(UserSummary):
    email: str
    role: UserRole
    subrole: Optional[EmployeeSubrole] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

class Actor(BaseModel):
    """Identity of the caller as seen by the reservation engine"""
    id: int
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES
