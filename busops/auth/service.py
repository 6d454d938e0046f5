from sqlalchemy.orm import Session
from typing import Optional

from busops.models import User
from busops.constants import UserRole, EmployeeSubrole

class UserService:
    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        """Get user by ID"""
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def has_subrole(user: Optional[User], subrole: EmployeeSubrole) -> bool:
        """True when the user is an active bus employee with the given subrole"""
        if user is None or not user.is_active:
            return False
        return user.role == UserRole.BUS_EMPLOYEE.value and user.subrole == subrole.value
