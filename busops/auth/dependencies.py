from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from busops.config import settings
from busops.database import get_db
from busops.auth.utils import verify_token
from busops.auth.service import UserService
from busops.auth.schemas import Actor

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")

def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)):
    """Get current authenticated user"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    
    # Verify token and get payload
    token_data = verify_token(token, credentials_exception)
    
    # Get user from database
    user = UserService.get_user_by_id(db, user_id=token_data["user_id"])
    if user is None or not user.is_active:
        raise credentials_exception
    
    return user

def get_current_actor(current_user = Depends(get_current_user)) -> Actor:
    """Reduce the authenticated user to the identity the services need"""
    return Actor(id=current_user.id, role=current_user.role)

def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    """Require an administrative role for access"""
    if not actor.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions"
        )
    return actor
