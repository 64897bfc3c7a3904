"""Authentication routes."""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from teamhub.core.database import get_db
from teamhub.core.deps import get_current_user
from teamhub.core.roles import build_capabilities, get_role_display
from teamhub.core.security import create_user_token, verify_password
from teamhub.models.user import User
from teamhub.schemas.user import CurrentUserResponse, LoginRequest, Token

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=Token)
def login(login_data: LoginRequest, db: Session = Depends(get_db)):
    """Login endpoint."""
    user = db.query(User).filter(User.email == login_data.email).first()

    if not user or not user.is_active or not verify_password(login_data.password, user.password_hash):
        logger.warning("Failed login for %s", login_data.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password"
        )

    access_token = create_user_token(user.email)
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=CurrentUserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    """Get current user with role capabilities."""
    response = CurrentUserResponse.model_validate(current_user)
    response.role_display = get_role_display(current_user.role, current_user.role)
    response.capabilities = build_capabilities(current_user.role)
    return response
