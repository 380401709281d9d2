from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from ris_app.auth.jwt_handler import decode_access_token
from ris_app.models.shared.enums import UserRole
from ris_app.schemas.common.current_user import CurrentUser
import logging

security = HTTPBearer()
logger = logging.getLogger(__name__)

async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """Get current authenticated user"""
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        # Get user ID and role from token
        user_id = int(payload.get("sub"))
        role = UserRole(payload.get("role", UserRole.USER.value))
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    current_user = CurrentUser(id=user_id, role=role, username=payload.get("username"))

    # Add request info to context
    request.state.current_user = current_user
    return current_user

async def require_admin(
    current_user: CurrentUser = Depends(get_current_user)
) -> CurrentUser:
    """Reject non-admin users before any data is touched"""
    if not current_user.is_admin:
        logger.warning(f"Admin access denied for user {current_user.id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User role is not authorized to access this route"
        )
    return current_user
