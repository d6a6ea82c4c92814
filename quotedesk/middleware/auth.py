from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
import structlog

from quotedesk.config import settings
from quotedesk.services.auth_service import AdminPrincipal, verify_access_token

logger = structlog.get_logger()

security = HTTPBearer()


async def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> AdminPrincipal:
    """FastAPI dependency: verify the bearer JWT and require an admin role."""
    try:
        payload = verify_access_token(credentials.credentials)
    except JWTError as e:
        logger.warning("auth_token_invalid", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": {
                    "code": "AUTH_TOKEN_INVALID",
                    "message": "Invalid or expired token",
                }
            },
            headers={"WWW-Authenticate": "Bearer"},
        )

    role = payload.get("role", "")
    if role not in settings.admin_roles_set:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": {
                    "code": "INSUFFICIENT_PERMISSIONS",
                    "message": f"Role '{role}' cannot perform this action",
                }
            },
        )

    return AdminPrincipal(
        user_id=str(payload["sub"]),
        role=role,
        email=payload.get("email"),
    )
