"""
RBAC Dependencies.
Resolves the caller and organization scope from the bearer token without a database hit.
"""
import logging
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from typing import Any, Callable, Dict, List
from app.services import auth as auth_service
from app.schemas.auth import Principal, TokenData, UserRole

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def _decode_or_401(token: str) -> Dict[str, Any]:
    payload = auth_service.decode_access_token(token)

    if payload is None:
        logger.warning("Authentication failed: Invalid token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("error") == "TOKEN_EXPIRED":
        logger.info("Authentication failed: Token expired")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="TOKEN_EXPIRED",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("type") != "access":
        logger.warning("Authentication failed: Invalid token type")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


def get_current_user(token: str = Depends(oauth2_scheme)) -> Principal:
    """
    Extracts and validates the current caller from the JWT token.
    """
    payload = _decode_or_401(token)

    token_data = TokenData(email=payload.get("sub"), role=payload.get("role"))
    if token_data.email is None:
        logger.warning("Authentication failed: Missing subject in token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing subject in token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        role = UserRole(token_data.role)
    except ValueError:
        logger.warning(f"Authentication failed: Unknown role {token_data.role!r}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unknown role"
        )

    org_id = payload.get("org_id")
    if org_id is None:
        logger.error(f"Org validation failed: No org_id in token for user {token_data.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No organization context in token"
        )
    return Principal(subject=token_data.email, role=role, org_id=int(org_id))


def get_current_org(current_user: Principal = Depends(get_current_user)) -> int:
    """Organization scope under which every payroll record is read or written."""
    return current_user.org_id


def require_role(allowed_roles: List[UserRole]) -> Callable:
    """
    Dependency factory that checks if the caller has one of the allowed roles.

    Usage:
        @router.post("/components")
        def create(user: Principal = Depends(require_role([UserRole.HR_ADMIN]))):
            ...
    """
    def role_checker(current_user: Principal = Depends(get_current_user)) -> Principal:
        if current_user.role == UserRole.SUPER_ADMIN:
            return current_user
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {[r.value for r in allowed_roles]}"
            )
        return current_user
    return role_checker


def require_hr():
    """Shorthand for requiring any payroll-processing role."""
    return require_role([UserRole.HR_ADMIN, UserRole.HR_STAFF])


def require_admin():
    """Shorthand for requiring admin roles only."""
    return require_role([UserRole.HR_ADMIN])
