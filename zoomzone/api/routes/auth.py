import logging

from fastapi import APIRouter, Depends, HTTPException, status

from zoomzone.api.deps import get_current_operator
from zoomzone.api.schemas.auth import AccessToken, LoginRequest, OperatorPublic
from zoomzone.core.config import settings
from zoomzone.core.security import create_access_token, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=AccessToken)
async def login(body: LoginRequest) -> AccessToken:
    """Operator login. There is exactly one operator account, configured by env."""
    if not settings.operator_email or not settings.operator_password_hash:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Operator account is not configured",
        )
    if body.email.lower() != settings.operator_email.lower() or not verify_password(
        body.password, settings.operator_password_hash
    ):
        logger.warning("Failed operator login for %s", body.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    return AccessToken(
        access_token=create_access_token(settings.operator_email),
        expires_in=settings.access_token_expire_minutes * 60,
    )


@router.get("/me", response_model=OperatorPublic)
async def me(operator: str = Depends(get_current_operator)) -> OperatorPublic:
    return OperatorPublic(email=operator)
