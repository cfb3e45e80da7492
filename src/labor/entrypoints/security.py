"""HTTP Basic authentication against the user directory."""
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from labor.domain.model import CustomUser, Rolle
from labor.entrypoints.dependencies import get_uow_factory

logger = logging.getLogger(__name__)

http_basic = HTTPBasic(realm="labor")


def get_current_user(
    credentials: HTTPBasicCredentials = Depends(http_basic),
    uow_factory=Depends(get_uow_factory),
) -> CustomUser:
    with uow_factory() as uow:
        user = uow.users.find_by_username(credentials.username)
        if user is None or not uow.users.verify_password(user, credentials.password):
            logger.info(f"Authentication failed for {credentials.username}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid username or password",
                headers={"WWW-Authenticate": "Basic"},
            )
    return user


def require_admin(user: CustomUser = Depends(get_current_user)) -> CustomUser:
    if Rolle.ADMIN not in user.authorities:
        logger.debug(f"{user.username} is not an admin")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)
    return user
