from typing import Annotated
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from shopledger.core.config import settings
from shopledger.core.db import SessionDep
from shopledger.models.user import Actor
from shopledger.services.auth_service import AuthService

bearer_scheme = HTTPBearer()


def get_current_actor(
    session: SessionDep,
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)
) -> Actor:
    token = credentials.credentials
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY,
                             algorithms=[settings.ALGORITHM])
    except JWTError:
        raise credentials_exception
    subject = payload.get("sub")
    if not subject:
        raise credentials_exception

    actor = AuthService(session).resolve_actor(
        subject, payload.get("provider") or "firebase")
    if actor is None:
        raise credentials_exception
    return actor


def require_owner(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_owner:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Owner access required"
        )
    return actor


CurrentActor = Annotated[Actor, Depends(get_current_actor)]
OwnerActor = Annotated[Actor, Depends(require_owner)]
