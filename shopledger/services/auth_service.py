from sqlmodel import Session, select
from jose import jwt
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from shopledger.core.config import settings
from shopledger.models.user import User, Actor
from shopledger.models.external_identity import ExternalIdentity


class AuthService:
    """
    Frontera de identidad.

    El token lo emite un servicio externo; aquí solo se traduce su `sub`
    (UUID interno o identificador federado) a un usuario, una única vez por
    petición.
    """

    def __init__(self, session: Session):
        self.session = session

    def resolve_user(self, subject: str, provider: str = "firebase") -> Optional[User]:
        try:
            user_id = UUID(str(subject))
        except ValueError:
            user_id = None
        if user_id is not None:
            user = self.session.get(User, user_id)
            if user:
                return user

        identity = self.session.exec(
            select(ExternalIdentity).where(
                ExternalIdentity.provider == provider,
                ExternalIdentity.external_id == str(subject)
            )
        ).first()
        if not identity:
            return None
        return self.session.get(User, identity.user_id)

    def resolve_actor(self, subject: str, provider: str = "firebase") -> Optional[Actor]:
        user = self.resolve_user(subject, provider)
        if not user:
            return None
        return Actor(user_id=user.id, role=user.role, shop_name=user.shop_name)

    def create_access_token(self, subject, provider: Optional[str] = None) -> str:
        to_encode = {"sub": str(subject)}
        if provider:
            to_encode["provider"] = provider
        # Convertir minutos a timedelta
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        expire = datetime.utcnow() + expires_delta
        to_encode.update({"exp": expire})
        encoded_jwt = jwt.encode(
            to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
        return encoded_jwt
