from sqlmodel import Session, select
from typing import List
from uuid import UUID

from shopledger.core.exceptions import (
    ConflictError, LedgerValidationError, NotFoundError, PermissionDeniedError)
from shopledger.models.user import (
    User, UserCreate, UserRole, Actor, WORKER_ROLES, EDITOR_ROLES, TRANSPORTER_ROLES)
from shopledger.models.user_notification import UserNotification
from shopledger.models.external_identity import ExternalIdentity, ExternalIdentityCreate

ROLE_GROUPS = {
    "workers": WORKER_ROLES,
    "editors": EDITOR_ROLES,
    "transporters": TRANSPORTER_ROLES,
}


class UserService:
    def __init__(self, session: Session):
        self.session = session

    def create_user(self, user_data: UserCreate, actor: Actor) -> User:
        """Alta de un empleado en la tienda del dueño."""
        if not actor.is_owner:
            raise PermissionDeniedError("Only owners can add employees")
        if user_data.role == UserRole.OWNER:
            raise LedgerValidationError("Owners cannot be created from a shop")

        existing_user = self.session.exec(
            select(User).where(User.email == user_data.email)
        ).first()
        if existing_user:
            raise ConflictError("User with this email already exists.")

        user = User.model_validate(
            user_data.model_dump(), update={"shop_name": actor.shop_name})
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_user(self, user_id: UUID, actor: Actor) -> User:
        user = self.session.get(User, user_id)
        if not user or user.shop_name != actor.shop_name:
            raise NotFoundError("User not found")
        return user

    def list_users(self, actor: Actor) -> List[User]:
        return self.session.exec(
            select(User).where(User.shop_name == actor.shop_name).order_by(
                User.first_name, User.last_name)
        ).all()

    def list_by_role_group(self, group: str, actor: Actor) -> List[User]:
        """
        workers: worker, worker_editor, transporter_worker
        editors: editor, worker_editor
        transporters: transporter, transporter_worker
        """
        roles = ROLE_GROUPS.get(group)
        if roles is None:
            raise LedgerValidationError(f"Unknown role group: {group}")
        return self.session.exec(
            select(User).where(
                User.shop_name == actor.shop_name,
                User.role.in_(roles)
            ).order_by(User.first_name, User.last_name)
        ).all()

    def link_external_identity(self, user_id: UUID, data: ExternalIdentityCreate, actor: Actor) -> ExternalIdentity:
        if not actor.is_owner and actor.user_id != user_id:
            raise PermissionDeniedError("Access denied")
        user = self.get_user(user_id, actor)

        existing = self.session.exec(
            select(ExternalIdentity).where(
                ExternalIdentity.provider == data.provider,
                ExternalIdentity.external_id == data.external_id
            )
        ).first()
        if existing:
            if existing.user_id == user.id:
                return existing
            raise ConflictError("External identity already linked to another user")

        identity = ExternalIdentity(
            provider=data.provider, external_id=data.external_id, user_id=user.id)
        self.session.add(identity)
        self.session.commit()
        self.session.refresh(identity)
        return identity

    def list_notifications(self, actor: Actor) -> List[UserNotification]:
        return self.session.exec(
            select(UserNotification).where(
                UserNotification.user_id == actor.user_id
            ).order_by(UserNotification.created_at.desc())
        ).all()

    def mark_notification_read(self, notification_id: UUID, actor: Actor) -> UserNotification:
        notification = self.session.get(UserNotification, notification_id)
        if not notification or notification.user_id != actor.user_id:
            raise NotFoundError("Notification not found")
        notification.is_read = True
        self.session.add(notification)
        self.session.commit()
        self.session.refresh(notification)
        return notification
