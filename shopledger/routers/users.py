from fastapi import APIRouter, status
from uuid import UUID
from typing import List

from shopledger.core.db import SessionDep
from shopledger.core.dependencies.auth import CurrentActor, OwnerActor
from shopledger.models.user import UserCreate, UserRead
from shopledger.models.user_notification import UserNotification
from shopledger.models.external_identity import ExternalIdentity, ExternalIdentityCreate
from shopledger.services.user_service import UserService

router = APIRouter(
    prefix="/users",
    tags=["users"]
)


@router.get("/", response_model=List[UserRead])
def list_users(session: SessionDep, actor: CurrentActor):
    return UserService(session).list_users(actor)


@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED, description="""
Da de alta un empleado en la tienda del dueño.

**Parámetros:**
- `first_name`, `last_name`, `email` (único), `phone`.
- `role`: worker, editor, worker_editor, transporter o transporter_worker.
""")
def create_user(user_data: UserCreate, session: SessionDep, actor: OwnerActor):
    return UserService(session).create_user(user_data, actor)


@router.get("/workers", response_model=List[UserRead], description="""
Empleados que pueden asignarse como trabajadores (worker, worker_editor,
transporter_worker).
""")
def list_workers(session: SessionDep, actor: CurrentActor):
    return UserService(session).list_by_role_group("workers", actor)


@router.get("/editors", response_model=List[UserRead])
def list_editors(session: SessionDep, actor: CurrentActor):
    return UserService(session).list_by_role_group("editors", actor)


@router.get("/transporters", response_model=List[UserRead])
def list_transporters(session: SessionDep, actor: CurrentActor):
    return UserService(session).list_by_role_group("transporters", actor)


@router.get("/me/notifications", response_model=List[UserNotification])
def list_my_notifications(session: SessionDep, actor: CurrentActor):
    return UserService(session).list_notifications(actor)


@router.patch("/me/notifications/{notification_id}/read", response_model=UserNotification)
def mark_notification_read(notification_id: UUID, session: SessionDep, actor: CurrentActor):
    return UserService(session).mark_notification_read(notification_id, actor)


@router.post("/{user_id}/identities", response_model=ExternalIdentity, status_code=status.HTTP_201_CREATED, description="""
Asocia un identificador federado (por ejemplo un UID de Firebase) al usuario,
para que los tokens con ese `sub` se resuelvan a él.
""")
def link_identity(user_id: UUID, data: ExternalIdentityCreate, session: SessionDep, actor: CurrentActor):
    return UserService(session).link_external_identity(user_id, data, actor)
