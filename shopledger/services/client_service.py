from sqlmodel import Session, select
from uuid import UUID
from typing import List

from shopledger.core.exceptions import NotFoundError
from shopledger.models.user import Actor
from shopledger.models.client import Client, ClientCreate, ClientUpdate


class ClientService:
    def __init__(self, session: Session):
        self.session = session

    def create_client(self, client_data: ClientCreate, actor: Actor) -> Client:
        client = Client.model_validate(
            client_data.model_dump(), update={"shop_name": actor.shop_name})
        self.session.add(client)
        self.session.commit()
        self.session.refresh(client)
        return client

    def list_clients(self, actor: Actor) -> List[Client]:
        # Solo el dueño ve la cartera de clientes
        if not actor.is_owner:
            return []
        return self.session.exec(
            select(Client).where(Client.shop_name == actor.shop_name).order_by(
                Client.created_at.desc())
        ).all()

    def get_client(self, client_id: UUID, actor: Actor) -> Client:
        client = self.session.get(Client, client_id)
        if not client or client.shop_name != actor.shop_name:
            raise NotFoundError("Client not found")
        return client

    def update_client(self, client_id: UUID, client_data: ClientUpdate, actor: Actor) -> Client:
        client = self.get_client(client_id, actor)
        client.sqlmodel_update(client_data.model_dump(exclude_unset=True))
        self.session.add(client)
        self.session.commit()
        self.session.refresh(client)
        return client
