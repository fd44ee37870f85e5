from typing import Annotated
from fastapi import Depends
from sqlmodel import Session, create_engine, SQLModel
from .config import settings

# Importar todos los modelos para registrar las tablas en el metadata
from shopledger.models import (
    User, ExternalIdentity, UserNotification, Client, ClientPaymentHistory,
    Order, OrderProduct, OrderWorker, OrderTransporter, EditingProject,
    Payment, Salary
)

connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith(
    "sqlite") else {}

engine = create_engine(settings.DATABASE_URL,
                       echo=settings.DEBUG, connect_args=connect_args)


def create_all_tables():
    """Crea todas las tablas en la base de datos"""
    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_session)]
