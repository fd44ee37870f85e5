# Módulo models: define las clases y estructuras de datos principales de la aplicación (SQLModel/Pydantic)
# El orden de las importaciones es importante para la creación de las tablas en la base de datos
# Las tablas con claves foráneas deben importarse después de las tablas que referencian

from .user import User, UserCreate, UserRead, UserRole, Actor
from .user_notification import UserNotification, NotificationType
from .external_identity import ExternalIdentity, ExternalIdentityCreate
from .client import Client, ClientPaymentHistory, ClientCreate, ClientUpdate, ClientRead, ClientPaymentStatus, QuickPaymentAction
from .order import Order, OrderProduct, OrderWorker, OrderTransporter, OrderCreate, OrderRead, WorkStatus
from .editing_project import EditingProject, EditingProjectCreate, EditingProjectRead
from .payment import Payment, PaymentCreate, PaymentRead, PaymentMethod
from .salary import Salary, SalaryCreate, SalaryRead, SalaryType, WorkKind, WorkReference
