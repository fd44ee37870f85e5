from sqlmodel import SQLModel, Field
from sqlalchemy import CheckConstraint
from pydantic import BaseModel, ConfigDict
from typing import Optional
from enum import Enum
from datetime import datetime
from uuid import UUID, uuid4


class SalaryType(str, Enum):
    ORDER_WORK = "order_work"
    EDITING_WORK = "editing_work"
    TRANSPORT_WORK = "transport_work"
    BONUS = "bonus"
    COMMISSION = "commission"


class WorkKind(str, Enum):
    ORDER = "order"
    PROJECT = "project"


class WorkReference(BaseModel):
    """Referencia a un trabajo facturable: una orden o un proyecto de edición."""
    model_config = ConfigDict(frozen=True)

    kind: WorkKind
    id: UUID

    @classmethod
    def order(cls, order_id: UUID) -> "WorkReference":
        return cls(kind=WorkKind.ORDER, id=order_id)

    @classmethod
    def project(cls, project_id: UUID) -> "WorkReference":
        return cls(kind=WorkKind.PROJECT, id=project_id)


class Salary(SQLModel, table=True):
    # Una entrada apunta como mucho a un trabajo
    __table_args__ = (
        CheckConstraint(
            "related_order_id IS NULL OR related_project_id IS NULL",
            name="ck_salary_single_work_reference"
        ),
    )
    id: Optional[UUID] = Field(
        default_factory=uuid4, primary_key=True, unique=True)
    employee_id: UUID = Field(foreign_key="user.id", index=True)
    amount: int
    salary_type: SalaryType
    related_order_id: Optional[UUID] = Field(
        default=None, foreign_key="order.id", index=True)
    related_project_id: Optional[UUID] = Field(
        default=None, foreign_key="editing_project.id", index=True)
    is_paid: bool = Field(default=False)
    paid_date: Optional[datetime] = None
    approved_by: Optional[UUID] = Field(default=None, foreign_key="user.id")
    approved_date: Optional[datetime] = None
    description: Optional[str] = None
    work_date: datetime = Field(default_factory=datetime.utcnow)
    created_at: datetime = Field(
        default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        nullable=False,
        sa_column_kwargs={"onupdate": datetime.utcnow}
    )

    @property
    def work_ref(self) -> Optional[WorkReference]:
        if self.related_order_id is not None:
            return WorkReference.order(self.related_order_id)
        if self.related_project_id is not None:
            return WorkReference.project(self.related_project_id)
        return None

    def assign_work(self, ref: Optional[WorkReference]) -> None:
        self.related_order_id = None
        self.related_project_id = None
        if ref is None:
            return
        if ref.kind == WorkKind.ORDER:
            self.related_order_id = ref.id
        else:
            self.related_project_id = ref.id


class SalaryCreate(SQLModel):
    employee_id: UUID
    amount: int = Field(gt=0)
    salary_type: SalaryType = SalaryType.BONUS
    work_ref: Optional[WorkReference] = None
    description: Optional[str] = None


class SalaryRead(SQLModel):
    id: UUID
    employee_id: UUID
    amount: int
    salary_type: SalaryType
    related_order_id: Optional[UUID] = None
    related_project_id: Optional[UUID] = None
    is_paid: bool
    paid_date: Optional[datetime] = None
    description: Optional[str] = None
    work_date: datetime
    created_at: datetime


class SalaryPayRequest(SQLModel):
    employee_id: UUID
    amount: int = Field(gt=0)
