from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from medcontract.common.enums import UserRole
from medcontract.db.base import BaseModel, SoftDeleteMixin


class User(BaseModel, SoftDeleteMixin):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    role: Mapped[UserRole] = mapped_column(String(20), nullable=False, default=UserRole.CLIENT)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
