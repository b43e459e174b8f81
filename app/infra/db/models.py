from datetime import datetime
from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from app.domain.enums import (
    AccountStatus,
    ChatSessionStatus,
    InterventionOutcome,
    MessageKind,
    MessageSender,
    RiskCategory,
    RiskSeverity,
)


def _new_id() -> str:
    return uuid4().hex


def _value_enum(enum_cls: type[PyEnum], name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
    )


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class Customer(Base, TimestampMixin):
    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    service_provider: Mapped[str] = mapped_column(String(100), nullable=False)
    service_type: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    account_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    risk_category: Mapped[RiskCategory] = mapped_column(
        _value_enum(RiskCategory, "risk_category"), nullable=False
    )
    risk_severity: Mapped[RiskSeverity] = mapped_column(
        _value_enum(RiskSeverity, "risk_severity"), nullable=False, default=RiskSeverity.MEDIUM
    )
    account_status: Mapped[AccountStatus] = mapped_column(
        _value_enum(AccountStatus, "account_status"),
        nullable=False,
        default=AccountStatus.ACTIVE,
        index=True,
    )
    last_payment_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    next_billing_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    payment_methods: Mapped[list["PaymentMethod"]] = relationship(
        back_populates="customer", cascade="all, delete-orphan"
    )
    risk_factors: Mapped[list["RiskFactor"]] = relationship(cascade="all, delete-orphan")
    interventions: Mapped[list["Intervention"]] = relationship(
        back_populates="customer", cascade="all, delete-orphan"
    )


class PaymentMethod(Base, TimestampMixin):
    __tablename__ = "payment_methods"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    customer_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("customers.id", ondelete="CASCADE"), index=True
    )
    card_type: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    last_four_digits: Mapped[str] = mapped_column(String(4), nullable=False, default="")
    expiry_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    expiry_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    failure_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_failure_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_success_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    customer: Mapped[Customer] = relationship(back_populates="payment_methods")


class RiskFactor(Base):
    __tablename__ = "risk_factors"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    customer_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("customers.id", ondelete="CASCADE"), index=True
    )
    factor: Mapped[str] = mapped_column(String(100), nullable=False)


class Intervention(Base):
    __tablename__ = "interventions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    customer_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("customers.id", ondelete="CASCADE"), index=True
    )
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    outcome: Mapped[InterventionOutcome] = mapped_column(
        _value_enum(InterventionOutcome, "intervention_outcome"), nullable=False
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    agent_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    customer: Mapped[Customer] = relationship(back_populates="interventions")


class ChatSession(Base):
    __tablename__ = "chat_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    customer_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[ChatSessionStatus] = mapped_column(
        _value_enum(ChatSessionStatus, "chat_session_status"),
        nullable=False,
        default=ChatSessionStatus.ACTIVE,
    )
    payment_issue: Mapped[str | None] = mapped_column(String(60), nullable=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    outcome: Mapped[str | None] = mapped_column(Text, nullable=True)

    messages: Mapped[list["ChatMessage"]] = relationship(
        back_populates="chat_session", cascade="all, delete-orphan"
    )


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    chat_session_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("chat_sessions.id", ondelete="CASCADE"), index=True
    )
    sender: Mapped[MessageSender] = mapped_column(
        _value_enum(MessageSender, "message_sender"), nullable=False
    )
    kind: Mapped[MessageKind] = mapped_column(
        _value_enum(MessageKind, "message_kind"), nullable=False, default=MessageKind.TEXT
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    metadata_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    chat_session: Mapped[ChatSession] = relationship(back_populates="messages")
