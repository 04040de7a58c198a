"""
Request template model.

WHAT: Reusable starting points for new requests ("Social media post",
"Landing page").

WHY: Clients submit the same kinds of work again and again. A template
pre-fills the title, brief and priority so submissions arrive complete.
Global templates are offered to every company; a company template only
to its own company.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Integer, String, Text, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from agencyos.models.base import Base, enum_column, utcnow
from agencyos.models.request import RequestPriority


class RequestTemplate(Base):
    """Admin-maintained template for new requests."""

    __tablename__ = "request_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    company_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    title_template: Mapped[str] = mapped_column(String(500), nullable=False)
    description_template: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    default_priority: Mapped[RequestPriority] = mapped_column(
        enum_column(RequestPriority, "request_priority"),
        nullable=False,
        default=RequestPriority.NORMAL,
    )
    default_sla_hours: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_global: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_request_templates_company_active", "company_id", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<RequestTemplate(id={self.id}, name={self.name}, global={self.is_global})>"
