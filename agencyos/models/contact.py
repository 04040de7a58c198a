"""
Company contact model.

WHY: The people the agency deals with at a client are not always portal
users (an owner who never logs in, an accountant who only gets invoices).
Contacts keep their details next to the company record.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey

from agencyos.models.base import Base, TimestampMixin, PrimaryKeyMixin


class Contact(Base, PrimaryKeyMixin, TimestampMixin):
    """Person at a client company."""

    __tablename__ = "contacts"

    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    # Job title at the client, e.g. "Marketing Manager"
    role = Column(String(100), nullable=True)
    is_primary = Column(Boolean, nullable=False, default=False)
    is_billing_contact = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    notes = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Contact(id={self.id}, name={self.name}, company_id={self.company_id})>"
