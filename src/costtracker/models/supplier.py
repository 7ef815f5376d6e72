"""
Supplier model for vendors of materials, packaging and labels.

Deleting a supplier never deletes the supplier items that reference it;
those references are plain id columns and render as "Unknown Supplier"
once the supplier is gone.
"""

from sqlalchemy import Boolean, Column, Float, Index, Integer, String, Text

from .base import BaseModel


class Supplier(BaseModel):
    """
    Supplier model.

    Attributes:
        name: Supplier name (required)
        contact_person: Optional contact name
        email: Optional email address
        phone: Optional phone number
        address: Optional postal address
        rating: Rating from 0 to 5
        lead_time: Typical lead time in days
        notes: Optional notes
        is_active: Soft delete flag (True = active, False = deactivated)
    """

    __tablename__ = "suppliers"

    name = Column(String(200), nullable=False)
    contact_person = Column(String(200), nullable=True)
    email = Column(String(200), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    rating = Column(Float, nullable=False, default=0.0)
    lead_time = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("idx_supplier_name", "name"),
        Index("idx_supplier_active", "is_active"),
    )
