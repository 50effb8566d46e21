from sqlalchemy import Column, String, Boolean, Integer, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from wedding_rsvp.db.base import Base, BaseModel

class Guest(Base, BaseModel):
    __tablename__ = "guests"

    household_id = Column(Integer, ForeignKey("households.id", ondelete="CASCADE"), nullable=False, index=True)

    # Import fields
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    is_child = Column(Boolean, default=False, nullable=False)
    is_teenager = Column(Boolean, default=False, nullable=False)
    dietary_notes = Column(Text, nullable=True)

    # RSVP fields
    is_attending = Column(Boolean, nullable=True)  # None until the household responds
    has_responded = Column(Boolean, default=False, nullable=False)
    responded_at = Column(DateTime, nullable=True)

    household = relationship("Household", back_populates="guests")

    def __repr__(self):
        return f"<Guest {self.name} (household {self.household_id})>"
