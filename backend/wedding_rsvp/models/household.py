from sqlalchemy import Column, String
from sqlalchemy.orm import relationship, validates
from wedding_rsvp.db.base import Base, BaseModel

def household_key(name: str) -> str:
    """Case-folded household name used for matching and uniqueness"""
    return name.strip().casefold()

class Household(Base, BaseModel):
    __tablename__ = "households"

    name = Column(String, nullable=False)
    # Folded in Python: SQLite's lower() leaves non-ASCII letters alone
    name_key = Column(String, unique=True, nullable=False, index=True)
    code = Column(String, unique=True, nullable=False, index=True)  # Guest-facing access code

    guests = relationship(
        "Guest",
        back_populates="household",
        cascade="all, delete-orphan",
        order_by="Guest.id",
    )

    @validates("name")
    def _sync_name_key(self, key, value):
        self.name_key = household_key(value)
        return value

    def __repr__(self):
        return f"<Household {self.name} ({self.code})>"
