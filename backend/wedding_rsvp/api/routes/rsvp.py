from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, selectinload
import logging
from wedding_rsvp.core.security import normalize_code
from wedding_rsvp.db.session import get_db
from wedding_rsvp.models.household import Household
from wedding_rsvp.schemas import HouseholdResponse, RsvpLookupRequest

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("/rsvp/lookup", response_model=HouseholdResponse)
def lookup_household(payload: RsvpLookupRequest, db: Session = Depends(get_db)):
    """
    Find a household by the access code printed on its invitation.
    Codes are matched ignoring case and spaces.
    """
    code = normalize_code(payload.code)
    if not code:
        raise HTTPException(status_code=400, detail="Please enter your invitation code.")

    household = (
        db.query(Household)
        .options(selectinload(Household.guests))
        .filter(Household.code == code)
        .first()
    )
    if not household:
        logger.info(f"RSVP lookup failed for code {code}")
        raise HTTPException(status_code=404, detail="Household not found. Please check your code and try again.")

    logger.info(f"RSVP lookup: {household.name} ({len(household.guests)} guests)")
    return household
