import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from wedding_rsvp.core.security import generate_unique_household_code
from wedding_rsvp.db.session import get_db
from wedding_rsvp.models.guest import Guest
from wedding_rsvp.models.household import Household
from wedding_rsvp.schemas import (
    DeleteResponse,
    HouseholdCreate,
    HouseholdResponse,
    StatisticsResponse,
)
from wedding_rsvp.services.reconciler import find_household

router = APIRouter()
logger = logging.getLogger(__name__)

# ==============================================================================
# 1. LIST HOUSEHOLDS & GUESTS (With Search & Pagination)
# ==============================================================================
@router.get("/admin/guests", response_model=List[HouseholdResponse])
def list_households(
    skip: int = 0,
    limit: int = 100,
    search: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """
    Households with their guests, newest first.
    Optional: ?search=smith matches household name, guest name or guest email.
    """
    query = db.query(Household).options(selectinload(Household.guests))

    if search:
        search_fmt = f"%{search}%"
        query = query.filter(
            Household.name.ilike(search_fmt) |
            Household.guests.any(or_(Guest.name.ilike(search_fmt), Guest.email.ilike(search_fmt)))
        )

    return query.order_by(Household.created_at.desc(), Household.id.desc()).offset(skip).limit(limit).all()

# ==============================================================================
# 2. ADD HOUSEHOLD
# ==============================================================================
@router.post("/admin/add-household", response_model=HouseholdResponse, status_code=status.HTTP_201_CREATED)
def add_household(payload: HouseholdCreate, db: Session = Depends(get_db)):
    """Create a household with a fresh access code and its guests"""
    name = payload.household_name.strip()
    if find_household(db, name):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Household {name!r} already exists")

    code = generate_unique_household_code(
        lambda candidate: db.query(Household.id).filter(Household.code == candidate).first() is not None
    )
    household = Household(
        name=name,
        code=code,
        guests=[
            Guest(
                name=guest.name.strip(),
                email=(guest.email or "").strip() or None,
                is_child=guest.is_child,
                is_teenager=guest.is_teenager,
                dietary_notes=guest.dietary_notes or None,
            )
            for guest in payload.guests
        ],
    )
    db.add(household)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Household {name!r} already exists")

    db.refresh(household)
    logger.info(f"✅ [Admin] Created household {household.name} ({household.code}) with {len(household.guests)} guests")
    return household

# ==============================================================================
# 3. DELETE
# ==============================================================================
@router.delete("/admin/guests/delete-all", response_model=DeleteResponse)
def delete_all_guests(db: Session = Depends(get_db)):
    """Delete every guest and household in one transaction"""
    try:
        guests = db.query(Guest).delete(synchronize_session=False)
        households = db.query(Household).delete(synchronize_session=False)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Delete-all failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete all guests and households"
        )

    logger.info(f"🗑️ [Admin] Deleted {guests} guests and {households} households")
    return {"success": True, "message": "All guests and households have been deleted"}

@router.delete("/admin/guests/{guest_id}", response_model=DeleteResponse)
def delete_guest(guest_id: int, db: Session = Depends(get_db)):
    guest = db.query(Guest).filter(Guest.id == guest_id).first()
    if not guest:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Guest with ID {guest_id} not found"
        )

    name_backup = guest.name  # Keep for logging
    try:
        db.delete(guest)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"❌ DB Delete failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal Database Error during deletion."
        )

    logger.info(f"🗑️ [Admin] Deleted guest {guest_id} ({name_backup})")
    return {"success": True, "message": f"Guest {name_backup} deleted successfully."}

# ==============================================================================
# 4. STATISTICS
# ==============================================================================
@router.get("/admin/statistics", response_model=StatisticsResponse)
def statistics(db: Session = Depends(get_db)):
    def count_guests(*criteria) -> int:
        return db.query(func.count(Guest.id)).filter(*criteria).scalar()

    total_guests = count_guests()
    responded = count_guests(Guest.has_responded.is_(True))
    attending = count_guests(Guest.has_responded.is_(True), Guest.is_attending.is_(True))

    return StatisticsResponse(
        total_households=db.query(func.count(Household.id)).scalar(),
        total_guests=total_guests,
        responded_guests=responded,
        attending_guests=attending,
        not_attending_guests=responded - attending,
        awaiting_response=total_guests - responded,
        children=count_guests(Guest.is_child.is_(True)),
        teenagers=count_guests(Guest.is_teenager.is_(True)),
    )
