"""
Guest import reconciliation.

Maps incoming import rows onto households and guests: rows are grouped by
household name (case-insensitively), missing households are created with a
fresh access code, and guests already present in their household are
reported as duplicates instead of being inserted again.

Every import endpoint funnels into `reconcile()`; they differ only in how
their request body is turned into `GuestRecord`s.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from wedding_rsvp.core.security import generate_unique_household_code
from wedding_rsvp.models.guest import Guest
from wedding_rsvp.models.household import Household, household_key
from wedding_rsvp.schemas import ProcessingResult, TypedGuestRecord
from wedding_rsvp.utils.flags import is_affirmative_flag

logger = logging.getLogger(__name__)

DUPLICATE_GUEST = "Duplicate guest"
HOUSEHOLD_FAILED = "Household processing failed"


@dataclass
class GuestRecord:
    name: str
    household: str
    email: Optional[str] = None
    is_child: bool = False
    is_teenager: bool = False
    dietary_notes: Optional[str] = None


@dataclass
class ReconcileOutcome:
    households_created: int = 0
    guests_created: int = 0
    duplicates: int = 0
    invalid: int = 0
    results: List[ProcessingResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def processing_time(self) -> str:
        return f"{self.elapsed:.2f} seconds"

    @property
    def failures(self) -> List[ProcessingResult]:
        """Failed rows other than duplicates"""
        return [r for r in self.results if not r.success and r.error != DUPLICATE_GUEST]


def _clean(value: Any) -> str:
    return "" if value is None else str(value).strip()


def normalize_raw_records(rows: Iterable[Dict[str, Any]]) -> Tuple[List[GuestRecord], int]:
    """
    Convert header-keyed rows (Name, Household, Email, Child, Teenager,
    DietaryNotes) into GuestRecords. Rows without a name or household are
    dropped; the number dropped is returned alongside the records.
    """
    records = []
    dropped = 0
    for row in rows:
        name = _clean(row.get("Name"))
        household = _clean(row.get("Household"))
        if not name or not household:
            dropped += 1
            continue

        notes = row.get("DietaryNotes") or row.get("DietaryRequirements")
        records.append(GuestRecord(
            name=name,
            household=household,
            email=_clean(row.get("Email")) or None,
            is_child=is_affirmative_flag(row.get("Child")),
            is_teenager=is_affirmative_flag(row.get("Teenager")),
            dietary_notes=_clean(notes) or None,
        ))

    if dropped:
        logger.warning(f"Dropped {dropped} rows without a name or household")
    return records, dropped


def normalize_typed_records(guests: Iterable[TypedGuestRecord]) -> Tuple[List[GuestRecord], int]:
    """Same as normalize_raw_records, for records that arrive with typed fields"""
    records = []
    dropped = 0
    for guest in guests:
        name = _clean(guest.name)
        household = _clean(guest.household)
        if not name or not household:
            dropped += 1
            continue

        records.append(GuestRecord(
            name=name,
            household=household,
            email=_clean(guest.email) or None,
            is_child=guest.is_child,
            is_teenager=guest.is_teenager,
            dietary_notes=_clean(guest.dietary_notes) or None,
        ))

    if dropped:
        logger.warning(f"Dropped {dropped} guest records without a name or household")
    return records, dropped


def group_by_household(records: Iterable[GuestRecord]) -> List[Tuple[str, List[GuestRecord]]]:
    """
    Group records by household name, ignoring case.
    Groups keep first-seen order and the first-seen spelling of the name.
    """
    groups: Dict[str, Tuple[str, List[GuestRecord]]] = {}
    for record in records:
        key = household_key(record.household)
        if key not in groups:
            groups[key] = (record.household, [])
        groups[key][1].append(record)
    return list(groups.values())


def find_household(db: Session, name: str) -> Optional[Household]:
    return db.query(Household).filter(Household.name_key == household_key(name)).first()


def get_or_create_household(db: Session, name: str) -> Tuple[Household, bool]:
    """
    Return (household, created). A household created concurrently under the
    name (unique on the folded name) is fetched instead of duplicated.
    """
    household = find_household(db, name)
    if household:
        return household, False

    code = generate_unique_household_code(
        lambda candidate: db.query(Household.id).filter(Household.code == candidate).first() is not None
    )
    try:
        with db.begin_nested():
            household = Household(name=name, code=code)
            db.add(household)
    except IntegrityError:
        logger.warning(f"Household {name!r} was created concurrently, fetching it instead")
        household = find_household(db, name)
        if household is None:
            raise
        return household, False

    logger.info(f"Created new household: {name} with code {code}")
    return household, True


def existing_guest_names(db: Session, household: Household) -> set:
    rows = db.query(Guest.name).filter(Guest.household_id == household.id).all()
    return {row.name.lower() for row in rows}


def _process_household(db: Session, household_name: str, members: List[GuestRecord]):
    household, created = get_or_create_household(db, household_name)
    seen = existing_guest_names(db, household)

    results = []
    inserted = 0
    duplicates = 0
    for member in members:
        key = member.name.lower()
        if key in seen:
            duplicates += 1
            results.append(ProcessingResult(
                name=member.name, household_name=household_name, success=False, error=DUPLICATE_GUEST
            ))
            continue

        try:
            with db.begin_nested():
                db.add(Guest(
                    name=member.name,
                    email=member.email,
                    is_child=member.is_child,
                    is_teenager=member.is_teenager,
                    dietary_notes=member.dietary_notes,
                    household_id=household.id,
                ))
        except Exception as e:
            logger.error(f"Error creating guest {member.name}: {e}")
            results.append(ProcessingResult(
                name=member.name, household_name=household_name, success=False, error=str(e)
            ))
            continue

        # Later rows in this batch with the same name count as duplicates
        seen.add(key)
        inserted += 1
        results.append(ProcessingResult(name=member.name, household_name=household_name, success=True))

    db.commit()
    return results, created, inserted, duplicates


def reconcile(db: Session, records: List[GuestRecord], dropped: int = 0) -> ReconcileOutcome:
    """
    Persist a batch of guest records.

    Households are handled one at a time and committed independently: a
    failure rolls back only that household, marks each of its members as
    failed and is reported in `errors`; the remaining households still run.
    """
    start_time = time.time()
    outcome = ReconcileOutcome(invalid=dropped)

    groups = group_by_household(records)
    logger.info(f"Processing {len(records)} records grouped into {len(groups)} households")

    for household_name, members in groups:
        batch_start = time.time()
        try:
            results, created, inserted, duplicates = _process_household(db, household_name, members)
        except Exception as e:
            db.rollback()
            logger.error(f"Error processing household {household_name}: {e}", exc_info=True)
            outcome.errors.append(f"Error processing household {household_name}: {e}")
            outcome.results.extend(
                ProcessingResult(name=m.name, household_name=household_name, success=False, error=HOUSEHOLD_FAILED)
                for m in members
            )
            continue

        outcome.results.extend(results)
        outcome.households_created += int(created)
        outcome.guests_created += inserted
        outcome.duplicates += duplicates
        logger.info(
            f"Processed household \"{household_name}\" with {len(members)} guests "
            f"in {(time.time() - batch_start) * 1000:.0f}ms"
        )

    outcome.elapsed = time.time() - start_time
    logger.info(
        f"✅ Import completed in {outcome.processing_time}. Created {outcome.households_created} households "
        f"and {outcome.guests_created} guests, skipped {outcome.duplicates} duplicates."
    )
    return outcome
