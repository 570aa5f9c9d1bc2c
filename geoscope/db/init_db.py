from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from geoscope.db.base import Base
from geoscope.db.session import SessionLocal, engine
from geoscope.geo_authz.types import Polarity
from geoscope.models.activity import (
    Activity,
    ActivityCategory,
    ActivityType,
    ActivityVenueHistory,
    Assignment,
    Participant,
    ParticipantAddressHistory,
    Population,
)
from geoscope.models.geography import AreaType, GeographicArea, Venue
from geoscope.models.security import User, UserGeographicAuthorization, UserRole

logger = logging.getLogger(__name__)


def init_db() -> None:
    """
    Create tables + seed demo data.

    Small and deterministic so the access rules can be tried without setup:

        Canada (COUNTRY)
          British Columbia (PROVINCE)
            Vancouver (CITY)
              Kitsilano, Downtown (NEIGHBOURHOOD)
            Victoria (CITY)
          Ontario (PROVINCE)
            Toronto (CITY)

    Users: an administrator, an editor allowed on Vancouver with Downtown
    denied, and a read-only user with no rules (unrestricted).
    """

    Base.metadata.create_all(bind=engine)

    with SessionLocal() as db:
        if _has_seed_data(db):
            return
        seed(db)
        db.commit()
        logger.info("Seeded demo data")


def _has_seed_data(db: Session) -> bool:
    return db.execute(select(GeographicArea.id).limit(1)).first() is not None


def _area(db: Session, name: str, area_type: AreaType, parent: GeographicArea | None = None) -> GeographicArea:
    area = GeographicArea(name=name, area_type=area_type, parent_geographic_area_id=parent.id if parent else None)
    db.add(area)
    db.flush()
    return area


def seed(db: Session) -> dict[str, str]:
    """Insert the demo data set; returns ``name -> id`` for the seeded rows."""

    canada = _area(db, "Canada", AreaType.COUNTRY)
    bc = _area(db, "British Columbia", AreaType.PROVINCE, canada)
    ontario = _area(db, "Ontario", AreaType.PROVINCE, canada)
    vancouver = _area(db, "Vancouver", AreaType.CITY, bc)
    victoria = _area(db, "Victoria", AreaType.CITY, bc)
    toronto = _area(db, "Toronto", AreaType.CITY, ontario)
    kitsilano = _area(db, "Kitsilano", AreaType.NEIGHBOURHOOD, vancouver)
    downtown = _area(db, "Downtown", AreaType.NEIGHBOURHOOD, vancouver)

    # Users
    admin = User(email="admin@example.com", display_name="Ada Admin", role=UserRole.ADMINISTRATOR)
    editor = User(email="vancouver.editor@example.com", display_name="Vic Editor", role=UserRole.EDITOR)
    viewer = User(email="viewer@example.com", display_name="Val Viewer", role=UserRole.READ_ONLY)
    db.add_all([admin, editor, viewer])
    db.flush()

    db.add_all(
        [
            UserGeographicAuthorization(
                user_id=editor.id,
                geographic_area_id=vancouver.id,
                rule_type=Polarity.ALLOW,
                created_by=admin.id,
            ),
            UserGeographicAuthorization(
                user_id=editor.id,
                geographic_area_id=downtown.id,
                rule_type=Polarity.DENY,
                created_by=admin.id,
            ),
        ]
    )

    # Venues
    kits_hall = Venue(name="Kits Community Centre", address="2690 Larch St", geographic_area_id=kitsilano.id)
    dt_library = Venue(name="Central Library", address="350 W Georgia St", geographic_area_id=downtown.id)
    vic_hall = Venue(name="Victoria Hall", address="1 Government St", geographic_area_id=victoria.id)
    tor_hall = Venue(name="Toronto Hall", address="100 Queen St W", geographic_area_id=toronto.id)
    db.add_all([kits_hall, dt_library, vic_hall, tor_hall])
    db.flush()

    # Activities
    category = ActivityCategory(name="Study Circles")
    db.add(category)
    db.flush()
    study = ActivityType(name="Study Circle", activity_category_id=category.id)
    db.add(study)
    db.flush()

    youth = Population(name="Youth")
    db.add(youth)

    kits_circle = Activity(name="Kits Circle", activity_type_id=study.id, start_date=date(2025, 1, 10))
    dt_circle = Activity(
        name="Downtown Circle",
        activity_type_id=study.id,
        start_date=date(2025, 2, 1),
        end_date=date(2025, 6, 30),
    )
    tor_circle = Activity(name="Toronto Circle", activity_type_id=study.id, start_date=date(2025, 3, 5))
    db.add_all([kits_circle, dt_circle, tor_circle])
    db.flush()

    db.add_all(
        [
            # Kits Circle started at Victoria Hall and later moved to Kitsilano.
            ActivityVenueHistory(activity_id=kits_circle.id, venue_id=vic_hall.id, effective_from=None),
            ActivityVenueHistory(activity_id=kits_circle.id, venue_id=kits_hall.id, effective_from=date(2025, 4, 1)),
            ActivityVenueHistory(activity_id=dt_circle.id, venue_id=dt_library.id, effective_from=None),
            ActivityVenueHistory(activity_id=tor_circle.id, venue_id=tor_hall.id, effective_from=None),
        ]
    )

    # Participants
    ana = Participant(name="Ana")
    ben = Participant(name="Ben")
    cy = Participant(name="Cy")
    db.add_all([ana, ben, cy])
    db.flush()
    ana.populations.append(youth)

    db.add_all(
        [
            ParticipantAddressHistory(participant_id=ana.id, venue_id=kits_hall.id, effective_from=None),
            ParticipantAddressHistory(participant_id=ben.id, venue_id=dt_library.id, effective_from=None),
            ParticipantAddressHistory(participant_id=cy.id, venue_id=tor_hall.id, effective_from=None),
            Assignment(activity_id=kits_circle.id, participant_id=ana.id),
            Assignment(activity_id=kits_circle.id, participant_id=ben.id),
            Assignment(activity_id=dt_circle.id, participant_id=ben.id),
            Assignment(activity_id=tor_circle.id, participant_id=cy.id),
        ]
    )
    db.flush()

    return {
        "canada": canada.id,
        "bc": bc.id,
        "ontario": ontario.id,
        "vancouver": vancouver.id,
        "victoria": victoria.id,
        "toronto": toronto.id,
        "kitsilano": kitsilano.id,
        "downtown": downtown.id,
        "admin": admin.id,
        "editor": editor.id,
        "viewer": viewer.id,
        "kits_hall": kits_hall.id,
        "dt_library": dt_library.id,
        "vic_hall": vic_hall.id,
        "tor_hall": tor_hall.id,
        "kits_circle": kits_circle.id,
        "dt_circle": dt_circle.id,
        "tor_circle": tor_circle.id,
        "ana": ana.id,
        "ben": ben.id,
        "cy": cy.id,
        "youth": youth.id,
        "study": study.id,
        "category": category.id,
    }
