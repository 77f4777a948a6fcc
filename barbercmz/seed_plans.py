"""Insert the default plan catalogue.

Usage:
    python -m barbercmz.seed_plans
"""
import logging
import sys

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from barbercmz.database import Base, SessionLocal, engine
from barbercmz.models import (  # noqa: F401
    appointment,
    barber,
    barbershop,
    customer,
    payment,
    plan as plan_model,
    service,
    subscription,
    user,
)
from barbercmz.models.plan import Plan

logger = logging.getLogger(__name__)

DEFAULT_PLANS = [
    {
        "name": "Solo",
        "price_monthly": 39.90,
        "max_barbers": 1,
        "features": ["1 barber", "Online booking page", "Agenda and customer list"],
    },
    {
        "name": "Equipe",
        "price_monthly": 79.90,
        "max_barbers": 3,
        "features": ["Up to 3 barbers", "Online booking page", "No-show tracking"],
    },
    {
        "name": "Pro",
        "price_monthly": 129.90,
        "max_barbers": 10,
        "features": ["Up to 10 barbers", "Online booking page", "No-show tracking", "Custom logo"],
    },
]


def seed_plans(db: Session) -> list[Plan]:
    """Create missing plans by name; existing plans are left untouched."""
    existing = {name for (name,) in db.query(Plan.name).all()}
    created = []
    for definition in DEFAULT_PLANS:
        if definition["name"] in existing:
            continue
        plan = Plan(active=True, **definition)
        db.add(plan)
        created.append(plan)
    db.commit()
    return created


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    try:
        Base.metadata.create_all(bind=engine)
        db = SessionLocal()
        try:
            created = [plan.name for plan in seed_plans(db)]
        finally:
            db.close()
    except SQLAlchemyError as exc:
        logger.error("Could not seed plans: %s", exc)
        sys.exit(1)

    if created:
        logger.info("Created plans: %s", ", ".join(created))
    else:
        logger.info("All default plans already exist")


if __name__ == "__main__":
    main()
