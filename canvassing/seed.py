"""
canvassing/seed.py

Seed a demo team (admin, manager, reviewers, purchaser).

Rules:
- Safe to run multiple times (idempotent): users are matched by email.
- Existing users keep their password; only role and name are kept in sync.
"""

from __future__ import annotations

from loguru import logger

from .extensions import db
from .models import ROLE_ADMIN, ROLE_MANAGER, ROLE_PURCHASER, ROLE_REVIEWER, User


DEFAULT_TEAM = [
    # email, full name, role
    ("admin@canvassing.local", "Alex Admin", ROLE_ADMIN),
    ("manager@canvassing.local", "Morgan Manager", ROLE_MANAGER),
    ("reviewer1@canvassing.local", "Riley Reviewer", ROLE_REVIEWER),
    ("reviewer2@canvassing.local", "Rowan Reviewer", ROLE_REVIEWER),
    ("purchaser@canvassing.local", "Parker Purchaser", ROLE_PURCHASER),
]


def seed_default_users(password: str) -> int:
    """
    Create the demo team if missing.

    Returns the number of users created.
    """
    created = 0
    for email, full_name, role in DEFAULT_TEAM:
        user = User.query.filter_by(email=email).first()
        if user:
            user.full_name = full_name
            user.role = role
            continue

        user = User(email=email, full_name=full_name, role=role)
        user.set_password(password)
        db.session.add(user)
        created += 1

    db.session.commit()
    logger.info("Seeded demo team ({created} new users)", created=created)
    return created
