"""
Current-user resolution.

Session handling lives outside this service. Requests act for the business
owner configured by OWNER_EMAIL; a deployment with real sessions overrides
``get_current_user`` through ``app.dependency_overrides``.
"""

import logging

from fastapi import Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .config import OWNER_EMAIL, OWNER_NAME
from .database import get_db
from .models import User

logger = logging.getLogger(__name__)


def get_or_create_owner(db: Session, email: str = OWNER_EMAIL, name: str = OWNER_NAME) -> User:
    """Find the owner account by email, creating it on first use"""
    email = email.strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if user:
        return user

    logger.info(f"Creating owner account ({email})")
    user = User(email=email, name=name)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Another worker created it first
        db.rollback()
        return db.query(User).filter(User.email == email).one()
    db.refresh(user)
    return user


def get_current_user(db: Session = Depends(get_db)) -> User:
    """Resolve the business the request acts for"""
    return get_or_create_owner(db)
