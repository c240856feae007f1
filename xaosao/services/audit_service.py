"""
Audit logging for customer actions.

Every write operation leaves an audit row with its outcome. Writing the audit
row must never break the action being audited, so failures here are logged
and swallowed.
"""

import functools
import logging
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ..auth import ROLE_CUSTOMER, ROLE_MODEL, Actor
from ..models import AuditLog, Customer, Model

logger = logging.getLogger(__name__)

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"


def create_audit_log(
    db: Session,
    action: str,
    description: str,
    status: str = STATUS_SUCCESS,
    payload: Optional[dict[str, Any]] = None,
    customer_id: Optional[str] = None,
    model_id: Optional[str] = None,
) -> Optional[AuditLog]:
    """Persist an audit entry; returns None when it could not be written"""
    try:
        entry = AuditLog(
            action=action,
            description=description,
            status=status,
            payload=payload,
            customer_id=customer_id,
            model_id=model_id,
        )
        db.add(entry)
        db.commit()
        return entry
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to write audit log for {action}: {e}")
        return None


def _find_actor(args: tuple, kwargs: dict) -> dict[str, Optional[str]]:
    """customer_id / model_id of the Customer, Model or Actor passed to the audited call"""
    actor = {"customer_id": None, "model_id": None}
    for value in list(args) + list(kwargs.values()):
        if isinstance(value, Customer):
            actor["customer_id"] = value.id
        elif isinstance(value, Model):
            actor["model_id"] = value.id
        elif isinstance(value, Actor):
            if value.role == ROLE_CUSTOMER:
                actor["customer_id"] = value.id
            elif value.role == ROLE_MODEL:
                actor["model_id"] = value.id
    return actor


def audited(action: str):
    """
    Decorator for service methods (``self.db`` must be a Session).

    Records a success entry after the method returns, or rolls back and records
    a failed entry with the error message when it raises HTTPException.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            actor = _find_actor(args, kwargs)
            try:
                result = func(self, *args, **kwargs)
            except HTTPException as e:
                self.db.rollback()
                create_audit_log(self.db, action, str(e.detail), STATUS_FAILED, **actor)
                raise
            create_audit_log(self.db, action, f"{action} completed", STATUS_SUCCESS, **actor)
            return result

        return wrapper

    return decorator
