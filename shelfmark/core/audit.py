import logging
from shelfmark.core.models import AuditLog

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100


def record(db, user_id, action, table_name, record_id=None, old_values=None, new_values=None):
    """Adds an audit entry to the caller's transaction; committed with it."""
    entry = AuditLog(
        user_id=user_id,
        action=action,
        table_name=table_name,
        record_id=None if record_id is None else str(record_id),
        old_values=old_values,
        new_values=new_values,
    )
    db.add(entry)
    return entry


def recent(db, limit=None, offset=None):
    """Newest entries first."""
    return db.query(AuditLog).order_by(
        AuditLog.timestamp.desc(), AuditLog.audit_id.desc()
    ).offset(offset).limit(limit or DEFAULT_LIMIT).all()
