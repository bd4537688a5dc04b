"""Admin activity trail."""
from __future__ import annotations

import logging

from models.admin_log import AdminLog

logger = logging.getLogger(__name__)


def record_admin_action(storage, admin, action: str, details: str | None = None,
                        target_id: str | None = None, target_type: str | None = None) -> AdminLog:
    """Stage an AdminLog row; it commits with the caller's transaction."""
    entry = AdminLog(
        admin_id=getattr(admin, "id", None),
        action=action,
        details=details,
        target_id=target_id,
        target_type=target_type,
    )
    storage.new(entry)
    logger.info("admin action %s by %s on %s %s", action, entry.admin_id, target_type, target_id)
    return entry
