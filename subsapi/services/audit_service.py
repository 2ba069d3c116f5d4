"""
Audit Service
Best-effort audit trail; a failed write is logged and dropped
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from subsapi.models.audit_log import AuditLog
from subsapi.utils.database import commit_side_effect

logger = logging.getLogger(__name__)


class AuditService:

    async def log(
        self,
        db: AsyncSession,
        action: str,
        user_id: Optional[UUID] = None,
        target_type: Optional[str] = None,
        target_id: Optional[Any] = None,
        ip: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        db.add(AuditLog(
            user_id=user_id,
            action=action,
            target_type=target_type,
            target_id=str(target_id) if target_id is not None else None,
            ip=ip,
            meta=metadata,
        ))
        return await commit_side_effect(db, f"audit entry {action}")


audit_service = AuditService()
