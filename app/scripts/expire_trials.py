"""
Background job to expire lapsed trials

This script should be run periodically (e.g., via cron) to move trial
tenants past their trial end date to trial_expired. Requests are already
refused for such tenants; this makes the stored status match.

    python -m app.scripts.expire_trials
"""

import sys
from datetime import datetime

from sqlmodel import Session, select
from app.core.database import engine
from app.models.tenant import Tenant, TenantPlan, TenantStatus
import structlog

logger = structlog.get_logger(__name__)


def expire_lapsed_trials(session: Session) -> dict:
    """Find and expire all trials past their end date"""
    try:
        candidates = session.exec(
            select(Tenant).where(
                Tenant.plan == TenantPlan.TRIAL,
                Tenant.status == TenantStatus.ACTIVE,
                Tenant.trial_ends_at < datetime.utcnow()
            )
        ).all()

        if not candidates:
            logger.info("No lapsed trials found")
            return {"processed": 0, "expired": 0}

        expired = 0
        for tenant in candidates:
            if tenant.expire_trial_if_due():
                session.add(tenant)
                expired += 1
                logger.info("Expired trial", tenant_id=str(tenant.id), subdomain=tenant.subdomain)

        session.commit()
        return {"processed": len(candidates), "expired": expired}

    except Exception as e:
        session.rollback()
        logger.error("Error expiring trials", error=str(e))
        raise


def main():
    """Main entry point for the trial expiry job"""
    logger.info("Starting trial expiry job")

    try:
        with Session(engine) as session:
            results = expire_lapsed_trials(session)
            logger.info("Trial expiry complete", **results)
    except Exception as e:
        logger.error("Fatal error in trial expiry job", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
