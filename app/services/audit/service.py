from sqlalchemy.orm import Session

from app.models.admin_audit_log import AdminAuditLog


class AuditService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def log(
        self,
        admin_email: str,
        action: str,
        target_email: str | None,
        promo_report_slug: str | None = None,
    ) -> AdminAuditLog:
        entry = AdminAuditLog(
            admin_email=admin_email,
            action=action,
            target_email=target_email,
            promo_report_slug=promo_report_slug,
        )
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        return entry
