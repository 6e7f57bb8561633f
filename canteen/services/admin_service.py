"""Admin directory queries."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from canteen.models.admin import Admin


def get_active_admin(db: Session, admin_id: str) -> Admin | None:
    return db.scalar(select(Admin).where(Admin.id == admin_id, Admin.is_active.is_(True)).limit(1))


def create_admin(db: Session, *, admin_id: str, email: str, name: str, role: str = "admin") -> Admin:
    admin = Admin(id=admin_id, email=email, name=name.strip(), role=role, is_active=True)
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


def set_admin_active(db: Session, admin_id: str, is_active: bool) -> Admin | None:
    """Flip the activation gate; the admin row itself is never deleted."""
    admin = db.get(Admin, admin_id)
    if admin is None:
        return None
    admin.is_active = is_active
    db.commit()
    db.refresh(admin)
    return admin
