from typing import Optional
from sqlalchemy.orm import Session

from entitlements.db.models.user import User


def get_user_by_email(db: Session, email: Optional[str]) -> Optional[User]:
    """Identity lookup: the account whose email matches exactly, if any."""
    if not email:
        return None
    return db.query(User).filter(User.email == email).first()
