"""
Script to reset a user's usage counters for the current month.
Administrative correction only (e.g. after a failed bulk import).
Run: python -m scripts.reset_usage user@example.com
"""
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from entitlements.db.session import SessionLocal
from entitlements.services.account_service import get_user_by_email
from entitlements.services import usage_ledger
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def reset_user_usage(email: str) -> bool:
    """Reset every current-period usage counter of the user with this email."""
    db = SessionLocal()
    try:
        user = get_user_by_email(db, email)
        if not user:
            logger.error(f"User {email} not found")
            return False
        
        rows = usage_ledger.reset(db, user.id)
        logger.info(f"Reset {rows} usage counter(s) for {email} (ID: {user.id})")
        return True
    except Exception as e:
        logger.error(f"Error resetting usage for {email}: {e}", exc_info=True)
        return False
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python -m scripts.reset_usage EMAIL")
        sys.exit(2)
    
    email = sys.argv[1]
    if reset_user_usage(email):
        print(f"\n[SUCCESS] Usage counters for {email} reset to 0")
    else:
        print(f"\n[ERROR] Failed to reset usage for {email}")
        sys.exit(1)
