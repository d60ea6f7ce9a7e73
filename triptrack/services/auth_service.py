# triptrack/services/auth_service.py
import logging
from typing import Optional

from passlib.context import CryptContext
from sqlmodel import Session, select

from triptrack.errors import FormError
from triptrack.models import Account, User, UserRole
from triptrack.models.common import utc_now

logger = logging.getLogger("triptrack.auth")

MIN_PASSWORD_LENGTH = 6

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class InvalidCredentials(FormError):
    pass


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def _normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def sign_up(session: Session, email: str, password: str) -> Account:
    email = _normalize_email(email)
    if not email or "@" not in email:
        raise FormError("Please enter a valid email address")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise FormError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    existing = session.exec(select(Account).where(Account.email == email)).first()
    if existing:
        raise FormError("An account with this email already exists")
    account = Account(email=email, password_hash=hash_password(password))
    session.add(account); session.commit(); session.refresh(account)
    logger.info("Created account %s", account.id)
    return account


def sign_in(session: Session, email: str, password: str) -> Account:
    email = _normalize_email(email)
    account = session.exec(select(Account).where(Account.email == email)).first()
    if not account or not verify_password(password, account.password_hash):
        raise InvalidCredentials("Invalid login credentials")
    return account


def get_profile(session: Session, account_id: int) -> Optional[User]:
    return session.exec(select(User).where(User.auth_account_id == account_id)).first()


def provision_profile(session: Session, account: Account, name: Optional[str] = None) -> User:
    """Return the account's profile, creating a root admin profile when missing.

    The owner_id self-reference is written in a second step because the row id
    is only known after the insert.
    """
    profile = get_profile(session, account.id)
    if profile:
        return profile
    display_name = (name or "").strip() or account.email.split("@")[0] or "User"
    profile = User(
        auth_account_id=account.id,
        name=display_name,
        email=account.email,
        role=UserRole.admin,
        is_owner=True,
    )
    session.add(profile); session.commit(); session.refresh(profile)
    profile.owner_id = profile.id
    profile.updated_at = utc_now()
    session.add(profile); session.commit(); session.refresh(profile)
    logger.info("Provisioned owner profile %s for account %s", profile.id, account.id)
    return profile


def link_google_account(session: Session, google_id: Optional[str], email: Optional[str]) -> Account:
    """Find or create the account behind an OpenID Connect login."""
    email = _normalize_email(email)
    account = None
    if google_id:
        account = session.exec(select(Account).where(Account.google_id == google_id)).first()
    if not account and email:
        account = session.exec(select(Account).where(Account.email == email)).first()
    if not account:
        if not email:
            raise FormError("Google did not return an email address")
        account = Account(email=email, google_id=google_id)
        session.add(account); session.commit(); session.refresh(account)
    elif google_id and account.google_id != google_id:
        account.google_id = google_id
        session.add(account); session.commit(); session.refresh(account)
    return account
