"""Factories shared by service and API tests."""

from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from que_accounting.auth.passwords import hash_password
from que_accounting.auth.principal import StoredUserPrincipal
from que_accounting.auth.token_codec import TokenCodec
from que_accounting.models.base import utcnow
from que_accounting.models.business import Business
from que_accounting.models.membership import BusinessUser
from que_accounting.models.role import Role
from que_accounting.models.subscription import SubscriptionStatus
from que_accounting.models.user import User, UserRole
from que_accounting.services.business_provisioning import BusinessProvisioningService

TEST_PASSWORD = "password123"


def create_user(
    session: Session,
    email: str,
    role: UserRole = UserRole.USER,
    is_active: bool = True,
    password: str = TEST_PASSWORD,
) -> User:
    """Persist a user with a cheap bcrypt hash."""
    user = User(
        name=email.split("@")[0],
        email=email,
        password_hash=hash_password(password, rounds=4),
        role=role,
        is_active=is_active,
    )
    session.add(user)
    session.flush()
    return user


def provision_business(
    session: Session,
    owner: User,
    name: str = "Acme Ltd",
    active_days: Optional[int] = 365,
) -> Business:
    """Provision a business; with active_days, its subscription is active for that long."""
    business = BusinessProvisioningService(session).create_business(owner.id, name)
    if active_days:
        subscription = business.subscription
        subscription.status = SubscriptionStatus.ACTIVE
        subscription.start_date = utcnow()
        subscription.expires_at = utcnow() + timedelta(days=active_days)
        business.is_active = True
    session.flush()
    return business


def role_named(session: Session, business: Business, name: str) -> Role:
    return (
        session.query(Role)
        .filter(Role.business_id == business.id, Role.name == name)
        .one()
    )


def add_member(
    session: Session,
    business: Business,
    user: User,
    role_name: str = "User",
    is_active: bool = True,
) -> BusinessUser:
    membership = BusinessUser(
        user_id=user.id,
        business_id=business.id,
        role_id=role_named(session, business, role_name).id,
        is_active=is_active,
    )
    session.add(membership)
    session.flush()
    return membership


def owner_membership(session: Session, business: Business) -> BusinessUser:
    return (
        session.query(BusinessUser)
        .filter(
            BusinessUser.business_id == business.id,
            BusinessUser.user_id == business.owner_id,
        )
        .one()
    )


def bearer(codec: TokenCodec, user: User) -> dict:
    """Authorization header for a stored user."""
    token = codec.issue(StoredUserPrincipal(user=user).to_claims())
    return {"Authorization": f"Bearer {token}"}
