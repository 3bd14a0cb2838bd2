"""In-process user and organization directory.

Holds the people a group plan is built for. Lookups are keyed by id with a
secondary e-mail index; every mutation happens under one lock.
"""

from typing import Dict, List, Optional, Tuple
from datetime import datetime
import threading

from teamtravel.config import settings
from teamtravel.obs.logger import log_event
from teamtravel.types import User, Organization

DEMO_ORG_NAME = "Acme Technologies"
DEMO_ORG_DOMAIN = "acmetech.com"
DEMO_MEMBERS = [
    {"name": "Sarah Chen", "email": "sarah@acmetech.com", "home_city": "San Francisco", "home_airport": "SFO"},
    {"name": "Marcus Johnson", "email": "marcus@acmetech.com", "home_city": "Chicago", "home_airport": "ORD"},
    {"name": "Priya Patel", "email": "priya@acmetech.com", "home_city": "Austin", "home_airport": "AUS"},
    {"name": "David Kim", "email": "david@acmetech.com", "home_city": "New York", "home_airport": "JFK"},
]


class UserDirectory:
    def __init__(self):
        self._lock = threading.RLock()
        self._users: Dict[str, User] = {}
        self._orgs: Dict[str, Organization] = {}
        self._by_email: Dict[str, str] = {}

    # -- users --

    def create_user(self, user: User) -> User:
        with self._lock:
            email = user.email.lower()
            if email in self._by_email and self._by_email[email] != user.id:
                raise ValueError(f"email already registered: {user.email}")
            self._users[user.id] = user
            self._by_email[email] = user.id
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            return self._users.get(user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            uid = self._by_email.get(email.lower())
            return self._users.get(uid) if uid else None

    def update_user(self, user_id: str, **changes) -> User:
        with self._lock:
            current = self._users.get(user_id)
            if current is None:
                raise KeyError(user_id)
            changes.pop("id", None)
            updated = current.model_copy(update={**changes, "updated_at": datetime.now()})
            self._users[user_id] = updated
            return updated

    def ensure_user(self, user_id: str, name: str = None, email: str = None) -> User:
        """Return the user, registering a placeholder profile for an unseen chat user."""
        with self._lock:
            existing = self._users.get(user_id)
            if existing:
                return existing
            return self.create_user(User(
                id=user_id,
                email=email or f"{user_id}@users.teamtravel.local",
                name=name or "You",
                home_city=settings.HOME_CITY_DEFAULT,
                home_airport=settings.HOME_AIRPORT_DEFAULT,
            ))

    # -- organizations --

    def create_organization(self, org: Organization) -> Organization:
        with self._lock:
            self._orgs[org.id] = org
        return org

    def get_organization(self, org_id: str) -> Optional[Organization]:
        with self._lock:
            return self._orgs.get(org_id)

    def users_in_organization(self, org_id: str) -> List[User]:
        with self._lock:
            return [u for u in self._users.values() if u.organization_id == org_id]

    def seed_or_create_demo_org(self, lead_user_id: str) -> Tuple[str, List[str]]:
        """Put the lead in an organization with the demo team; idempotent.

        Returns (org_id, member ids excluding the lead).
        """
        with self._lock:
            lead = self.ensure_user(lead_user_id)
            if lead.organization_id:
                members = [u.id for u in self.users_in_organization(lead.organization_id) if u.id != lead_user_id]
                return lead.organization_id, members

            org = self.create_organization(Organization(name=DEMO_ORG_NAME, domain=DEMO_ORG_DOMAIN))
            self.update_user(lead_user_id, organization_id=org.id, role="admin")

            member_ids: List[str] = []
            for m in DEMO_MEMBERS:
                existing = self.get_user_by_email(m["email"])
                if existing:
                    self.update_user(existing.id, organization_id=org.id)
                    member_ids.append(existing.id)
                    continue
                user = self.create_user(User(organization_id=org.id, role="member", **m))
                member_ids.append(user.id)

        log_event("demo_org_seeded", org_id=org.id, members=len(member_ids))
        return org.id, member_ids
