"""
Roles and Authorization
=======================

Authorization is plain set membership: a role either belongs to the set a
view requires or it does not. There is no hierarchy between roles.
"""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Optional


class Role(str, Enum):
    ADMIN = 'admin'
    EDITOR = 'editor'
    AUTHOR = 'author'
    CONTRIBUTOR = 'contributor'
    READER = 'reader'

    @classmethod
    def parse(cls, value) -> Optional['Role']:
        """Role for a stored value, or None when it names no known role"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


# Roles allowed into the admin area at all, and the default for protected views
ADMIN_ROLES: FrozenSet[Role] = frozenset({Role.ADMIN, Role.EDITOR, Role.AUTHOR})
DEFAULT_REQUIRED_ROLES = ADMIN_ROLES


@dataclass(frozen=True)
class Session:
    """The signed-in user as the gate sees it"""
    user_id: str
    role: Optional[Role]
    display_name: Optional[str] = None
    email: Optional[str] = None
    authenticated: bool = True


class GateDecision(Enum):
    RENDER = 'render'
    LOGIN = 'login'
    UNAUTHORIZED = 'unauthorized'


def _required(required_roles: Iterable[Role]) -> FrozenSet[Role]:
    required = frozenset(required_roles)
    if not required:
        raise ValueError("required_roles must not be empty")
    return required


def is_authorized(session: Optional[Session], required_roles: Iterable[Role]) -> bool:
    """True iff the session is authenticated and its role is in required_roles"""
    required = _required(required_roles)
    if session is None or not session.authenticated:
        return False
    return session.role is not None and session.role in required


def gate_decision(session: Optional[Session], required_roles: Iterable[Role]) -> GateDecision:
    """Decide whether a protected view renders or where the visitor is sent"""
    required = _required(required_roles)
    if session is None or not session.authenticated:
        return GateDecision.LOGIN
    if not is_authorized(session, required):
        return GateDecision.UNAUTHORIZED
    return GateDecision.RENDER


# Admin navigation: (label, endpoint, roles)
NAVIGATION = (
    ('Dashboard', 'admin.dashboard', frozenset({Role.ADMIN, Role.EDITOR, Role.AUTHOR})),
    ('Articles', 'news_admin.articles_page', frozenset({Role.ADMIN, Role.EDITOR, Role.AUTHOR})),
    ('Categories', 'categories.categories_page', frozenset({Role.ADMIN, Role.AUTHOR})),
    ('Users', 'users.users_page', frozenset({Role.ADMIN})),
    ('Comments', 'comments.comments_page', frozenset({Role.ADMIN, Role.AUTHOR})),
    ('Contact', 'contact.messages_page', frozenset({Role.ADMIN})),
    ('Newsletter', 'newsletter.subscribers_page', frozenset({Role.ADMIN, Role.AUTHOR})),
)


def visible_navigation(session: Optional[Session], registered_endpoints=None):
    """
    Navigation entries the session may open

    Args:
        session: current session (None shows nothing)
        registered_endpoints: optional set of endpoints registered on the app;
            entries whose blueprint is disabled are dropped
    """
    return [
        {'label': label, 'endpoint': endpoint}
        for label, endpoint, roles in NAVIGATION
        if is_authorized(session, roles)
        and (registered_endpoints is None or endpoint in registered_endpoints)
    ]
