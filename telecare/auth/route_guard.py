"""Role-based navigation decisions.

The rules are evaluated in order and the first match wins. The coarse
"wrong area" redirects (expert on a patient path, patient on a therapist
path) are checked before the allow-list, so an allow-list can never send an
expert into the patient area or the other way round.
"""

from dataclasses import dataclass
from typing import Iterable

from telecare.auth.roles import EXPERT_HOME, PATIENT_HOME, UserRole, home_path, is_expert_role
from telecare.auth.session import SessionStatus

LOGIN_PATH = '/login'

RENDER = 'render'
REDIRECT = 'redirect'
SPINNER = 'spinner'


@dataclass(frozen=True)
class RouteDecision:
    action: str
    target: str | None = None

    @property
    def allowed(self) -> bool:
        return self.action == RENDER


def _role_value(role: 'str | UserRole | None') -> str | None:
    if role is None:
        return None
    return role.value if isinstance(role, UserRole) else role


def resolve_route(
    status: SessionStatus,
    role: 'str | UserRole | None',
    path: str,
    allowed_roles: Iterable['str | UserRole'],
) -> RouteDecision:
    if status is SessionStatus.LOADING:
        return RouteDecision(SPINNER)

    if status is SessionStatus.UNAUTHENTICATED:
        return RouteDecision(REDIRECT, LOGIN_PATH)

    if status is SessionStatus.AUTHENTICATED_NO_PROFILE or role is None:
        return RouteDecision(SPINNER)

    if is_expert_role(role) and path.startswith(PATIENT_HOME):
        return RouteDecision(REDIRECT, EXPERT_HOME)

    if not is_expert_role(role) and path.startswith(EXPERT_HOME):
        return RouteDecision(REDIRECT, PATIENT_HOME)

    allowed = {_role_value(allowed_role) for allowed_role in allowed_roles}
    if _role_value(role) not in allowed:
        return RouteDecision(REDIRECT, home_path(role))

    return RouteDecision(RENDER)
