"""
Caller identity for workflow operations.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from django.core.exceptions import ValidationError
from django.core.validators import validate_ipv46_address


class Role:
    """Role names, stored as Django auth group names."""
    ADMIN = 'ADMIN'
    VENDOR = 'VENDOR'
    ACCOUNTS = 'ACCOUNTS'
    OPS = 'OPS'

    ALL = (ADMIN, VENDOR, ACCOUNTS, OPS)


def valid_ip(value) -> Optional[str]:
    if not value:
        return None
    try:
        validate_ipv46_address(value)
    except ValidationError:
        return None
    return value


@dataclass(frozen=True)
class ActorContext:
    """
    Who is performing an operation, as supplied by the identity provider.

    ``user`` is None for system actions.
    """

    user: Optional[object] = None
    roles: FrozenSet[str] = field(default_factory=frozenset)
    ip_address: Optional[str] = None
    user_agent: str = ''

    @property
    def user_id(self):
        return getattr(self.user, 'pk', None)

    def has_role(self, *roles) -> bool:
        return any(role in self.roles for role in roles)

    @classmethod
    def for_user(cls, user, ip_address=None, user_agent=''):
        """Build a context from a Django user, reading roles from its groups."""
        if user is None or not user.is_authenticated:
            return cls(ip_address=ip_address, user_agent=user_agent)

        roles = set(user.groups.values_list('name', flat=True))
        if user.is_superuser:
            roles.add(Role.ADMIN)

        return cls(user=user, roles=frozenset(roles), ip_address=ip_address, user_agent=user_agent)

    @classmethod
    def from_request(cls, request):
        """Client address is the first X-Forwarded-For hop when it is a valid IP, else REMOTE_ADDR."""
        forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '').split(',')[0].strip()
        ip_address = valid_ip(forwarded) or valid_ip(request.META.get('REMOTE_ADDR'))
        return cls.for_user(
            request.user,
            ip_address=ip_address,
            user_agent=request.META.get('HTTP_USER_AGENT', '')[:500],
        )

    @classmethod
    def system(cls):
        return cls()
