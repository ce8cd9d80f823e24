"""
Tenant context for the ticketing core.

A TenantContext is resolved once per request and passed explicitly to every
store and service call. There is no ambient "current tenant": whatever the
caller hands in is what the isolation filter enforces.
"""

import hashlib
import logging
import re
import secrets
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import InvalidArgumentError, NotFoundError
from ..models import Tenant


logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,48}[a-z0-9])?$")


class TenantResolutionSource(str, Enum):
    """How the tenant context was determined."""

    URL_SLUG = "url_slug"       # From /t/{slug}/ in the URL path
    AUTH_CLAIM = "auth_claim"   # From a claim set by the authentication layer
    ADMIN = "admin"             # Administrative access, unrestricted


@dataclass(frozen=True)
class TenantContext:
    """
    Immutable context naming the tenant a request acts for.

    Attributes:
        tenant_id: tenants.id, or None for administrative (unrestricted) access
        tenant_slug: URL-safe identifier, may be None for administrative access
        source: how this context was determined (for audit logging)
    """

    tenant_id: Optional[int]
    tenant_slug: Optional[str] = None
    source: TenantResolutionSource = TenantResolutionSource.AUTH_CLAIM

    def __post_init__(self):
        if self.tenant_id is not None and self.tenant_id <= 0:
            raise ValueError(f"tenant_id must be positive, got {self.tenant_id}")
        if self.tenant_id is None and self.source != TenantResolutionSource.ADMIN:
            raise ValueError("tenant_id may only be omitted for administrative access")

    @classmethod
    def administrative(cls) -> "TenantContext":
        return cls(tenant_id=None, source=TenantResolutionSource.ADMIN)

    @property
    def is_administrative(self) -> bool:
        return self.tenant_id is None

    def require_tenant_id(self) -> int:
        """Tenant to stamp on new top-level rows (venues, acts)."""
        if self.tenant_id is None:
            raise InvalidArgumentError(
                "tenant", "A tenant context is required to create tenant-owned data"
            )
        return self.tenant_id


def normalize_slug(slug: str) -> str:
    return (slug or "").strip().lower()


def is_valid_slug(slug: str) -> bool:
    return bool(SLUG_PATTERN.match(slug))


async def resolve_tenant_from_slug(session: AsyncSession, slug: str) -> TenantContext:
    """
    Resolve a tenant context from a URL slug.

    Unknown and inactive tenants are both reported as NotFoundError.
    """
    normalized = normalize_slug(slug)
    if not is_valid_slug(normalized):
        logger.warning(f"Rejected malformed tenant slug: {slug!r}")
        raise NotFoundError("Tenant", slug)

    result = await session.execute(
        select(Tenant).where(Tenant.slug == normalized, Tenant.is_active.is_(True))
    )
    tenant = result.scalar_one_or_none()
    if not tenant:
        logger.warning(f"Tenant slug did not resolve: {normalized}")
        raise NotFoundError("Tenant", slug)

    logger.debug(f"Resolved tenant from slug: {normalized} -> tenant_id={tenant.id}")
    return TenantContext(
        tenant_id=tenant.id,
        tenant_slug=tenant.slug,
        source=TenantResolutionSource.URL_SLUG,
    )


def hash_api_key(api_key: str) -> str:
    """Hash an API key for constant-time comparison."""
    return hashlib.sha256(api_key.encode()).hexdigest()


def admin_key_matches(presented: Optional[str], configured: str) -> bool:
    """An empty configured key disables administrative access entirely."""
    if not configured or not presented:
        return False
    return secrets.compare_digest(hash_api_key(presented), hash_api_key(configured))
