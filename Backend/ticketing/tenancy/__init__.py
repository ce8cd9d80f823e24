"""
Multi-tenancy package.

Modules:
    context: TenantContext and its resolution from a tenant slug
    queries: the tenant isolation filter and tenant-scoped query helpers
"""

from .context import (
    TenantContext,
    TenantResolutionSource,
    admin_key_matches,
    hash_api_key,
    is_valid_slug,
    normalize_slug,
    resolve_tenant_from_slug,
)

from .queries import (
    # Composable helpers
    TENANT_OWNED_MODELS,
    apply_tenant_scope,
    ownership_path,
    require_owned,
    scoped_select,
    tenant_filter,
    # Entity queries
    allocated_ticket_count,
    get_act,
    get_show,
    get_show_with_names,
    get_tenant_by_slug,
    get_ticket_offer,
    get_venue,
    list_acts,
    list_shows_at_venue_between,
    list_shows_for_act,
    list_ticket_offers,
    list_venues,
    lock_show,
)

__all__ = [
    # Context
    "TenantContext",
    "TenantResolutionSource",
    "resolve_tenant_from_slug",
    "normalize_slug",
    "is_valid_slug",
    "hash_api_key",
    "admin_key_matches",
    # Query helpers
    "TENANT_OWNED_MODELS",
    "tenant_filter",
    "apply_tenant_scope",
    "scoped_select",
    "ownership_path",
    "require_owned",
    "get_tenant_by_slug",
    "get_venue",
    "list_venues",
    "get_act",
    "list_acts",
    "get_show",
    "lock_show",
    "get_show_with_names",
    "list_shows_for_act",
    "list_shows_at_venue_between",
    "get_ticket_offer",
    "list_ticket_offers",
    "allocated_ticket_count",
]
