"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from media_paywall.adapters.gateways import build_payment_gateway
from media_paywall.adapters.supabase_audit_repository import SupabaseAuditRepository
from media_paywall.adapters.supabase_catalog_repository import (
    SupabaseCatalogRepository,
)
from media_paywall.adapters.supabase_identity_provider import (
    SupabaseIdentityProvider,
)
from media_paywall.adapters.supabase_payment_repository import (
    SupabasePaymentRepository,
)
from media_paywall.adapters.supabase_price_repository import SupabasePriceRepository
from media_paywall.adapters.supabase_unlock_repository import (
    SupabaseUnlockRepository,
)
from media_paywall.config import Settings
from media_paywall.services.audit import AuditService
from media_paywall.services.cache import InMemoryCache
from media_paywall.services.catalog import CatalogService
from media_paywall.services.checkout import CheckoutService
from media_paywall.services.entitlements import EntitlementService
from media_paywall.services.identity import IdentityProvider
from media_paywall.services.payment_gateway import PaymentGateway
from media_paywall.services.pricing import PricingService
from media_paywall.services.reconciliation import ReconciliationService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    identity_provider: IdentityProvider
    gateway: PaymentGateway
    audit_service: AuditService
    catalog_service: CatalogService
    entitlement_service: EntitlementService
    pricing_service: PricingService
    reconciliation_service: ReconciliationService
    checkout_service: CheckoutService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    catalog_repository = SupabaseCatalogRepository(supabase_client)
    unlock_repository = SupabaseUnlockRepository(supabase_client)
    payment_repository = SupabasePaymentRepository(supabase_client)
    gateway = build_payment_gateway(resolved_settings)

    audit_service = AuditService(SupabaseAuditRepository(supabase_client))
    catalog_service = CatalogService(catalog_repository, audit_service)
    entitlement_service = EntitlementService(catalog_repository, unlock_repository)
    pricing_service = PricingService(
        catalog_repository=catalog_repository,
        price_repository=SupabasePriceRepository(supabase_client),
        cache=InMemoryCache(),
        audit_service=audit_service,
        cache_ttl_seconds=resolved_settings.price_cache_ttl_seconds,
    )
    reconciliation_service = ReconciliationService(
        payment_repository=payment_repository,
        gateway=gateway,
        audit_service=audit_service,
    )
    checkout_service = CheckoutService(
        catalog_repository=catalog_repository,
        entitlement_service=entitlement_service,
        pricing_service=pricing_service,
        payment_repository=payment_repository,
        reconciliation_service=reconciliation_service,
        gateway=gateway,
        token_secret=resolved_settings.checkout_token_secret,
        currency=resolved_settings.currency,
    )

    async def close_resources() -> None:
        await gateway.close()

    return AppContainer(
        settings=resolved_settings,
        identity_provider=SupabaseIdentityProvider(supabase_client),
        gateway=gateway,
        audit_service=audit_service,
        catalog_service=catalog_service,
        entitlement_service=entitlement_service,
        pricing_service=pricing_service,
        reconciliation_service=reconciliation_service,
        checkout_service=checkout_service,
        close_resources=close_resources,
    )
