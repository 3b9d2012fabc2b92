from functools import lru_cache

import structlog
from fastapi import Depends

from checkout_gateway.airwallex import AirwallexBackend
from checkout_gateway.backends import PaymentBackend, SimulatedBackend
from checkout_gateway.config import Settings
from checkout_gateway.ledger import InMemoryLedger, Ledger, SqlLedger
from checkout_gateway.service import PaymentGateway, WebhookReceiver
from checkout_gateway.stripe_service import StripeBackend

logger = structlog.get_logger(component="startup")


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


def build_backend(settings: Settings) -> PaymentBackend:
    if not settings.has_credentials:
        logger.warning("simulation_mode", processor=settings.processor,
                       reason="no processor credentials configured")
        return SimulatedBackend(confirm_delay=settings.simulation_confirm_delay)
    if settings.processor == "stripe":
        return StripeBackend(settings.stripe_secret_key)
    if settings.processor != "airwallex":
        raise ValueError(f"Unknown PAYMENT_PROCESSOR: {settings.processor}")
    return AirwallexBackend(
        base_url=settings.airwallex_base_url,
        api_key=settings.airwallex_api_key,
        client_id=settings.airwallex_client_id,
        minor_units=settings.amount_in_minor_units,
        timeout=settings.upstream_timeout,
    )


def build_ledger(settings: Settings) -> Ledger:
    if settings.database_url:
        return SqlLedger(settings.database_url)
    return InMemoryLedger()


def build_gateway(settings: Settings, ledger: Ledger = None) -> PaymentGateway:
    backend = build_backend(settings)
    return PaymentGateway(
        backend=backend,
        ledger=ledger or build_ledger(settings),
        fallback_to_simulation=settings.fallback_to_simulation,
        default_return_url=settings.hpp_return_url,
        simulator=SimulatedBackend(confirm_delay=settings.simulation_confirm_delay),
    )


@lru_cache
def get_gateway() -> PaymentGateway:
    return build_gateway(get_settings())


def get_webhook_receiver(gateway: PaymentGateway = Depends(get_gateway)) -> WebhookReceiver:
    return WebhookReceiver(gateway.ledger, minor_units=gateway.backend.minor_units)
