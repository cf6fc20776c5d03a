"""FastAPI dependencies: the engine components wired for one application."""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request

from checkout.config import Settings
from checkout.engine.callbacks import CallbackReceiver
from checkout.engine.factory import OrderFactory
from checkout.engine.reconciler import Reconciler
from checkout.engine.status_query import StatusQueryService
from checkout.gateway.base import PaymentGateway
from checkout.notify.base import Notifier
from checkout.store.base import OrderStore


@dataclass
class Services:
    store: OrderStore
    gateway: PaymentGateway
    factory: OrderFactory
    reconciler: Reconciler
    status_query: StatusQueryService
    callbacks: CallbackReceiver


def build_services(
    store: OrderStore,
    gateway: PaymentGateway,
    notifier: Notifier,
    app_settings: Settings,
) -> Services:
    """Wire the factory, reconciler and both signal paths around one store and gateway."""
    reconciler = Reconciler(store, notifier, max_attempts=app_settings.reconcile_max_attempts)
    factory = OrderFactory(
        store,
        gateway,
        backend_url=app_settings.backend_url,
        frontend_url=app_settings.frontend_url,
        currency=app_settings.currency,
        max_retries=app_settings.gateway_max_retries,
        retry_base_delay=app_settings.gateway_retry_base_delay,
        timeout_seconds=app_settings.gateway_timeout_seconds,
    )
    return Services(
        store=store,
        gateway=gateway,
        factory=factory,
        reconciler=reconciler,
        status_query=StatusQueryService(
            store,
            gateway,
            reconciler,
            max_retries=app_settings.gateway_max_retries,
            retry_base_delay=app_settings.gateway_retry_base_delay,
            timeout_seconds=app_settings.gateway_timeout_seconds,
        ),
        callbacks=CallbackReceiver(reconciler),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


ServicesDep = Annotated[Services, Depends(get_services)]
