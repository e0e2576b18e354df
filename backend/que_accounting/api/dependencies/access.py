"""
Composed authorization pipeline for tenant-scoped routes.

Stages run in a fixed order, each either enriching the request or
terminating it:

    Token Codec -> Principal Resolver -> Tenant Resolver
        -> Subscription Gate -> Permission Evaluator -> route

Usage:
    @router.post("/customers")
    def create_customer(
        ctx: TenantContext = Depends(authorize("customer", "create")),
    ):
        ...
"""

import logging
from typing import Callable

from fastapi import Depends, Request, Response

from que_accounting.entitlements.rules import GateMode, SubscriptionGate
from que_accounting.platform.rbac import PermissionEvaluator
from que_accounting.platform.tenant_context import (
    TenantContext,
    TenantStrategy,
    get_tenant_context,
)

logger = logging.getLogger(__name__)


def authorize(
    module: str,
    action: str,
    mode: GateMode = GateMode.STRICT,
    strategy: TenantStrategy = TenantStrategy.ACTIVE_BUSINESS,
    expose_subscription_headers: bool = False,
    allow_owner_fallback: bool = True,
) -> Callable:
    """
    Factory for the full authorization dependency.

    Args:
        module: Permission module required by the route
        action: Permission action required by the route
        mode: Subscription gate mode (STRICT for writes, READ_ONLY for grace reads)
        strategy: Tenant resolution strategy for the route
        expose_subscription_headers: Add X-Subscription-* headers
        allow_owner_fallback: Resolve owners without a membership row

    Returns:
        A FastAPI dependency returning the TenantContext
    """
    gate = SubscriptionGate()
    evaluator = PermissionEvaluator()

    def dependency(
        request: Request,
        response: Response,
        context: TenantContext = Depends(get_tenant_context(strategy, allow_owner_fallback)),
    ) -> TenantContext:
        snapshot = gate.check(context.business, request.method, mode)
        if expose_subscription_headers:
            response.headers.update(snapshot.to_headers())
        evaluator.check(context, module, action)
        request.state.subscription = snapshot
        return context

    return dependency
