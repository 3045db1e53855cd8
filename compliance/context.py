from __future__ import annotations

from contextvars import ContextVar, Token

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)
actor_id_var: ContextVar[str | None] = ContextVar("actor_id", default=None)
tenant_id_var: ContextVar[str | None] = ContextVar("tenant_id", default=None)


def set_correlation_id(value: str | None) -> Token[str | None]:
    return correlation_id_var.set(value)


def reset_correlation_id(token: Token[str | None]) -> None:
    correlation_id_var.reset(token)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


def bind_actor(actor_id: str | None, tenant_id: str | None) -> None:
    """Attach the resolved actor to the current request context for log lines."""

    actor_id_var.set(actor_id)
    tenant_id_var.set(tenant_id)


def get_actor_context() -> dict[str, str | None]:
    return {"actor_id": actor_id_var.get(), "tenant_id": tenant_id_var.get()}
