"""Tenant-scoping enforcer implemented as SQLAlchemy session events.

Every ORM statement and every flush on any :class:`~sqlalchemy.orm.Session`
passes through two listeners:

``do_orm_execute``
    Adds ``tenant_id = :scope`` loader criteria for every
    :class:`TenantOwnedMixin` entity in SELECT, UPDATE and DELETE statements
    when the bound scope is pinned to a tenant. Rows of other tenants are
    therefore invisible: a guessed id loads as ``None`` and surfaces as 404.
    Bulk INSERT and UPDATE values naming another tenant are rejected, and
    a single-row bulk INSERT without a tenant is stamped with the scope's.

``before_flush``
    Stamps the scope's tenant on new tenant-owned rows and rejects new,
    modified or deleted rows owned by a different tenant.

With no scope bound the listeners raise ``NoRequestContextError``: code that
reaches the database outside a request must bind a scope explicitly with
``scoped_to`` or ``elevated_scope``.

Usage:
    from kinship.infra.persistence.tenant_scoping import register_tenant_scoping

    register_tenant_scoping()  # once, at startup
"""

from __future__ import annotations

import logging
from itertools import chain
from typing import TYPE_CHECKING, Any

from sqlalchemy import BindParameter, event, inspect
from sqlalchemy.orm import Session, with_loader_criteria

from kinship.foundation.application.context import get_tenant_scope
from kinship.foundation.domain.exceptions import NoTenantContextError, TenantMismatchError
from kinship.infra.persistence.orm import TenantOwnedMixin

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.orm import ORMExecuteState, UOWTransaction

    from kinship.foundation.application.tenant_scope import TenantScope

logger = logging.getLogger(__name__)


def _apply_tenant_criteria(execute_state: ORMExecuteState) -> None:
    """Restrict ORM statements to the tenant in scope."""
    if execute_state.is_column_load or execute_state.is_relationship_load:
        # Lazy loads inherit the criteria of the statement that loaded the parent.
        return
    if not (
        execute_state.is_select
        or execute_state.is_insert
        or execute_state.is_update
        or execute_state.is_delete
    ):
        return

    scope = get_tenant_scope()
    if scope.cross_tenant:
        return

    entity = _tenant_owned_target(execute_state)
    if entity is not None and (execute_state.is_insert or execute_state.is_update):
        _check_bulk_write(execute_state, entity, scope)
    if execute_state.is_insert:
        return

    tenant_id = scope.tenant_id
    execute_state.statement = execute_state.statement.options(
        with_loader_criteria(
            TenantOwnedMixin,
            lambda cls: cls.tenant_id == tenant_id,
            include_aliases=True,
        )
    )


def _tenant_owned_target(execute_state: ORMExecuteState) -> type[Any] | None:
    mapper = execute_state.bind_mapper
    if mapper is None or not issubclass(mapper.class_, TenantOwnedMixin):
        return None
    return mapper.class_


def _literal(value: Any) -> Any:
    if isinstance(value, BindParameter):
        return value.effective_value
    return value


def _written_rows(execute_state: ORMExecuteState) -> list[dict[str, Any]]:
    """Column values an INSERT or UPDATE will write, one mapping per row.

    Values come from ``.values()`` on the statement and from the parameters
    passed to ``Session.execute`` (a dict, or a list of dicts for
    executemany). Keys are attribute names.
    """
    stmt: Any = execute_state.statement
    embedded: list[Any] = []
    if getattr(stmt, "_multi_values", None):
        embedded.extend(chain.from_iterable(stmt._multi_values))
    if getattr(stmt, "_values", None):
        embedded.append(stmt._values)
    if getattr(stmt, "_ordered_values", None):
        embedded.append(dict(stmt._ordered_values))

    columns = list(stmt.table.c.keys())
    rows = []
    for row in embedded:
        if not hasattr(row, "items"):
            row = dict(zip(columns, row, strict=False))
        rows.append({getattr(key, "key", key): _literal(value) for key, value in row.items()})

    params = execute_state.parameters
    if isinstance(params, dict):
        params = [params]
    rows.extend(dict(p) for p in params or ())
    return rows


def _check_bulk_write(
    execute_state: ORMExecuteState,
    entity: type[Any],
    scope: TenantScope,
) -> None:
    """Validate ``tenant_id`` in bulk INSERT and UPDATE values.

    Any row naming a tenant other than the scope's raises
    ``TenantMismatchError``. A single-row INSERT without a tenant is stamped
    with the scope's tenant. Other INSERTs must name the tenant on every row.
    """
    rows = _written_rows(execute_state)
    for row in rows:
        if "tenant_id" in row and row["tenant_id"] != scope.tenant_id:
            logger.warning(
                "bulk_write_tenant_mismatch",
                extra={"entity": entity.__name__, "scope_tenant_id": str(scope.tenant_id)},
            )
            raise TenantMismatchError(
                entity.__name__,
                record_tenant_id=str(row["tenant_id"]),
                scope_tenant_id=str(scope.tenant_id),
            )

    if not execute_state.is_insert or all("tenant_id" in row for row in rows):
        return
    if execute_state.parameters or getattr(execute_state.statement, "_multi_values", None):
        # Only single-row VALUES can be amended in place.
        raise NoTenantContextError(entity=entity.__name__)
    execute_state.statement = execute_state.statement.values(tenant_id=scope.tenant_id)


def _original_tenant(obj: Any) -> UUID | None:
    """Tenant the row had when it was loaded, before pending changes."""
    history = inspect(obj).attrs.tenant_id.history
    if history.deleted:
        return history.deleted[0]  # type: ignore[no-any-return]
    return obj.tenant_id  # type: ignore[no-any-return]


def _check_new(obj: Any, scope: TenantScope) -> None:
    entity = type(obj).__name__
    if obj.tenant_id is None:
        if scope.cross_tenant:
            if not obj.__tenant_nullable__:
                raise NoTenantContextError(entity=entity)
            return
        obj.tenant_id = scope.tenant_id
        return
    if not scope.cross_tenant and obj.tenant_id != scope.tenant_id:
        raise TenantMismatchError(
            entity,
            record_tenant_id=str(obj.tenant_id),
            scope_tenant_id=str(scope.tenant_id),
        )


def _check_existing(obj: Any, scope: TenantScope) -> None:
    if scope.cross_tenant:
        return
    for tenant_id in {_original_tenant(obj), obj.tenant_id}:
        if tenant_id != scope.tenant_id:
            raise TenantMismatchError(
                type(obj).__name__,
                record_tenant_id=str(tenant_id),
                scope_tenant_id=str(scope.tenant_id),
            )


def _guard_flush(
    session: Session,
    flush_context: UOWTransaction,
    instances: Any,
) -> None:
    """Stamp and validate tenant ownership of pending writes."""
    pending = [
        obj
        for obj in chain(session.new, session.dirty, session.deleted)
        if isinstance(obj, TenantOwnedMixin)
    ]
    if not pending:
        return

    scope = get_tenant_scope()
    for obj in pending:
        if obj in session.new:
            _check_new(obj, scope)
        elif obj in session.deleted or session.is_modified(obj):
            _check_existing(obj, scope)


def register_tenant_scoping() -> None:
    """Register the enforcer on the global ``Session`` class.

    Idempotent: repeated calls (e.g. one app per test) register once.
    """
    if not event.contains(Session, "do_orm_execute", _apply_tenant_criteria):
        event.listen(Session, "do_orm_execute", _apply_tenant_criteria)
    if not event.contains(Session, "before_flush", _guard_flush):
        event.listen(Session, "before_flush", _guard_flush)
    logger.debug("tenant_scoping_registered")

