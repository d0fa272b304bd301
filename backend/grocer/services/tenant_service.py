"""
Multi-Tenant Service: Owner-Scoped Data Access

WHY: Centralize tenant scoping so no catalog or ledger query can forget the
owner clause. Products and sales never get queried through db.session
directly; they go through an OwnerScope built from the authenticated
identity.

SECURITY INVARIANTS:
1. Every authenticated request has g.owner set (see decorators.require_auth)
2. Every query on an owned model filters owner_id == caller
3. owner_id on new records comes from the scope, never from client input
4. A lookup that misses on (id, owner) raises NotFoundError, whether the id
   does not exist at all or belongs to someone else
5. Cross-tenant hits are logged as security events

USAGE:
    scope = OwnerScope(g.owner.user_id)
    products = scope.query(Product).filter_by(category="Dairy").all()
    product = scope.get(Product, product_id)
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import update

from ..extensions import db
from .concurrency import lock_for_update
from .security_service import log_security_event


# Largest id a 64-bit INTEGER primary key can hold
MAX_RECORD_ID = 2**63 - 1


class NotFoundError(LookupError):
    """Raised when a record does not exist for the calling owner."""
    pass


@dataclass(frozen=True)
class OwnerScope:
    """
    Scoped repository for owner-held records.

    Every model passed in must carry an owner_id column.
    """
    owner_id: int

    def query(self, model, *entities):
        """Base query for `model` restricted to this owner."""
        query = db.session.query(*entities) if entities else db.session.query(model)
        return query.filter(model.owner_id == self.owner_id)

    def get(self, model, record_id: int, *, for_update: bool = False):
        """
        Fetch one owned record by id.

        Raises:
            NotFoundError: if no row matches both id and owner
        """
        if not 1 <= record_id <= MAX_RECORD_ID:
            raise NotFoundError(f"{_label(model)} not found")

        query = self.query(model).filter(model.id == record_id)
        if for_update:
            query = lock_for_update(query)
        record = query.first()
        if record is None:
            self._audit_miss(model, record_id)
            raise NotFoundError(f"{_label(model)} not found")
        return record

    def add(self, record):
        """Stamp the owner on a new record and stage it in the session."""
        record.owner_id = self.owner_id
        db.session.add(record)
        return record

    def update_where(self, model, record_id: int, values: dict, *conditions) -> int:
        """
        Single-statement UPDATE of one owned row, applied only if every
        extra condition still holds at write time.

        Returns the number of rows changed (0 or 1).
        """
        stmt = (
            update(model)
            .where(model.owner_id == self.owner_id, model.id == record_id, *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return db.session.execute(stmt).rowcount

    def _audit_miss(self, model, record_id: int) -> None:
        # Only the existence probe is unscoped; its result never reaches the caller.
        # Committing is safe: every miss ends the operation before any write.
        foreign_owner = (
            db.session.query(model.owner_id)
            .filter(model.id == record_id)
            .scalar()
        )
        if foreign_owner is not None and foreign_owner != self.owner_id:
            log_security_event(
                user_id=self.owner_id,
                event_type="CROSS_TENANT_ACCESS_DENIED",
                success=False,
                reason=f"{_label(model)} {record_id} belongs to owner {foreign_owner}",
            )


def _label(model) -> str:
    return model.__name__
