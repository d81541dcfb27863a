"""
MasterDataService -- units, conversions, items, locations and parties.

Responsibility:
    Create the reference data the ledger and fulfillment flows depend on,
    normalizing codes and rejecting duplicates within their scope.  Owns the
    write-time consistency check for conversion edges.

Architecture position:
    Kernel > Services.  Flush only.

Invariants enforced:
    - Codes are stripped and upper-cased before comparison and storage, so
      duplicates are detected case-insensitively.
    - Conversion consistency: a new edge must agree, within the configured
      relative tolerance, with any factor already implied by existing edges
      between the same two units.  For a scoped edge the check runs against
      that scope's effective graph; for a global edge against the global
      graph and every scope that does not override the pair.
    - Re-defining an existing pair with an equivalent factor is a no-op that
      returns the stored edge.

Failure modes:
    - DuplicateCodeError on a code clash.
    - *NotFoundError on dangling references.
    - InvalidConversionFactorError, ConflictingConversionError for edges.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stock_engines.conversion import UnitGraph, is_valid_factor, relative_difference
from stock_kernel.db.types import to_decimal
from stock_kernel.exceptions import (
    ConflictingConversionError,
    DuplicateCodeError,
    InvalidCodeError,
    InvalidConversionFactorError,
    UomNotFoundError,
    WarehouseNotFoundError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.item import Item
from stock_kernel.models.location import Bin, Warehouse
from stock_kernel.models.party import Party, PartyKind
from stock_kernel.models.scope import scope_key_for
from stock_kernel.models.uom import UnitOfMeasure, UomConversion
from stock_kernel.selectors.conversion_selector import ConversionSelector
from stock_kernel.services.base import BaseService
from stock_kernel.services.conversion_service import ConversionService

logger = get_logger("services.master_data")

DEFAULT_CONFLICT_TOLERANCE = Decimal("1e-9")


def normalize_code(code: str) -> str:
    """Strip and upper-case a business code."""
    if not code or not code.strip():
        raise InvalidCodeError(code)
    return code.strip().upper()


class MasterDataService(BaseService[UnitOfMeasure]):
    """
    Reference data creation.

    Contract:
        Each ``create_*`` method returns the flushed ORM row.  The caller
        owns the transaction.
    """

    def __init__(
        self,
        session: Session,
        conversion_service: ConversionService | None = None,
        conflict_tolerance: Decimal = DEFAULT_CONFLICT_TOLERANCE,
    ):
        super().__init__(session)
        self._conversions = conversion_service
        self._tolerance = conflict_tolerance
        self._selector = ConversionSelector(session)

    def _insert(self, row, entity_type: str, code: str, scope: str | None):
        """Flush ``row`` in a savepoint, mapping a unique violation to DuplicateCodeError."""
        savepoint = self.session.begin_nested()
        try:
            self.session.add(row)
            self.session.flush()
            savepoint.commit()
        except IntegrityError as exc:
            savepoint.rollback()
            raise DuplicateCodeError(entity_type, code, scope) from exc
        logger.info(
            "master_data_created",
            extra={
                "entity_type": entity_type,
                "entity_id": str(row.id),
                "code": code,
                "scope": scope,
            },
        )
        return row

    def _exists(self, model, *criteria) -> bool:
        return self.session.execute(
            select(func.count()).select_from(model).where(*criteria)
        ).scalar_one() > 0

    def _require_uom(self, uom_id: UUID) -> UnitOfMeasure:
        uom = self.session.get(UnitOfMeasure, uom_id)
        if uom is None:
            raise UomNotFoundError(str(uom_id))
        return uom

    # -- units -------------------------------------------------------------

    def create_uom(
        self,
        code: str,
        name: str,
        *,
        actor_id: UUID,
        family: str | None = None,
    ) -> UnitOfMeasure:
        code = normalize_code(code)
        if self._exists(UnitOfMeasure, UnitOfMeasure.code == code):
            raise DuplicateCodeError("UnitOfMeasure", code)
        return self._insert(
            UnitOfMeasure(code=code, name=name, family=family, created_by_id=actor_id),
            "UnitOfMeasure", code, None,
        )

    def define_conversion(
        self,
        from_uom_id: UUID,
        to_uom_id: UUID,
        factor: Decimal,
        *,
        actor_id: UUID,
        scope_id: UUID | None = None,
    ) -> UomConversion:
        """
        Define ``qty_to = qty_from * factor`` for a pair of units.

        Raises:
            InvalidConversionFactorError: factor not finite/positive, or the
                two units are the same.
            UomNotFoundError: either unit is unknown.
            ConflictingConversionError: factor disagrees with an existing path.
        """
        factor = to_decimal(factor, "factor")
        if not is_valid_factor(factor):
            raise InvalidConversionFactorError(from_uom_id, to_uom_id, factor)
        if from_uom_id == to_uom_id:
            raise InvalidConversionFactorError(
                from_uom_id, to_uom_id, factor, "a unit cannot convert to itself",
            )
        self._require_uom(from_uom_id)
        self._require_uom(to_uom_id)

        pair_key = UomConversion.make_pair_key(from_uom_id, to_uom_id)

        stored = self._selector.edge_for_pair(scope_id, pair_key)
        if stored is not None:
            stored_factor = UnitGraph.build([stored]).implied_factor(from_uom_id, to_uom_id)
            if relative_difference(factor, stored_factor) > self._tolerance:
                raise ConflictingConversionError(
                    from_uom_id, to_uom_id, factor, stored_factor,
                    str(scope_id) if scope_id else None,
                )
            return self.session.execute(
                select(UomConversion).where(
                    UomConversion.scope_key == scope_key_for(scope_id),
                    UomConversion.pair_key == pair_key,
                )
            ).scalar_one()

        self._check_consistency(from_uom_id, to_uom_id, factor, scope_id, pair_key)

        row = UomConversion(
            scope_id=scope_id,
            scope_key=scope_key_for(scope_id),
            pair_key=pair_key,
            from_uom_id=from_uom_id,
            to_uom_id=to_uom_id,
            factor=factor,
            created_by_id=actor_id,
        )
        row = self._insert(
            row, "UomConversion", pair_key, str(scope_id) if scope_id else None,
        )
        if self._conversions is not None:
            self._conversions.invalidate()
        return row

    def _check_consistency(
        self,
        from_uom_id: UUID,
        to_uom_id: UUID,
        factor: Decimal,
        scope_id: UUID | None,
        pair_key: str,
    ) -> None:
        if scope_id is not None:
            scopes: list[UUID | None] = [scope_id]
        else:
            scopes = [None] + [
                s for s in self._selector.scopes_with_edges()
                if self._selector.edge_for_pair(s, pair_key) is None
            ]

        for scope in scopes:
            graph = UnitGraph.build(
                self._selector.effective_edges(scope, exclude_pair=pair_key),
                strict=False,
            )
            implied = graph.implied_factor(from_uom_id, to_uom_id)
            if implied is not None and relative_difference(factor, implied) > self._tolerance:
                logger.warning(
                    "conversion_conflict_rejected",
                    extra={
                        "from_uom_id": str(from_uom_id),
                        "to_uom_id": str(to_uom_id),
                        "factor": str(factor),
                        "implied_factor": str(implied),
                        "scope_id": str(scope) if scope else None,
                    },
                )
                raise ConflictingConversionError(
                    from_uom_id, to_uom_id, factor, implied,
                    str(scope) if scope else None,
                )

    # -- items and locations ------------------------------------------------

    def create_item(
        self,
        sku: str,
        name: str,
        base_uom_id: UUID,
        *,
        actor_id: UUID,
        scope_id: UUID | None = None,
    ) -> Item:
        sku = normalize_code(sku)
        self._require_uom(base_uom_id)
        key = scope_key_for(scope_id)
        if self._exists(Item, Item.scope_key == key, Item.sku == sku):
            raise DuplicateCodeError("Item", sku, key or None)
        return self._insert(
            Item(
                scope_id=scope_id, scope_key=key, sku=sku, name=name,
                base_uom_id=base_uom_id, created_by_id=actor_id,
            ),
            "Item", sku, key or None,
        )

    def create_warehouse(
        self,
        code: str,
        name: str,
        *,
        actor_id: UUID,
        scope_id: UUID | None = None,
    ) -> Warehouse:
        code = normalize_code(code)
        key = scope_key_for(scope_id)
        if self._exists(Warehouse, Warehouse.scope_key == key, Warehouse.code == code):
            raise DuplicateCodeError("Warehouse", code, key or None)
        return self._insert(
            Warehouse(
                scope_id=scope_id, scope_key=key, code=code, name=name,
                created_by_id=actor_id,
            ),
            "Warehouse", code, key or None,
        )

    def create_bin(
        self,
        warehouse_id: UUID,
        code: str,
        *,
        actor_id: UUID,
        name: str | None = None,
    ) -> Bin:
        code = normalize_code(code)
        if self.session.get(Warehouse, warehouse_id) is None:
            raise WarehouseNotFoundError(str(warehouse_id))
        if self._exists(Bin, Bin.warehouse_id == warehouse_id, Bin.code == code):
            raise DuplicateCodeError("Bin", code, str(warehouse_id))
        return self._insert(
            Bin(warehouse_id=warehouse_id, code=code, name=name, created_by_id=actor_id),
            "Bin", code, str(warehouse_id),
        )

    def create_party(
        self,
        kind: PartyKind,
        code: str,
        name: str,
        *,
        actor_id: UUID,
        scope_id: UUID | None = None,
    ) -> Party:
        kind = PartyKind(kind)
        code = normalize_code(code)
        key = scope_key_for(scope_id)
        if self._exists(
            Party, Party.scope_key == key, Party.kind == kind.value, Party.code == code,
        ):
            raise DuplicateCodeError(f"Party[{kind.value}]", code, key or None)
        return self._insert(
            Party(
                scope_id=scope_id, scope_key=key, kind=kind.value, code=code,
                name=name, created_by_id=actor_id,
            ),
            f"Party[{kind.value}]", code, key or None,
        )
