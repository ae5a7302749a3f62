"""
AssetServiceFacade -- create and update asset records with their identifiers
and change history in one transaction.

Responsibility:
    The single entry point callers use to save assets.  Orchestrates input
    validation, identifier derivation and allocation, duplicate checks,
    field updates and history recording.

Architecture position:
    Kernel > Services -- owns the transaction boundary.  With
    ``auto_commit=True`` (the default) each public call commits on success
    and rolls back on any failure; with ``auto_commit=False`` the caller
    owns commit/rollback.

Create flow:
    validate -> tenant exists -> apply fields -> management tag
    -> asset tag (derived category, year from request or asset date)
    -> persist -> commit

Update flow:
    validate -> load (AssetNotFoundError) -> snapshot -> apply fields
    -> identifiers (duplicate checks exclude the asset itself)
    -> record history -> commit

Identifier rules:
    - Omitted asset tag on create: derived category, year from the
      purchase date (devices) or install year (access points), next number.
    - Omitted identifiers on update: unchanged.
    - Requested key equal to the current one: unchanged (no new row).
    - Explicit number already used by another asset: DuplicateIdentifierError.
    - Next-number allocation that loses a race is retried once with a fresh
      number; a second loss raises OperationFailedError.

Failure modes:
    ValidationError (before any store access), TenantNotFoundError,
    AssetNotFoundError, DuplicateIdentifierError, OperationFailedError.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from asset_kernel.domain.categories import WIRELESS_AP_TYPE, derive_asset_tag_category
from asset_kernel.domain.clock import Clock, SystemClock
from asset_kernel.domain.dtos import (
    AssetFields,
    AssetRecord,
    AssetRef,
    DeviceFields,
    IdentifierRequest,
    TagRequest,
    WirelessApFields,
)
from asset_kernel.domain.identifiers import (
    SequenceKey,
    make_sequence_key,
    normalize_category,
    normalize_year,
    parse_sequence,
    year_token_from_date,
)
from asset_kernel.domain.values import AssetKind, IdentifierKind
from asset_kernel.exceptions import (
    AssetNotFoundError,
    DuplicateIdentifierError,
    IdentifierConflictError,
    OperationFailedError,
    TenantNotFoundError,
    ValidationError,
)
from asset_kernel.logging_config import LogContext, get_logger
from asset_kernel.models import ASSET_MODELS, HISTORY_MODELS
from asset_kernel.models.identifier import Identifier
from asset_kernel.models.location import Location, Operator
from asset_kernel.models.tenant import Tenant
from asset_kernel.selectors.identifier_selector import to_identifier_info
from asset_kernel.services.history_recorder import HistoryRecorder
from asset_kernel.services.identifier_allocator import IdentifierAllocator

logger = get_logger("services.asset_service")

_FIELD_TYPES: dict[AssetKind, type] = {
    AssetKind.DEVICE: DeviceFields,
    AssetKind.WIRELESS_AP: WirelessApFields,
}

# Plain column attributes copied from the fields DTO onto the model.
_SCALAR_FIELDS: dict[AssetKind, tuple[str, ...]] = {
    AssetKind.DEVICE: (
        "type", "manufacturer", "model_name", "purchase_date", "ip_address",
        "purpose", "set_type", "unused", "note",
    ),
    AssetKind.WIRELESS_AP: (
        "new_label_number", "device_number", "ap_year", "manufacturer", "model",
        "mac_address", "prev_location", "prev_label_number", "classroom_type", "speed",
    ),
}

_TAG_ATTRIBUTES: dict[IdentifierKind, str] = {
    IdentifierKind.ASSET_TAG: "asset_tag",
    IdentifierKind.MANAGEMENT_TAG: "management_tag",
}

MIN_AP_YEAR = 1900
MAX_AP_YEAR = 2100


@dataclass(frozen=True)
class _TagPlan:
    """A validated TagRequest.  derive_year: fall back to the asset's date."""

    category: str | None
    year: str | None
    derive_year: bool
    sequence: int | None


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class AssetServiceFacade:
    """
    Creates, updates, reads and deletes asset records.

    Guarantees:
        - Identifier allocation, field changes and history entries of one
          call commit together or not at all.
        - No history entry is written for a field whose display value did
          not change.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit
        self._allocator = IdentifierAllocator(session)
        self._recorder = HistoryRecorder(session, self._clock)

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    def create_asset(
        self,
        tenant_id: int,
        kind: AssetKind | str,
        fields: AssetFields,
        identifier_request: IdentifierRequest | None = None,
        actor_id: str | None = None,
    ) -> AssetRecord:
        """
        Create an asset and allocate its identifiers.

        Raises:
            ValidationError, TenantNotFoundError, DuplicateIdentifierError,
            OperationFailedError.
        """
        kind = self._validate_kind(kind)
        self._validate_fields(kind, fields)
        asset_plan, management_plan = self._validate_request(identifier_request)

        with LogContext.bind(tenant_id=tenant_id, actor_id=actor_id, operation="create_asset"):
            try:
                tenant = self._session.get(Tenant, tenant_id)
                if tenant is None:
                    raise TenantNotFoundError(tenant_id)

                asset = ASSET_MODELS[kind](tenant_id=tenant_id)
                self._apply_fields(kind, asset, tenant_id, fields)
                self._session.add(asset)

                if management_plan is not None:
                    self._assign_tag(kind, asset, tenant, IdentifierKind.MANAGEMENT_TAG, management_plan)
                self._assign_tag(
                    kind, asset, tenant, IdentifierKind.ASSET_TAG,
                    asset_plan or _TagPlan(None, None, True, None),
                )
                self._session.flush()

                record = self._to_record(kind, asset)
                if self._auto_commit:
                    self._session.commit()
            except Exception:
                if self._auto_commit:
                    self._session.rollback()
                raise

            logger.info(
                "asset_created",
                extra={
                    "asset_kind": kind.value,
                    "created_asset_id": record.id,
                    "asset_tag": record.asset_tag.display if record.asset_tag else None,
                    "management_tag": (
                        record.management_tag.display if record.management_tag else None
                    ),
                },
            )
            return record

    def update_asset(
        self,
        kind: AssetKind | str,
        asset_id: int,
        fields: AssetFields,
        identifier_request: IdentifierRequest | None = None,
        actor_id: str | None = None,
    ) -> AssetRecord:
        """
        Replace an asset's editable fields, re-point identifiers if requested,
        and record one history entry per changed field.

        Raises:
            ValidationError, AssetNotFoundError, DuplicateIdentifierError,
            OperationFailedError.
        """
        kind = self._validate_kind(kind)
        self._validate_fields(kind, fields)
        asset_plan, management_plan = self._validate_request(identifier_request)

        with LogContext.bind(asset_id=asset_id, actor_id=actor_id, operation="update_asset"):
            try:
                asset = self._load(kind, asset_id)
                tenant = asset.tenant
                previous = self._recorder.snapshot(kind, asset)

                self._apply_fields(kind, asset, asset.tenant_id, fields)
                if management_plan is not None:
                    self._assign_tag(kind, asset, tenant, IdentifierKind.MANAGEMENT_TAG, management_plan)
                if asset_plan is not None:
                    self._assign_tag(kind, asset, tenant, IdentifierKind.ASSET_TAG, asset_plan)
                self._session.flush()

                entries = self._recorder.record(kind, asset, previous, actor_id)
                record = self._to_record(kind, asset)
                if self._auto_commit:
                    self._session.commit()
            except Exception:
                if self._auto_commit:
                    self._session.rollback()
                raise

            logger.info(
                "asset_updated",
                extra={
                    "asset_kind": kind.value,
                    "history_entries": len(entries),
                },
            )
            return record

    def get_asset(self, kind: AssetKind | str, asset_id: int) -> AssetRecord:
        kind = self._validate_kind(kind)
        return self._to_record(kind, self._load(kind, asset_id))

    def delete_asset(
        self,
        kind: AssetKind | str,
        asset_id: int,
        actor_id: str | None = None,
    ) -> None:
        """
        Delete one asset together with its history.

        Its identifiers stay allocated so their numbers are never reissued.
        """
        kind = self._validate_kind(kind)
        with LogContext.bind(asset_id=asset_id, actor_id=actor_id, operation="delete_asset"):
            try:
                asset = self._load(kind, asset_id)
                history = HISTORY_MODELS[kind]
                result = self._session.execute(
                    delete(history)
                    .where(history.asset_id == asset_id)
                    .execution_options(synchronize_session=False)
                )
                self._session.delete(asset)
                self._session.flush()
                if self._auto_commit:
                    self._session.commit()
            except Exception:
                if self._auto_commit:
                    self._session.rollback()
                raise

            logger.info(
                "asset_deleted",
                extra={"asset_kind": kind.value, "history_deleted": result.rowcount},
            )

    # -----------------------------------------------------------------------
    # Validation (no store access)
    # -----------------------------------------------------------------------

    @staticmethod
    def _validate_kind(kind: AssetKind | str) -> AssetKind:
        try:
            return AssetKind(kind)
        except ValueError:
            raise ValidationError("kind", "unknown asset kind", kind) from None

    @staticmethod
    def _validate_fields(kind: AssetKind, fields: AssetFields) -> None:
        expected = _FIELD_TYPES[kind]
        if not isinstance(fields, expected):
            raise ValidationError(
                "fields", f"{kind.value} requires {expected.__name__}", type(fields).__name__
            )
        if kind == AssetKind.DEVICE:
            if fields.purchase_date is not None and not isinstance(fields.purchase_date, date):
                raise ValidationError("purchase_date", "must be a date", fields.purchase_date)
        elif fields.ap_year is not None:
            if not isinstance(fields.ap_year, date):
                raise ValidationError("ap_year", "must be a date", fields.ap_year)
            if not MIN_AP_YEAR <= fields.ap_year.year <= MAX_AP_YEAR:
                raise ValidationError(
                    "ap_year", f"must be between {MIN_AP_YEAR} and {MAX_AP_YEAR}", fields.ap_year
                )

    @staticmethod
    def _validate_tag(kind: IdentifierKind, request: TagRequest) -> _TagPlan:
        if request.category is None and kind == IdentifierKind.MANAGEMENT_TAG:
            raise ValidationError("category", "management tag requires a category")
        category = normalize_category(request.category) if request.category is not None else None
        # Asset tags without an explicit year take it from the asset's date.
        derive_year = kind == IdentifierKind.ASSET_TAG and request.year is None
        return _TagPlan(
            category=category,
            year=normalize_year(kind, request.year),
            derive_year=derive_year,
            sequence=parse_sequence(request.sequence),
        )

    def _validate_request(
        self, request: IdentifierRequest | None
    ) -> tuple[_TagPlan | None, _TagPlan | None]:
        if request is None:
            return None, None
        asset_plan = (
            self._validate_tag(IdentifierKind.ASSET_TAG, request.asset_tag)
            if request.asset_tag is not None else None
        )
        management_plan = (
            self._validate_tag(IdentifierKind.MANAGEMENT_TAG, request.management_tag)
            if request.management_tag is not None else None
        )
        return asset_plan, management_plan

    # -----------------------------------------------------------------------
    # Store work
    # -----------------------------------------------------------------------

    def _load(self, kind: AssetKind, asset_id: int):
        asset = self._session.get(ASSET_MODELS[kind], asset_id)
        if asset is None:
            raise AssetNotFoundError(kind.value, asset_id)
        return asset

    def _apply_fields(self, kind: AssetKind, asset, tenant_id: int, fields: AssetFields) -> None:
        for name in _SCALAR_FIELDS[kind]:
            setattr(asset, name, _clean(getattr(fields, name)))
        asset.location = self._location(tenant_id, _clean(fields.location))
        if kind == AssetKind.DEVICE:
            asset.operator = self._operator(
                tenant_id, _clean(fields.operator), _clean(fields.operator_position)
            )

    def _location(self, tenant_id: int, room_name: str | None) -> Location | None:
        """Find or create a location by room name."""
        if room_name is None:
            return None
        stmt = select(Location).where(
            Location.tenant_id == tenant_id, Location.room_name == room_name
        )
        location = self._session.execute(stmt).scalar_one_or_none()
        if location is not None:
            return location
        location = Location(tenant_id=tenant_id, room_name=room_name)
        try:
            with self._session.begin_nested():
                self._session.add(location)
                self._session.flush()
        except IntegrityError:
            location = self._session.execute(stmt).scalar_one_or_none()
            if location is None:
                raise
        return location

    def _operator(self, tenant_id: int, name: str | None, position: str | None) -> Operator | None:
        """
        Find or create the operator with exactly this name and position.

        Operator rows are shared between devices and never edited here: a
        new position means a different row, so other devices keep theirs.
        """
        if name is None:
            return None
        position_clause = (
            Operator.position.is_(None) if position is None else Operator.position == position
        )
        operator = self._session.execute(
            select(Operator)
            .where(Operator.tenant_id == tenant_id, Operator.name == name, position_clause)
            .order_by(Operator.id)
            .limit(1)
        ).scalar_one_or_none()
        if operator is None:
            operator = Operator(tenant_id=tenant_id, name=name, position=position)
            self._session.add(operator)
        return operator

    def _assign_tag(
        self,
        asset_kind: AssetKind,
        asset,
        tenant: Tenant,
        id_kind: IdentifierKind,
        plan: _TagPlan,
    ) -> None:
        category = plan.category
        year = plan.year
        if id_kind == IdentifierKind.ASSET_TAG:
            if category is None:
                category = derive_asset_tag_category(
                    self._asset_type(asset_kind, asset),
                    asset.management_tag.category if asset.management_tag is not None else None,
                )
            if plan.derive_year:
                year = year_token_from_date(self._asset_date(asset_kind, asset))

        seq_key = make_sequence_key(tenant.id, id_kind, category, year)
        attribute = _TAG_ATTRIBUTES[id_kind]
        current: Identifier | None = getattr(asset, attribute)

        if plan.sequence is None:
            if current is not None and current.key.sequence_key == seq_key:
                return
            setattr(asset, attribute, self._allocate_next(seq_key))
            return

        key = seq_key.with_sequence(plan.sequence)
        if current is not None and current.key == key:
            return
        excluding = AssetRef(asset_kind, asset.id) if asset.id is not None else None
        if self._allocator.is_duplicate(key, excluding=excluding):
            logger.warning(
                "duplicate_identifier_rejected",
                extra={"identifier_kind": id_kind.value, "display": key.display(tenant.code)},
            )
            raise DuplicateIdentifierError(id_kind.value, key.display(tenant.code), tenant.id)
        setattr(asset, attribute, self._allocator.allocate_explicit(key))

    def _allocate_next(self, key: SequenceKey) -> Identifier:
        args = (key.tenant_id, key.kind, key.category, key.year)
        try:
            return self._allocator.allocate_next(*args)
        except IdentifierConflictError:
            logger.warning(
                "identifier_allocation_retry",
                extra={"identifier_kind": key.kind.value, "category": key.category, "year": key.year},
            )
        try:
            return self._allocator.allocate_next(*args)
        except IdentifierConflictError as exc:
            raise OperationFailedError("identifier_allocation", 2, str(exc)) from exc

    @staticmethod
    def _asset_type(kind: AssetKind, asset) -> str | None:
        return asset.type if kind == AssetKind.DEVICE else WIRELESS_AP_TYPE

    @staticmethod
    def _asset_date(kind: AssetKind, asset) -> date | None:
        return asset.purchase_date if kind == AssetKind.DEVICE else asset.ap_year

    @staticmethod
    def _to_record(kind: AssetKind, asset) -> AssetRecord:
        location = asset.location.room_name if asset.location is not None else None
        if kind == AssetKind.DEVICE:
            fields: AssetFields = DeviceFields(
                type=asset.type,
                manufacturer=asset.manufacturer,
                model_name=asset.model_name,
                purchase_date=asset.purchase_date,
                ip_address=asset.ip_address,
                purpose=asset.purpose,
                set_type=asset.set_type,
                unused=bool(asset.unused),
                note=asset.note,
                location=location,
                operator=asset.operator.name if asset.operator is not None else None,
                operator_position=asset.operator.position if asset.operator is not None else None,
            )
        else:
            fields = WirelessApFields(
                location=location,
                new_label_number=asset.new_label_number,
                device_number=asset.device_number,
                ap_year=asset.ap_year,
                manufacturer=asset.manufacturer,
                model=asset.model,
                mac_address=asset.mac_address,
                prev_location=asset.prev_location,
                prev_label_number=asset.prev_label_number,
                classroom_type=asset.classroom_type,
                speed=asset.speed,
            )
        return AssetRecord(
            kind=kind,
            id=asset.id,
            tenant_id=asset.tenant_id,
            fields=fields,
            asset_tag=to_identifier_info(asset.asset_tag) if asset.asset_tag is not None else None,
            management_tag=(
                to_identifier_info(asset.management_tag)
                if asset.management_tag is not None else None
            ),
        )
