"""
HistorySelector -- read side of asset change history.

Two query paths, each backed by an index:

    list_for_asset    one asset's entries, newest first
    list_for_tenant   a tenant's entries for one asset kind, filtered and
                      paged, newest first

Ties on modified_at (all entries of one edit share a timestamp) are broken
by id descending so the order is stable across pages.
"""

from sqlalchemy import func, or_, select

from asset_kernel.domain.dtos import HistoryEntryInfo, HistoryFilter, HistoryPage, PageRequest
from asset_kernel.domain.history import field_label
from asset_kernel.domain.values import AssetKind
from asset_kernel.exceptions import ValidationError
from asset_kernel.models import HISTORY_MODELS
from asset_kernel.selectors.base import BaseSelector

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 200


def to_history_info(row) -> HistoryEntryInfo:
    return HistoryEntryInfo(
        id=row.id,
        asset_kind=row.asset_kind,
        asset_id=row.asset_id,
        tenant_id=row.tenant_id,
        field_name=row.field_name,
        field_label=field_label(row.field_name),
        before_value=row.before_value,
        after_value=row.after_value,
        actor_id=row.actor_id,
        modified_at=row.modified_at,
    )


class HistorySelector(BaseSelector):
    """Read-only history queries."""

    def __init__(
        self,
        session,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ):
        super().__init__(session)
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size

    def list_for_asset(self, kind: AssetKind, asset_id: int) -> list[HistoryEntryInfo]:
        """All entries of one asset, newest first."""
        model = HISTORY_MODELS[kind]
        rows = self.session.execute(
            select(model)
            .where(model.asset_id == asset_id)
            .order_by(model.modified_at.desc(), model.id.desc())
        ).scalars()
        return [to_history_info(row) for row in rows]

    def list_for_tenant(
        self,
        tenant_id: int,
        kind: AssetKind,
        filters: HistoryFilter | None = None,
        page: PageRequest | None = None,
    ) -> HistoryPage:
        """
        One page of a tenant's history for an asset kind, newest first.

        Raises:
            ValidationError: page < 1 or size < 1.
        """
        page = page or PageRequest()
        if page.page < 1:
            raise ValidationError("page", "must be 1 or greater", page.page)
        size = page.size if page.size is not None else self._default_page_size
        if size < 1:
            raise ValidationError("size", "must be 1 or greater", page.size)
        size = min(size, self._max_page_size)

        model = HISTORY_MODELS[kind]
        clauses = [model.tenant_id == tenant_id, *self._filter_clauses(model, filters)]

        total = self.session.execute(
            select(func.count(model.id)).where(*clauses)
        ).scalar_one()

        rows = self.session.execute(
            select(model)
            .where(*clauses)
            .order_by(model.modified_at.desc(), model.id.desc())
            .offset((page.page - 1) * size)
            .limit(size)
        ).scalars()

        return HistoryPage(
            items=tuple(to_history_info(row) for row in rows),
            total=total,
            page=page.page,
            size=size,
        )

    @staticmethod
    def _filter_clauses(model, filters: HistoryFilter | None) -> list:
        if filters is None:
            return []
        clauses = []
        if filters.field_name:
            clauses.append(model.field_name == filters.field_name)
        if filters.asset_id is not None:
            clauses.append(model.asset_id == filters.asset_id)
        if filters.actor_id:
            clauses.append(model.actor_id == filters.actor_id)
        if filters.keyword:
            keyword = (
                filters.keyword.strip().lower()
                .replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            )
            pattern = f"%{keyword}%"
            clauses.append(
                or_(
                    func.lower(model.before_value).like(pattern, escape="\\"),
                    func.lower(model.after_value).like(pattern, escape="\\"),
                )
            )
        if filters.modified_from is not None:
            clauses.append(model.modified_at >= filters.modified_from)
        if filters.modified_to is not None:
            clauses.append(model.modified_at < filters.modified_to)
        return clauses
