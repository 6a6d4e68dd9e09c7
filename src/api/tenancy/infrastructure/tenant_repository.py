"""PostgreSQL implementation of ITenantRecordStore.

Stores the tenant catalog and per-tenant migration history in the
control-plane database. The store is used outside request scope (by
the provisioning orchestrator and by routing), so it owns a session
factory and runs each operation in its own transaction.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import delete, exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenancy.domain.tenant import TenantMigration, TenantRecord
from tenancy.domain.value_objects import TenantId, TenantLimits, TenantStatus
from tenancy.infrastructure.models import (
    MIGRATION_STATUS_APPLIED,
    TenantMigrationModel,
    TenantModel,
)
from tenancy.infrastructure.observability import (
    DefaultTenantRecordStoreProbe,
    TenantRecordStoreProbe,
)
from tenancy.ports.exceptions import TenantSlugConflictError
from tenancy.ports.repositories import ITenantRecordStore


class TenantRecordStore(ITenantRecordStore):
    """Repository managing PostgreSQL storage for tenant records."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        probe: TenantRecordStoreProbe | None = None,
    ) -> None:
        """Initialize repository with a control-plane session factory.

        Args:
            session_factory: Factory for control-plane sessions
            probe: Optional domain probe for observability
        """
        self._session_factory = session_factory
        self._probe = probe or DefaultTenantRecordStoreProbe()

    async def create(
        self, record: TenantRecord, applied_migrations: list[str]
    ) -> TenantRecord:
        """Insert a tenant and its migration history in one transaction.

        Raises:
            TenantSlugConflictError: If the slug or database name is taken
        """
        model = self._to_model(record)
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    session.add(model)
                    # Flush so the tenant row exists before its history rows
                    await session.flush()
                    applied_at = datetime.now(UTC)
                    for version in applied_migrations:
                        session.add(
                            TenantMigrationModel(
                                tenant_id=model.id,
                                version=version,
                                status=MIGRATION_STATUS_APPLIED,
                                applied_at=applied_at,
                            )
                        )
            except IntegrityError as e:
                self._probe.duplicate_tenant(record.slug, record.database_name)
                raise TenantSlugConflictError(
                    f"Tenant '{record.slug}' already exists"
                ) from e

        self._probe.tenant_saved(str(record.id), record.slug)
        return self._to_domain(model)

    async def get_by_id(self, tenant_id: TenantId) -> TenantRecord | None:
        stmt = select(TenantModel).where(TenantModel.id == tenant_id.value)
        return await self._fetch_one(stmt)

    async def find_by_slug(self, slug: str) -> TenantRecord | None:
        stmt = select(TenantModel).where(TenantModel.slug == slug)
        return await self._fetch_one(stmt)

    async def exists_by_slug(self, slug: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(exists().where(TenantModel.slug == slug))
            )
            return bool(result.scalar())

    async def exists_by_database_name(self, database_name: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(exists().where(TenantModel.database_name == database_name))
            )
            return bool(result.scalar())

    async def list_all(self) -> list[TenantRecord]:
        stmt = select(TenantModel).order_by(TenantModel.created_at, TenantModel.slug)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [self._to_domain(model) for model in result.scalars().all()]

    async def update_status(
        self, tenant_id: TenantId, status: TenantStatus
    ) -> TenantRecord | None:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(TenantModel).where(TenantModel.id == tenant_id.value)
                )
                model = result.scalar_one_or_none()
                if model is None:
                    return None
                model.status = status.value
                model.updated_at = datetime.now(UTC)

        self._probe.tenant_status_updated(str(tenant_id), status.value)
        return self._to_domain(model)

    async def delete(self, tenant_id: TenantId) -> bool:
        async with self._session_factory() as session:
            async with session.begin():
                # History rows are removed explicitly; not every backend
                # enforces the ON DELETE CASCADE foreign key
                await session.execute(
                    delete(TenantMigrationModel).where(
                        TenantMigrationModel.tenant_id == tenant_id.value
                    )
                )
                result = await session.execute(
                    delete(TenantModel).where(TenantModel.id == tenant_id.value)
                )
                deleted = (result.rowcount or 0) > 0

        if deleted:
            self._probe.tenant_deleted(str(tenant_id))
        return deleted

    async def record_migrations(
        self, tenant_id: TenantId, versions: list[str]
    ) -> list[TenantMigration]:
        """Append versions not yet recorded for the tenant.

        Versions already in the history are skipped.
        """
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(TenantMigrationModel.version).where(
                        TenantMigrationModel.tenant_id == tenant_id.value
                    )
                )
                known = set(result.scalars().all())
                applied_at = datetime.now(UTC)
                models = [
                    TenantMigrationModel(
                        tenant_id=tenant_id.value,
                        version=version,
                        status=MIGRATION_STATUS_APPLIED,
                        applied_at=applied_at,
                    )
                    for version in dict.fromkeys(versions)
                    if version not in known
                ]
                session.add_all(models)

        self._probe.migrations_recorded(str(tenant_id), len(models))
        return [self._migration_to_domain(model) for model in models]

    async def list_migrations(self, tenant_id: TenantId) -> list[TenantMigration]:
        stmt = (
            select(TenantMigrationModel)
            .where(TenantMigrationModel.tenant_id == tenant_id.value)
            .order_by(TenantMigrationModel.applied_at, TenantMigrationModel.id)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [self._migration_to_domain(m) for m in result.scalars().all()]

    async def _fetch_one(self, stmt) -> TenantRecord | None:
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
            if model is None:
                return None
            return self._to_domain(model)

    @staticmethod
    def _to_model(record: TenantRecord) -> TenantModel:
        model = TenantModel(
            id=record.id.value,
            slug=record.slug,
            display_name=record.display_name,
            status=record.status.value,
            database_name=record.database_name,
            connection_string=record.connection_string,
            max_users=record.limits.max_users,
            max_storage_gb=record.limits.max_storage_gb,
            tier=record.tier,
            tenant_metadata=dict(record.metadata),
        )
        if record.created_at is not None:
            model.created_at = record.created_at
        if record.updated_at is not None:
            model.updated_at = record.updated_at
        return model

    @staticmethod
    def _to_domain(model: TenantModel) -> TenantRecord:
        return TenantRecord(
            id=TenantId(value=model.id),
            slug=model.slug,
            display_name=model.display_name,
            status=TenantStatus(model.status),
            database_name=model.database_name,
            connection_string=model.connection_string,
            limits=TenantLimits(
                max_users=model.max_users, max_storage_gb=model.max_storage_gb
            ),
            tier=model.tier,
            metadata=dict(model.tenant_metadata or {}),
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    @staticmethod
    def _migration_to_domain(model: TenantMigrationModel) -> TenantMigration:
        return TenantMigration(
            tenant_id=TenantId(value=model.tenant_id),
            version=model.version,
            status=model.status,
            applied_at=model.applied_at,
        )
