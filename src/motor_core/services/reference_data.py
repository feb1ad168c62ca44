# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Read-only access to clients, distributors, products and vehicle data."""

from typing import TypeVar
from uuid import UUID

from beartype import beartype

from ..core.errors import DomainError, NotFoundError
from ..core.result_types import Err, Ok, Result
from ..core.store import RecordStore
from ..models.base import IdentifiableModel
from ..models.reference import (
    Client,
    Currency,
    Distributor,
    MotorCoverage,
    MotorProduct,
    ProfessionalCategory,
    VehicleCategory,
    VehicleMake,
    VehicleModel,
)

M = TypeVar("M", bound=IdentifiableModel)

REFERENCE_TABLES: dict[type[IdentifiableModel], str] = {
    Client: "clients",
    Distributor: "distributors",
    MotorCoverage: "motor_coverages",
    MotorProduct: "motor_products",
    VehicleCategory: "vehicle_categories",
    VehicleMake: "vehicle_makes",
    VehicleModel: "vehicle_models",
    Currency: "currencies",
    ProfessionalCategory: "professional_categories",
}


@beartype
class ReferenceDataProvider:
    """Lookups over reference tables held in the record store."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    async def _get(self, model: type[M], entity_id: UUID) -> M | None:
        record = await self._store.get(REFERENCE_TABLES[model], entity_id)
        return model.model_validate(record) if record is not None else None

    async def _list(self, model: type[M]) -> list[M]:
        records = await self._store.list_all(REFERENCE_TABLES[model])
        return [model.model_validate(record) for record in records]

    async def _require(
        self, model: type[M], entity_id: UUID, label: str
    ) -> Result[M, DomainError]:
        entity = await self._get(model, entity_id)
        if entity is None:
            return Err(NotFoundError.for_entity(label, entity_id))
        return Ok(entity)

    async def get_client(self, client_id: UUID) -> Result[Client, DomainError]:
        return await self._require(Client, client_id, "Client")

    async def get_distributor(
        self, distributor_id: UUID
    ) -> Result[Distributor, DomainError]:
        return await self._require(Distributor, distributor_id, "Distributor")

    async def get_product(self, product_id: UUID) -> Result[MotorProduct, DomainError]:
        return await self._require(MotorProduct, product_id, "MotorProduct")

    async def get_product_by_code(self, code: str) -> MotorProduct | None:
        records = await self._store.find(REFERENCE_TABLES[MotorProduct], code=code)
        return MotorProduct.model_validate(records[0]) if records else None

    async def get_coverage(
        self, coverage_id: UUID
    ) -> Result[MotorCoverage, DomainError]:
        return await self._require(MotorCoverage, coverage_id, "Coverage")

    async def get_coverages(
        self, coverage_ids: list[UUID]
    ) -> Result[list[MotorCoverage], DomainError]:
        """Resolve coverages in request order, failing on the first unknown id."""
        coverages: list[MotorCoverage] = []
        for coverage_id in coverage_ids:
            result = await self.get_coverage(coverage_id)
            if isinstance(result, Err):
                return result
            coverages.append(result.value)
        return Ok(coverages)

    async def get_coverage_by_code(self, code: str) -> MotorCoverage | None:
        records = await self._store.find(REFERENCE_TABLES[MotorCoverage], code=code)
        return MotorCoverage.model_validate(records[0]) if records else None

    async def list_coverages(self) -> list[MotorCoverage]:
        coverages = await self._list(MotorCoverage)
        return sorted(coverages, key=lambda c: c.section_letter)

    async def list_products(self) -> list[MotorProduct]:
        return await self._list(MotorProduct)

    async def get_vehicle_category(
        self, category_id: UUID
    ) -> Result[VehicleCategory, DomainError]:
        return await self._require(VehicleCategory, category_id, "VehicleCategory")

    async def get_vehicle_make(self, make_id: UUID) -> Result[VehicleMake, DomainError]:
        return await self._require(VehicleMake, make_id, "VehicleMake")

    async def get_vehicle_model(
        self, model_id: UUID
    ) -> Result[VehicleModel, DomainError]:
        return await self._require(VehicleModel, model_id, "VehicleModel")

    async def list_vehicle_models(self, make_id: UUID) -> list[VehicleModel]:
        records = await self._store.find(REFERENCE_TABLES[VehicleModel], make_id=make_id)
        return [VehicleModel.model_validate(record) for record in records]

    async def get_currency(self, currency_id: UUID) -> Result[Currency, DomainError]:
        return await self._require(Currency, currency_id, "Currency")

    async def list_currencies(self) -> list[Currency]:
        return await self._list(Currency)

    async def list_professional_categories(self) -> list[ProfessionalCategory]:
        return await self._list(ProfessionalCategory)
