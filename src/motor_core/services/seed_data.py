# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Seed reference data and rate tables into a record store.

Seeding is idempotent per table: a table that already holds records is
left untouched.
"""

from decimal import Decimal

from attrs import field, frozen
from beartype import beartype

from ..core.logging_utils import get_logger
from ..core.store import RecordStore
from ..models.base import IdentifiableModel
from ..models.reference import (
    Currency,
    MotorCoverage,
    MotorProduct,
    ProfessionalCategory,
    VehicleCategory,
    VehicleMake,
    VehicleModel,
)
from .rating.rate_tables import RateTableRepository, RateTables
from .reference_data import REFERENCE_TABLES

logger = get_logger(__name__)

_COVERAGES: list[tuple[str, str, str, str, bool, str]] = [
    ("A", "Responsabilité Civile", "0", "Dommages causés aux tiers", True, "SECTION_A"),
    ("B", "Défense et Recours", "5000", "Frais de défense juridique", False, "SECTION_B"),
    ("C", "Incendie", "0", "Dommages par incendie", False, "SECTION_C"),
    ("D", "Vol", "0", "Vol du véhicule", False, "SECTION_D"),
    ("E", "Bris de Glace", "5000", "Vitres et pare-brise", False, "SECTION_E"),
    ("F", "Dommages Collision", "0", "Dommages au véhicule assuré", False, "SECTION_F"),
    ("G", "Catastrophes Naturelles", "3000", "Tempête, inondation", False, "SECTION_G"),
    ("H", "Individuelle Conducteur", "8000", "Dommages corporels du conducteur", False, "SECTION_H"),
]

_PRODUCTS: list[tuple[str, str, str, str]] = [
    ("MOTOR_TPO", "Au Tiers (Third Party Only)", "Assurance responsabilité civile uniquement", "AB"),
    ("MOTOR_TPFT", "Tiers + Vol & Incendie", "RC + Vol + Incendie", "ABCD"),
    ("MOTOR_COMP", "Tous Risques (Comprehensive)", "Toutes garanties incluses", "ABCDEFGH"),
]

_VEHICLE_CATEGORIES: list[tuple[str, str, str]] = [
    ("TOURISME", "Promenade et Affaires", "Véhicules personnels"),
    ("TRANSPORT_PERS", "Transport de Personnel", "Transport pour compte propre"),
    ("TRANSPORT_PUB", "Transport Public de Voyageurs", "Taxis, Cars"),
    ("MARCHANDISES", "Transport de Marchandises", "Camions, Camionnettes"),
    ("DEUX_ROUES", "Deux Roues", "Motos, Scooters"),
]

_VEHICLE_MAKES: dict[tuple[str, str], list[tuple[str, str]]] = {
    ("TOY", "Toyota"): [("COR", "Corolla"), ("RAV", "RAV4"), ("HIL", "Hilux")],
    ("HYU", "Hyundai"): [("TUC", "Tucson"), ("SFE", "Santa Fe")],
    ("PEU", "Peugeot"): [("3008", "3008"), ("208", "208")],
    ("MER", "Mercedes-Benz"): [("CLE", "Classe E")],
}

_CURRENCIES: list[tuple[str, str, str]] = [
    ("XOF", "Franc CFA (UEMOA)", "FCFA"),
    ("EUR", "Euro", "€"),
    ("USD", "US Dollar", "$"),
]

_PROFESSIONAL_CATEGORIES: list[tuple[str, str, str]] = [
    ("SANS", "Sans réduction", "0"),
    ("MEDECIN", "Médecin / Pharmacien", "0.20"),
    ("AVOCAT", "Avocat / Notaire", "0.15"),
    ("FONCTIONNAIRE", "Fonctionnaire", "0.10"),
]


@frozen
class SeedSummary:
    """Number of records written per table."""

    counts: dict[str, int] = field(factory=dict)

    @property
    def total(self) -> int:
        return sum(self.counts.values())


@beartype
async def store_reference(store: RecordStore, entity: IdentifiableModel) -> None:
    """Insert one reference entity into its table."""
    table = REFERENCE_TABLES[type(entity)]
    await store.insert(table, entity.id, entity.model_dump(mode="json"))


async def _seed_table(
    store: RecordStore,
    model: type[IdentifiableModel],
    entities: list[IdentifiableModel],
    summary: dict[str, int],
) -> bool:
    table = REFERENCE_TABLES[model]
    if await store.list_all(table):
        logger.debug("Table %s already seeded", table)
        return False
    for entity in entities:
        await store_reference(store, entity)
    summary[table] = len(entities)
    return True


@beartype
async def seed_reference_data(store: RecordStore) -> SeedSummary:
    """Seed coverages, products, vehicles, currencies and professions."""
    counts: dict[str, int] = {}

    coverages = [
        MotorCoverage(
            code=code,
            name=name,
            section_letter=letter,
            fixed_premium=Decimal(premium),
            description=description,
            is_mandatory=mandatory,
        )
        for letter, name, premium, description, mandatory, code in _COVERAGES
    ]
    if not await _seed_table(store, MotorCoverage, list(coverages), counts):
        coverages = [
            MotorCoverage.model_validate(record)
            for record in await store.list_all(REFERENCE_TABLES[MotorCoverage])
        ]

    by_letter = {coverage.section_letter: coverage.id for coverage in coverages}
    products = [
        MotorProduct(
            code=code,
            name=name,
            description=description,
            default_coverage_ids=[by_letter[letter] for letter in letters if letter in by_letter],
        )
        for code, name, description, letters in _PRODUCTS
    ]
    await _seed_table(store, MotorProduct, list(products), counts)

    await _seed_table(
        store,
        VehicleCategory,
        [
            VehicleCategory(code=code, name=name, description=description)
            for code, name, description in _VEHICLE_CATEGORIES
        ],
        counts,
    )

    makes = {key: VehicleMake(code=key[0], name=key[1]) for key in _VEHICLE_MAKES}
    if await _seed_table(store, VehicleMake, list(makes.values()), counts):
        await _seed_table(
            store,
            VehicleModel,
            [
                VehicleModel(code=code, name=name, make_id=makes[key].id)
                for key, models in _VEHICLE_MAKES.items()
                for code, name in models
            ],
            counts,
        )

    await _seed_table(
        store,
        Currency,
        [Currency(code=code, name=name, symbol=symbol) for code, name, symbol in _CURRENCIES],
        counts,
    )
    await _seed_table(
        store,
        ProfessionalCategory,
        [
            ProfessionalCategory(code=code, name=name, discount_rate=Decimal(rate))
            for code, name, rate in _PROFESSIONAL_CATEGORIES
        ],
        counts,
    )

    summary = SeedSummary(counts=counts)
    logger.info("Seeded %s reference records", summary.total)
    return summary


@beartype
async def seed_rate_tables(
    store: RecordStore, tables: RateTables | None = None
) -> RateTables:
    """Store the default rate tables unless tables are already stored."""
    repository = RateTableRepository(store)
    existing = await store.list_all(RateTableRepository.TABLE)
    if existing:
        logger.debug("Rate tables already seeded")
        return await repository.load()

    tables = tables or RateTables.default()
    problems = tables.consistency_errors()
    if problems:
        raise ValueError(f"Inconsistent rate tables: {'; '.join(problems)}")

    await repository.save(tables)
    return tables
