"""Animal records: CRUD plus the history bookkeeping around them.

Two writes touch more than one document:
- a new animal whose dam (maeNome) is a female of the herd gets a progeny
  entry on the dam's record, with its birth weight;
- when a calf's weighings change, its birth, weaning and yearling weights
  are copied to that progeny entry.
"""

import logging
from datetime import date

from herdbook.data.store import ANIMALS, LocalFirstStore
from herdbook.models import (
    Animal,
    MedicationAdministration,
    OffspringWeightRecord,
    WeighingType,
    WeightEntry,
)
from herdbook.models.common import new_id

logger = logging.getLogger(__name__)

PLACEHOLDER_PHOTO = (
    "https://storage.googleapis.com/aistudio-marketplace/gallery/cattle_management/cow_placeholder.png"
)


def find_by_tag(animals: list[Animal], tag: str) -> Animal | None:
    """Find an animal by ear tag (case and surrounding blanks ignored)."""
    wanted = tag.strip().lower()
    for animal in animals:
        if animal.tag.strip().lower() == wanted:
            return animal
    return None


def _find_dam(animals: list[Animal], dam_name: str | None) -> Animal | None:
    if not dam_name:
        return None
    dam = find_by_tag(animals, dam_name)
    return dam if dam and dam.is_female else None


def _milestone_weight(weighings: list[WeightEntry], kind: WeighingType) -> float | None:
    for entry in weighings:
        if entry.type == kind:
            return entry.weight_kg
    return None


async def fetch_animals(store: LocalFirstStore, refresh: bool = False) -> list[Animal]:
    records = await store.load(ANIMALS, refresh=refresh)
    return [Animal.from_dict(r) for r in records]


async def add_animal(store: LocalFirstStore, animal: Animal, herd: list[Animal] | None = None) -> Animal:
    """Register a new animal.

    Histories start empty except for an initial weighing (dated at birth,
    or today) when a weight is given. Animals without photos get the
    placeholder picture.

    Args:
        store: Data store
        animal: The new animal (its id is kept if set)
        herd: Current animals, for the dam lookup (loaded when omitted)

    Returns:
        The animal as stored
    """
    herd = await fetch_animals(store) if herd is None else herd

    record = animal.to_dict()
    for key in ("historicoSanitario", "historicoPrenhez", "historicoAborto", "historicoProgenie"):
        record[key] = []
    record["id"] = animal.id or new_id()
    record["fotos"] = animal.photos or [PLACEHOLDER_PHOTO]
    record["historicoPesagens"] = []
    if animal.weight_kg > 0:
        initial = WeightEntry(
            id=f"initial-{record['id']}",
            date=animal.birth_date or date.today(),
            weight_kg=animal.weight_kg,
            type=WeighingType.NONE,
        )
        record["historicoPesagens"] = [initial.to_dict()]

    stored = Animal.from_dict(await store.create(ANIMALS, record))

    dam = _find_dam(herd, animal.dam_name)
    if dam:
        entry = OffspringWeightRecord(
            id=f"prog_{stored.id}",
            offspring_tag=stored.tag,
            birth_weight_kg=animal.weight_kg if animal.weight_kg > 0 else None,
        )
        dam.progeny = [*dam.progeny, entry]
        await store.update(ANIMALS, dam.id, {"historicoProgenie": [p.to_dict() for p in dam.progeny]})
        logger.info("Added calf %s to progeny of %s", stored.tag, dam.tag)

    logger.info("Added animal %s", stored.tag)
    return stored


async def update_animal(
    store: LocalFirstStore,
    animal_id: str,
    changes: dict,
    herd: list[Animal] | None = None,
) -> dict:
    """Merge stored fields into an animal (a None value removes the field).

    When `historicoPesagens` changes and the animal's dam is in the herd,
    the milestone weights are copied to the dam's progeny entry for it.
    """
    record = await store.update(ANIMALS, animal_id, changes)

    if "historicoPesagens" not in changes:
        return record

    herd = await fetch_animals(store) if herd is None else herd
    animal = next((a for a in herd if a.id == animal_id), None)
    if animal is None:
        return record
    dam = _find_dam(herd, changes.get("maeNome", animal.dam_name))
    if dam is None:
        return record

    weighings = [WeightEntry.from_dict(w) for w in changes["historicoPesagens"] or []]
    birth = _milestone_weight(weighings, WeighingType.BIRTH)
    weaning = _milestone_weight(weighings, WeighingType.WEANING)
    yearling = _milestone_weight(weighings, WeighingType.YEARLING)
    tag = str(changes.get("brinco", animal.tag))

    progeny = list(dam.progeny)
    for i, entry in enumerate(progeny):
        if entry.offspring_tag.strip().lower() == tag.strip().lower():
            progeny[i] = OffspringWeightRecord(
                id=entry.id,
                offspring_tag=entry.offspring_tag,
                birth_weight_kg=birth if birth is not None else entry.birth_weight_kg,
                weaning_weight_kg=weaning if weaning is not None else entry.weaning_weight_kg,
                yearling_weight_kg=yearling if yearling is not None else entry.yearling_weight_kg,
            )
            break
    else:
        progeny.append(
            OffspringWeightRecord(
                id=f"prog_{animal_id}",
                offspring_tag=tag,
                birth_weight_kg=birth,
                weaning_weight_kg=weaning,
                yearling_weight_kg=yearling,
            )
        )

    dam.progeny = progeny
    await store.update(ANIMALS, dam.id, {"historicoProgenie": [p.to_dict() for p in progeny]})
    logger.debug("Updated progeny weights of %s on dam %s", tag, dam.tag)
    return record


async def delete_animal(store: LocalFirstStore, animal_id: str) -> None:
    await store.delete(ANIMALS, animal_id)
    logger.info("Deleted animal %s", animal_id)


async def add_weighing(
    store: LocalFirstStore,
    animal: Animal,
    entry: WeightEntry,
    herd: list[Animal] | None = None,
) -> Animal:
    """Append a weighing; the current weight becomes the latest weighing's."""
    weighings = sorted([*animal.weighings, entry], key=lambda w: w.date)
    animal.weighings = weighings
    animal.weight_kg = weighings[-1].weight_kg
    await update_animal(
        store,
        animal.id,
        {"historicoPesagens": [w.to_dict() for w in weighings], "pesoKg": animal.weight_kg},
        herd=herd,
    )
    return animal


async def add_medication(store: LocalFirstStore, animal: Animal, medication: MedicationAdministration) -> Animal:
    animal.medications = [*animal.medications, medication]
    await update_animal(
        store, animal.id, {"historicoSanitario": [m.to_dict() for m in animal.medications]}
    )
    return animal
