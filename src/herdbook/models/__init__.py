"""Record types stored in Firestore, with conversion to/from stored documents."""

from herdbook.models.animal import (
    AbortionRecord,
    Animal,
    AnimalStatus,
    Breed,
    MedicationAdministration,
    OffspringWeightRecord,
    PregnancyRecord,
    PregnancyType,
    Sex,
    WeighingType,
    WeightEntry,
)
from herdbook.models.breeding import (
    BreedingSeason,
    BullRef,
    BullType,
    CoverageRecord,
    CoverageType,
    PregnancyResult,
    RepasseData,
    SeasonBull,
    SeasonConfig,
    SeasonStatus,
)
from herdbook.models.farm import (
    BatchPurpose,
    BatchStatus,
    CalendarEvent,
    CalendarEventType,
    ManagementArea,
    ManagementBatch,
    Task,
)
from herdbook.models.user import DEFAULT_PERMISSIONS, UserPermissions, UserProfile, UserRole

__all__ = [
    "Animal",
    "AnimalStatus",
    "Breed",
    "Sex",
    "WeighingType",
    "PregnancyType",
    "MedicationAdministration",
    "WeightEntry",
    "PregnancyRecord",
    "AbortionRecord",
    "OffspringWeightRecord",
    "BreedingSeason",
    "BullRef",
    "BullType",
    "CoverageRecord",
    "CoverageType",
    "PregnancyResult",
    "RepasseData",
    "SeasonBull",
    "SeasonConfig",
    "SeasonStatus",
    "CalendarEvent",
    "CalendarEventType",
    "Task",
    "ManagementArea",
    "ManagementBatch",
    "BatchPurpose",
    "BatchStatus",
    "UserRole",
    "UserPermissions",
    "UserProfile",
    "DEFAULT_PERMISSIONS",
]
