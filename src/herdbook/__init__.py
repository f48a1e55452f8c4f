"""herdbook: herd management for beef cattle farms.

Animals, weighings, treatments and breeding seasons are kept in a Firestore
database, with local snapshots and an offline write queue so the tools keep
working in the field.

Subpackages:
- herdbook.core: Configuration, Firestore REST client, auth, units and dates
- herdbook.models: Records stored in Firestore
- herdbook.data: Local-first store and record operations
- herdbook.sync: Offline write queue and collection snapshots
- herdbook.breeding: Breeding season rules, metrics and calving checks
- herdbook.analysis: GMD (average daily gain), filters and herd stats
- herdbook.export: CSV and HTML exports
- herdbook.importers: Scale file import
- herdbook.nfe: NF-e invoices for cattle sales
- herdbook.cli: Command-line tools
"""

# Re-export common items for convenience
from herdbook.core import client, settings
from herdbook.data import LocalFirstStore
from herdbook.models import Animal, BreedingSeason

__all__ = [
    "client",
    "settings",
    "LocalFirstStore",
    "Animal",
    "BreedingSeason",
]

__version__ = "0.1.0"
