"""Importers for external data files (digital scales)."""
