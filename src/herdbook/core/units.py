"""Weight conversion utilities using pint.

All stored weights are kilograms. Display units are controlled by
settings.display_weight_unit:
- "kg": Display as stored
- "arroba": Brazilian arroba, fixed at 15 kg for live-weight trading
"""

import pint

from herdbook.core.config import settings

# Kilograms per arroba (live weight convention)
KG_PER_ARROBA = 15

# Create a unit registry (lazily initialized)
_ureg: pint.UnitRegistry | None = None


def get_ureg() -> pint.UnitRegistry:
    """Get the pint unit registry (lazily initialized, arroba defined)."""
    global _ureg
    if _ureg is None:
        _ureg = pint.UnitRegistry()
        _ureg.define(f"arroba = {KG_PER_ARROBA} * kilogram")
    return _ureg


# =============================================================================
# Weight Conversions
# =============================================================================


def arroba_to_kg(arrobas: float) -> float:
    """Convert arrobas to kilograms."""
    ureg = get_ureg()
    return (arrobas * ureg.arroba).to(ureg.kilogram).magnitude


def kg_to_arroba(kg: float) -> float:
    """Convert kilograms to arrobas."""
    ureg = get_ureg()
    return (kg * ureg.kilogram).to(ureg.arroba).magnitude


def lb_to_kg(lb: float) -> float:
    """Convert pounds to kilograms (imported scale files may use lb)."""
    ureg = get_ureg()
    return (lb * ureg.pound).to(ureg.kilogram).magnitude


def to_kg(value: float, unit: str) -> float:
    """Convert a weight in "kg", "arroba" or "lb" to kilograms."""
    if unit == "kg":
        return value
    if unit == "arroba":
        return arroba_to_kg(value)
    if unit == "lb":
        return lb_to_kg(value)
    raise ValueError(f"Unknown weight unit: {unit}")


def weight_to_display(kg: float) -> tuple[float, str]:
    """Convert kilograms to display units.

    Args:
        kg: Weight in kilograms

    Returns:
        Tuple of (value, unit_symbol) in display units
    """
    if settings.display_weight_unit == "arroba":
        return (kg_to_arroba(kg), "@")
    return (kg, "kg")


def format_weight(kg: float | None, decimals: int = 1) -> str:
    """Format a weight for display.

    Args:
        kg: Weight in kilograms (None renders as a dash)
        decimals: Number of decimal places

    Returns:
        Formatted string like "320.5 kg" or "21.4 @"
    """
    if kg is None:
        return "-"
    value, unit = weight_to_display(kg)
    return f"{value:.{decimals}f} {unit}"


def get_weight_unit() -> str:
    """Get the weight unit symbol for current display settings."""
    return "@" if settings.display_weight_unit == "arroba" else "kg"
