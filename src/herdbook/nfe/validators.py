"""CPF/CNPJ check digits and invoice text helpers."""

import re

_NON_DIGITS = re.compile(r"\D")


def only_digits(value: str) -> str:
    return _NON_DIGITS.sub("", value or "")


def _cnpj_digit(digits: str) -> int:
    # Weights run 2..9 from the right, wrapping back to 2
    total = 0
    weight = 2
    for ch in reversed(digits):
        total += int(ch) * weight
        weight = 2 if weight == 9 else weight + 1
    remainder = total % 11
    return 0 if remainder < 2 else 11 - remainder


def validate_cnpj(cnpj: str) -> bool:
    digits = only_digits(cnpj)
    if len(digits) != 14:
        return False
    first = _cnpj_digit(digits[:12])
    if first != int(digits[12]):
        return False
    return _cnpj_digit(digits[:13]) == int(digits[13])


def _cpf_digit(digits: str) -> int:
    start = len(digits) + 1
    total = sum(int(ch) * (start - i) for i, ch in enumerate(digits))
    remainder = (total * 10) % 11
    return 0 if remainder == 10 else remainder


def validate_cpf(cpf: str) -> bool:
    """Check a CPF. Repeated-digit numbers (111.111.111-11) are invalid."""
    digits = only_digits(cpf)
    if len(digits) != 11 or len(set(digits)) == 1:
        return False
    if _cpf_digit(digits[:9]) != int(digits[9]):
        return False
    return _cpf_digit(digits[:10]) == int(digits[10])


def format_cpf_cnpj(value: str) -> str:
    """000.000.000-00 or 00.000.000/0000-00; anything else is returned as is."""
    digits = only_digits(value)
    if len(digits) == 11:
        return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"
    if len(digits) == 14:
        return f"{digits[:2]}.{digits[2:5]}.{digits[5:8]}/{digits[8:12]}-{digits[12:]}"
    return value


def describe_bovine(tag: str, breed: str | None = None, sex: str | None = None, weight_kg: float | None = None) -> str:
    """Default item description, e.g. "Bovino - Hereford - Macho - Brinco A12 - 420kg"."""
    parts = ["Bovino"]
    if breed:
        parts.append(breed)
    if sex:
        parts.append(sex)
    parts.append(f"Brinco {tag}")
    if weight_kg:
        parts.append(f"{weight_kg:g}kg")
    return " - ".join(parts)
