"""NF-e invoices for cattle sales: provider integrations, validators and a dry run."""

from herdbook.nfe.dry_run import DryRunResult, build_test_payload, run_dry_run, validate_prereqs
from herdbook.nfe.models import (
    Address,
    Issuer,
    NFeConfig,
    NFeItem,
    NFeResponse,
    Recipient,
    Sale,
    SaleItem,
    SaleStatus,
    load_nfe_config,
    save_nfe_config,
)
from herdbook.nfe.providers import cancel_nfe, convert_sale_items, emit_nfe
from herdbook.nfe.validators import describe_bovine, format_cpf_cnpj, validate_cnpj, validate_cpf

__all__ = [
    "Address",
    "Issuer",
    "NFeConfig",
    "NFeItem",
    "NFeResponse",
    "Recipient",
    "Sale",
    "SaleItem",
    "SaleStatus",
    "load_nfe_config",
    "save_nfe_config",
    "emit_nfe",
    "cancel_nfe",
    "convert_sale_items",
    "validate_cnpj",
    "validate_cpf",
    "format_cpf_cnpj",
    "describe_bovine",
    "DryRunResult",
    "validate_prereqs",
    "build_test_payload",
    "run_dry_run",
]
