"""
NF-e integration dry run.

Checks that the issuer data needed for direct SEFAZ integration is filled in
and builds a sample NF-e XML for the current herd, without signing or
sending anything.
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import UTC, datetime

from herdbook.models import Animal
from herdbook.nfe.models import NFeConfig

# Nominal value per head used in the sample payload
DRY_RUN_VALUE_PER_HEAD = 1_000


@dataclass
class DryRunResult:
    success: bool
    missing: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    payload_preview: str = ""
    next_steps: list[str] = field(default_factory=list)


def _clean(value: str | None) -> str:
    return (value or "").strip()


def _issuer_city(config: NFeConfig) -> tuple[str, str, str]:
    """(city name, IBGE code, state) from the issuer address."""
    address = config.issuer.address
    if address is None:
        return "", "", ""
    return _clean(address.city), _clean(address.city_code), _clean(address.state)


def validate_prereqs(config: NFeConfig) -> tuple[list[str], list[str]]:
    """Missing required fields and softer warnings, as user-facing labels."""
    city, city_code, state = _issuer_city(config)
    missing = []
    warnings = []
    if not _clean(config.issuer.cnpj):
        missing.append("CPF/CNPJ do emitente")
    if not _clean(config.issuer.state_registration):
        missing.append("Inscrição Estadual do emitente")
    if not _clean(config.csc_id):
        missing.append("ID do CSC (código de segurança)")
    if not _clean(config.csc_token):
        missing.append("Token do CSC")
    if not (city or city_code):
        missing.append("Município do emitente")
    if not state:
        missing.append("UF do emitente")
    if not _clean(config.backend_endpoint):
        warnings.append("Defina o endpoint do backend que assina e envia a NF-e (SOAP/REST)")
    if not _clean(config.certificate_password):
        warnings.append("Confirme a senha do certificado para evitar rejeições na assinatura")
    return missing, warnings


def animal_summary(animals: list[Animal]) -> str:
    if not animals:
        return "Nenhum animal cadastrado ainda."
    average = sum(a.weight_kg or 0 for a in animals) / len(animals)
    first = animals[0]
    return (
        f"{len(animals)} cabeça(s), peso médio {average:.0f} kg. "
        f"Exemplo: {first.name or first.tag} ({first.breed.value})."
    )


def _sub(parent: ET.Element, tag: str, text=None, **attrs) -> ET.Element:
    element = ET.SubElement(parent, tag, attrs)
    if text is not None:
        element.text = str(text)
    return element


def build_test_payload(config: NFeConfig, animals: list[Animal], now: datetime | None = None) -> str:
    """Sample NF-e 4.00 XML for selling the given animals (unsigned)."""
    now = now or datetime.now(UTC)
    city, city_code, state = _issuer_city(config)
    summary = animal_summary(animals)
    heads = max(len(animals), 1)
    total = len(animals) * DRY_RUN_VALUE_PER_HEAD

    nfe = ET.Element("NFe")
    inf = _sub(nfe, "infNFe", versao="4.00", Id="TESTE123456789")

    ide = _sub(inf, "ide")
    _sub(ide, "mod", 55)
    _sub(ide, "tpAmb", 1 if config.is_production else 2)
    _sub(ide, "finNFe", 1)
    _sub(ide, "natOp", "Venda de bovinos")
    _sub(ide, "cMunFG", city_code or "4300000")
    _sub(ide, "UF", state or "RS")
    _sub(ide, "serie", 1)
    _sub(ide, "nNF", 1)
    _sub(ide, "dhEmi", now.isoformat())
    _sub(ide, "tpEmis", 1)

    emit = _sub(inf, "emit")
    _sub(emit, "CNPJ", _clean(config.issuer.cnpj) or "00000000000000")
    _sub(emit, "IE", _clean(config.issuer.state_registration) or "ISENTO")
    _sub(emit, "xNome", _clean(config.issuer.legal_name) or "Produtor Rural")
    address = _sub(emit, "enderEmit")
    _sub(address, "xMun", city or "Município")
    _sub(address, "UF", state or "RS")

    det = _sub(inf, "det", nItem="1")
    prod = _sub(det, "prod")
    _sub(prod, "cProd", "BOV001")
    _sub(prod, "xProd", f"Bovinos vivos - {summary}")
    _sub(prod, "CFOP", "5107")
    _sub(prod, "uCom", "CAB")
    _sub(prod, "qCom", heads)
    _sub(prod, "vUnCom", f"{total / heads:.2f}")
    _sub(prod, "vProd", f"{total:.2f}")
    _sub(prod, "NCM", "01022100")
    icms = _sub(_sub(_sub(det, "imposto"), "ICMS"), "ICMS40")
    _sub(icms, "orig", 0)
    _sub(icms, "CST", 40)

    totals = _sub(_sub(inf, "total"), "ICMSTot")
    _sub(totals, "vProd", f"{total:.2f}")
    _sub(totals, "vNF", f"{total:.2f}")

    _sub(_sub(inf, "infAdic"), "infCpl", f"Dry-run gerado pelo herdbook: {summary}")

    ET.indent(nfe, space="  ")
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(nfe, encoding="unicode")


def run_dry_run(config: NFeConfig, animals: list[Animal], now: datetime | None = None) -> DryRunResult:
    missing, warnings = validate_prereqs(config)

    steps = [
        "Garanta que o backend consiga carregar o certificado A1/A3 para assinar o XML.",
        "Mantenha a numeração e série sincronizadas entre homologação e produção.",
        "Inclua GTA e dados do transporte na integração real quando houver movimentação de bovinos.",
    ]
    if not _clean(config.backend_endpoint):
        steps.insert(0, "Aponte o backend SOAP/REST que enviará o XML à SEFAZ-RS.")
    if config.is_production:
        steps.append("Revalide CSC e credenciais antes de enviar para produção.")

    return DryRunResult(
        success=not missing,
        missing=missing,
        warnings=warnings,
        payload_preview=build_test_payload(config, animals, now),
        next_steps=steps,
    )
