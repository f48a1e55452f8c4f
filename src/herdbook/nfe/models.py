"""
NF-e (Brazilian electronic invoice) records for cattle sales.

Issuer data and provider credentials are kept in .cache/nfe_config.json;
the provider, API key/secret and environment can also come from settings
(NFE_PROVIDER, NFE_API_KEY, ...) and then override the file.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Literal

from herdbook.core.config import get_cache_dir, settings
from herdbook.core.dates import parse_date

logger = logging.getLogger(__name__)

NFE_CONFIG_FILE = "nfe_config.json"

Provider = Literal["webmania", "focusnfe", "enotas"]
Environment = Literal["homologacao", "producao"]

# NCM codes for cattle
NCM_CATTLE_BREEDING = "01022190"  # live breeding cattle
NCM_CATTLE_OTHER = "01029090"  # other live cattle
NCM_BEEF = "02011000"

# CFOP codes for sales
CFOP_IN_STATE = "5101"
CFOP_INTERSTATE = "6101"
CFOP_EXPORT = "7101"
CFOP_RURAL_PRODUCER = "5102"
CFOP_RURAL_PRODUCER_INTERSTATE = "6102"

# ICMS situation for exempt rural producers
ICMS_CST_NOT_TAXED = "41"

# IBGE municipality codes (Rio Grande do Sul)
MUNICIPALITIES_RS = {
    "Alegrete": "4300406",
    "Bagé": "4301602",
    "Cachoeira do Sul": "4302709",
    "Dom Pedrito": "4306601",
    "Júlio de Castilhos": "4311403",
    "Lavras do Sul": "4311601",
    "Pelotas": "4314407",
    "Porto Alegre": "4314902",
    "Rosário do Sul": "4316006",
    "Santa Maria": "4316907",
    "Santana do Livramento": "4317103",
    "São Gabriel": "4318002",
    "Uruguaiana": "4322400",
}


class SaleStatus(Enum):
    DRAFT = "rascunho"
    AWAITING_NFE = "aguardando_nfe"
    NFE_ISSUED = "nfe_emitida"
    NFE_CANCELLED = "nfe_cancelada"
    NFE_REJECTED = "nfe_rejeitada"
    COMPLETED = "concluida"


@dataclass
class Address:
    street: str
    number: str
    district: str
    city: str
    city_code: str  # IBGE
    state: str
    zip_code: str
    complement: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> Address:
        return cls(
            street=data.get("logradouro", ""),
            number=data.get("numero", ""),
            district=data.get("bairro", ""),
            city=data.get("municipio", ""),
            city_code=data.get("codigoMunicipio", ""),
            state=data.get("uf", ""),
            zip_code=data.get("cep", ""),
            complement=data.get("complemento"),
        )

    def to_dict(self) -> dict:
        return {
            "logradouro": self.street,
            "numero": self.number,
            "complemento": self.complement,
            "bairro": self.district,
            "municipio": self.city,
            "codigoMunicipio": self.city_code,
            "uf": self.state,
            "cep": self.zip_code,
        }


@dataclass
class Recipient:
    """The buyer (destinatário)."""

    cpf_cnpj: str
    name: str
    address: Address
    state_registration: str | None = None  # IE
    email: str | None = None
    phone: str | None = None

    @property
    def is_person(self) -> bool:
        return len(self.cpf_cnpj) == 11


@dataclass
class SaleItem:
    animal_id: str
    tag: str
    description: str
    quantity: float
    unit_price: float
    total: float
    ncm: str = NCM_CATTLE_BREEDING
    cfop: str = CFOP_RURAL_PRODUCER
    unit: str = "CAB"  # "UN", "KG" or "CAB" (head)
    net_weight_kg: float | None = None
    gross_weight_kg: float | None = None


@dataclass
class Sale:
    id: str
    number: int
    date: date
    recipient: Recipient
    items: list[SaleItem]
    notes: str | None = None
    status: SaleStatus = SaleStatus.DRAFT

    @property
    def total(self) -> float:
        return round(sum(item.total for item in self.items), 2)


@dataclass
class NFeItem:
    code: str
    description: str
    ncm: str
    cfop: str
    unit: str
    quantity: float
    unit_price: float
    total: float
    icms_origin: int = 0  # 0 = national
    icms_cst: str = ICMS_CST_NOT_TAXED


@dataclass
class NFeResponse:
    success: bool
    status: Literal["autorizada", "rejeitada", "pendente", "cancelada", "erro"]
    message: str
    access_key: str | None = None  # chave
    number: int | None = None
    series: int | None = None
    protocol: str | None = None
    issued_at: str | None = None
    xml_url: str | None = None
    danfe_url: str | None = None
    error_code: str | None = None
    errors: list[str] = field(default_factory=list)


# =============================================================================
# Configuration
# =============================================================================


@dataclass
class Issuer:
    """The farm issuing the invoice (emitente)."""

    cnpj: str = ""
    state_registration: str = ""  # IE
    legal_name: str = ""
    trade_name: str | None = None
    tax_regime: int = 1  # CRT: 1 = Simples Nacional, 2 = excess, 3 = normal
    address: Address | None = None


@dataclass
class NFeConfig:
    provider: Provider | None = None
    api_key: str = ""
    api_secret: str = ""
    environment: Environment = "homologacao"
    issuer: Issuer = field(default_factory=Issuer)
    # SEFAZ direct-integration fields (used by the dry run)
    csc_id: str = ""
    csc_token: str = ""
    certificate_type: Literal["A1", "A3"] = "A1"
    certificate_password: str = ""
    backend_endpoint: str = ""
    last_gta_number: str = ""

    @property
    def is_production(self) -> bool:
        return self.environment == "producao"

    @classmethod
    def from_dict(cls, data: dict) -> NFeConfig:
        issuer = dict(data.get("issuer") or {})
        address = issuer.pop("address", None)
        return cls(
            provider=data.get("provider"),
            api_key=data.get("api_key", ""),
            api_secret=data.get("api_secret", ""),
            environment=data.get("environment", "homologacao"),
            issuer=Issuer(**issuer, address=Address.from_dict(address) if address else None),
            csc_id=data.get("csc_id", ""),
            csc_token=data.get("csc_token", ""),
            certificate_type=data.get("certificate_type", "A1"),
            certificate_password=data.get("certificate_password", ""),
            backend_endpoint=data.get("backend_endpoint", ""),
            last_gta_number=data.get("last_gta_number", ""),
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        if self.issuer.address:
            data["issuer"]["address"] = self.issuer.address.to_dict()
        return data


def _config_path(directory: Path | None = None) -> Path:
    return (directory or get_cache_dir()) / NFE_CONFIG_FILE


def load_nfe_config(directory: Path | None = None) -> NFeConfig:
    """Stored NF-e config with provider credentials from settings applied on top."""
    path = _config_path(directory)
    config = NFeConfig()
    if path.exists():
        try:
            with open(path) as f:
                config = NFeConfig.from_dict(json.load(f))
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning("Ignoring unreadable NF-e config %s: %s", path, e)

    if settings.nfe_provider:
        config.provider = settings.nfe_provider
    if settings.nfe_api_key:
        config.api_key = settings.nfe_api_key
    if settings.nfe_api_secret:
        config.api_secret = settings.nfe_api_secret
    if settings.nfe_environment != "homologacao":
        config.environment = settings.nfe_environment
    return config


def save_nfe_config(config: NFeConfig, directory: Path | None = None) -> Path:
    path = _config_path(directory)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)
    return path


def clear_nfe_config(directory: Path | None = None) -> None:
    _config_path(directory).unlink(missing_ok=True)


def sale_from_dict(data: dict) -> Sale:
    """Build a Sale from its JSON form (as written by `herdbook nfe emit --file`)."""
    recipient = data["destinatario"]
    return Sale(
        id=str(data.get("id", "")),
        number=int(data.get("numero", 0)),
        date=parse_date(data.get("data")) or date.today(),
        recipient=Recipient(
            cpf_cnpj="".join(ch for ch in recipient["cpfCnpj"] if ch.isdigit()),
            name=recipient["nome"],
            address=Address.from_dict(recipient.get("endereco") or {}),
            state_registration=recipient.get("ie"),
            email=recipient.get("email"),
            phone=recipient.get("telefone"),
        ),
        items=[
            SaleItem(
                animal_id=item.get("animalId", ""),
                tag=item.get("brinco", ""),
                description=item.get("descricao", ""),
                quantity=float(item.get("quantidade", 1)),
                unit_price=float(item.get("valorUnitario", 0)),
                total=float(item.get("valorTotal", 0)),
                ncm=item.get("ncm") or NCM_CATTLE_BREEDING,
                cfop=item.get("cfop") or CFOP_RURAL_PRODUCER,
                unit=item.get("unidade") or "CAB",
                net_weight_kg=item.get("pesoLiquido"),
                gross_weight_kg=item.get("pesoBruto"),
            )
            for item in data.get("itens", [])
        ],
        notes=data.get("observacoes"),
    )
