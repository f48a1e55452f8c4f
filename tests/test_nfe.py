"""Tests for NF-e validators, providers, config and the dry run."""

import json
import xml.etree.ElementTree as ET
from datetime import UTC, date, datetime

import httpx
import pytest
import respx

from herdbook.core.config import settings
from herdbook.nfe import providers
from herdbook.nfe.dry_run import animal_summary, run_dry_run, validate_prereqs
from herdbook.nfe.models import (
    Address,
    Issuer,
    NFeConfig,
    Recipient,
    Sale,
    SaleItem,
    load_nfe_config,
    sale_from_dict,
    save_nfe_config,
)
from herdbook.nfe.validators import describe_bovine, format_cpf_cnpj, validate_cnpj, validate_cpf

ADDRESS = Address(
    street="Estrada do Passo",
    number="s/n",
    district="Interior",
    city="Bagé",
    city_code="4301602",
    state="RS",
    zip_code="96400000",
)


@pytest.fixture(autouse=True)
def no_env_credentials(monkeypatch):
    """Keep NF-e credentials from the environment out of these tests."""
    monkeypatch.setattr(settings, "nfe_provider", None)
    monkeypatch.setattr(settings, "nfe_api_key", None)
    monkeypatch.setattr(settings, "nfe_api_secret", None)
    monkeypatch.setattr(settings, "nfe_environment", "homologacao")


@pytest.fixture
def mock_nfe():
    """Mock NF-e provider APIs."""
    with respx.mock(assert_all_called=False) as mock:
        yield mock


@pytest.fixture
def sale():
    return Sale(
        id="sale-1",
        number=42,
        date=date(2025, 5, 10),
        recipient=Recipient(cpf_cnpj="11222333000181", name="Frigorífico Pampa", address=ADDRESS),
        items=[
            SaleItem(animal_id="steer-9", tag="S009", description="", quantity=1, unit_price=4200, total=4200),
        ],
    )


def _config(provider: str) -> NFeConfig:
    return NFeConfig(
        provider=provider,
        api_key="key",
        api_secret="secret",
        issuer=Issuer(cnpj="11222333000181", state_registration="0960012345", legal_name="Estância Boa Vista"),
    )


class TestValidators:
    """Tests for document numbers and descriptions."""

    def test_cnpj(self):
        assert validate_cnpj("11.222.333/0001-81")
        assert not validate_cnpj("11.222.333/0001-82")
        assert not validate_cnpj("1122233300018")

    def test_cpf(self):
        assert validate_cpf("529.982.247-25")
        assert not validate_cpf("529.982.247-24")
        assert not validate_cpf("111.111.111-11")

    def test_format(self):
        assert format_cpf_cnpj("52998224725") == "529.982.247-25"
        assert format_cpf_cnpj("11222333000181") == "11.222.333/0001-81"
        assert format_cpf_cnpj("123") == "123"

    def test_describe_bovine(self):
        assert describe_bovine("A12", "Hereford", "Macho", 420) == "Bovino - Hereford - Macho - Brinco A12 - 420kg"
        assert describe_bovine("A12") == "Bovino - Brinco A12"


class TestEmit:
    """Tests for emit_nfe against each provider."""

    def test_sale_items_get_rural_defaults(self, sale):
        [item] = providers.convert_sale_items(sale.items)
        assert item.description == "Bovino - Brinco S009"
        assert item.icms_cst == "41"
        assert item.unit == "CAB"

    async def test_without_provider(self, sale, monkeypatch):
        monkeypatch.setattr(providers, "load_nfe_config", lambda: NFeConfig())

        result = await providers.emit_nfe(sale)

        assert not result.success
        assert result.status == "erro"

    async def test_webmania_authorized(self, sale, mock_nfe):
        route = mock_nfe.post(providers.WEBMANIA_EMIT_URL).mock(
            return_value=httpx.Response(
                200, json={"status": "aprovado", "chave": "4325", "nfe": 101, "serie": 1, "danfe": "https://d"}
            )
        )

        result = await providers.emit_nfe(sale, _config("webmania"))

        assert result.success
        assert result.status == "autorizada"
        assert result.access_key == "4325"
        assert result.number == 101
        request = route.calls[0].request
        assert request.headers["X-Consumer-Key"] == "key"
        body = json.loads(request.content)
        assert body["ambiente"] == 2
        assert body["destinatario"]["ie"] == "ISENTO"
        assert body["produtos"][0]["ncm"] == "01022190"

    async def test_focus_rejection_carries_sefaz_message(self, sale, mock_nfe):
        mock_nfe.post(url__startswith="https://homologacao.focusnfe.com.br/v2/nfe").mock(
            return_value=httpx.Response(
                422,
                json={"status": "erro_autorizacao", "mensagem_sefaz": "Rejeição: IE inválida", "codigo_status": 209},
            )
        )

        result = await providers.emit_nfe(sale, _config("focusnfe"))

        assert not result.success
        assert result.status == "rejeitada"
        assert result.message == "Rejeição: IE inválida"
        assert result.error_code == "209"

    def test_enotas_payload_for_company(self, sale):
        payload = providers.build_enotas_payload(_config("enotas"), sale, providers.convert_sale_items(sale.items))
        assert payload["cliente"]["tipoPessoa"] == "J"
        assert payload["ambienteEmissao"] == "Homologacao"

    async def test_connection_error_is_a_response(self, sale, mock_nfe):
        mock_nfe.post(providers.WEBMANIA_EMIT_URL).mock(side_effect=httpx.ConnectError("down"))

        result = await providers.emit_nfe(sale, _config("webmania"))

        assert not result.success
        assert result.message.startswith("Erro de conexão")

    async def test_cancel_requires_justification(self):
        short = await providers.cancel_nfe("4325", "erro", _config("webmania"))
        assert "15 caracteres" in short.message

        long = await providers.cancel_nfe("4325", "Venda desfeita pelo comprador", _config("webmania"))
        assert "painel" in long.message

    async def test_provider_connection_check(self, mock_nfe):
        mock_nfe.get(providers.WEBMANIA_SEFAZ_URL).mock(return_value=httpx.Response(200, json={"status": "online"}))

        ok, message = await providers.test_connection(_config("webmania"))

        assert ok
        assert message == "Conexão OK - SEFAZ Online"

    async def test_connection_check_unsupported_provider(self):
        ok, _ = await providers.test_connection(_config("enotas"))
        assert not ok


class TestConfig:
    """Tests for the stored NF-e configuration."""

    def test_round_trip_with_address(self, tmp_path):
        config = _config("focusnfe")
        config.issuer.address = ADDRESS
        config.csc_id = "000001"

        save_nfe_config(config, tmp_path)
        loaded = load_nfe_config(tmp_path)

        assert loaded == config

    def test_settings_override_stored_credentials(self, tmp_path, monkeypatch):
        save_nfe_config(_config("webmania"), tmp_path)
        monkeypatch.setattr(settings, "nfe_api_key", "from-env")

        assert load_nfe_config(tmp_path).api_key == "from-env"

    def test_unreadable_file(self, tmp_path):
        (tmp_path / "nfe_config.json").write_text("[1, 2")
        assert load_nfe_config(tmp_path) == NFeConfig()

    def test_sale_from_dict(self):
        sale = sale_from_dict(
            {
                "numero": 7,
                "data": "2025-05-10",
                "destinatario": {"cpfCnpj": "529.982.247-25", "nome": "João", "endereco": {"uf": "RS"}},
                "itens": [{"brinco": "S009", "quantidade": 1, "valorUnitario": 4200, "valorTotal": 4200}],
            }
        )

        assert sale.recipient.cpf_cnpj == "52998224725"
        assert sale.recipient.is_person
        assert sale.total == 4200
        assert sale.items[0].cfop == "5102"


class TestDryRun:
    """Tests for the SEFAZ integration dry run."""

    def test_empty_config_lists_everything_missing(self, sample_herd):
        result = run_dry_run(NFeConfig(), sample_herd)

        assert not result.success
        assert result.missing == [
            "CPF/CNPJ do emitente",
            "Inscrição Estadual do emitente",
            "ID do CSC (código de segurança)",
            "Token do CSC",
            "Município do emitente",
            "UF do emitente",
        ]
        assert result.next_steps[0].startswith("Aponte o backend")

    def test_complete_config(self, sample_cow):
        config = _config("webmania")
        config.issuer.address = ADDRESS
        config.csc_id, config.csc_token = "000001", "TOKEN"
        config.backend_endpoint = "https://nfe.example.com"
        config.certificate_password = "segredo"

        missing, warnings = validate_prereqs(config)

        assert missing == []
        assert warnings == []

    def test_payload_preview(self, sample_herd):
        config = _config("webmania")
        config.issuer.address = ADDRESS

        result = run_dry_run(config, sample_herd, now=datetime(2025, 5, 10, 12, tzinfo=UTC))
        root = ET.fromstring(result.payload_preview.encode("utf-8"))

        assert root.findtext("infNFe/ide/cMunFG") == "4301602"
        assert root.findtext("infNFe/ide/tpAmb") == "2"
        assert root.findtext("infNFe/det/prod/qCom") == "5"
        assert root.findtext("infNFe/total/ICMSTot/vNF") == "5000.00"
        assert root.findtext("infNFe/emit/CNPJ") == "11222333000181"

    def test_animal_summary(self, sample_cow):
        assert animal_summary([]) == "Nenhum animal cadastrado ainda."
        assert animal_summary([sample_cow]) == "1 cabeça(s), peso médio 450 kg. Exemplo: Mimosa (Hereford)."
