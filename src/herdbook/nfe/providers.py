"""
NF-e emission through third-party providers.

Supported providers:
- Webmania: https://webmaniabr.com/docs/nfe-api/
- Focus NFe: https://focusnfe.com.br/doc/
- eNotas: https://docs.enotas.com.br/

Provider failures (rejections, HTTP errors, network errors) never raise:
they come back as an NFeResponse with success=False and the provider's
message, so callers can show it to the user.
"""

import logging
import time

import httpx

from herdbook.nfe.models import (
    CFOP_RURAL_PRODUCER,
    ICMS_CST_NOT_TAXED,
    NCM_CATTLE_BREEDING,
    NFeConfig,
    NFeItem,
    NFeResponse,
    Recipient,
    Sale,
    SaleItem,
    load_nfe_config,
)

logger = logging.getLogger(__name__)

NATURE_OF_OPERATION = "Venda de Gado Bovino"

# Cancellation justification minimum length (SEFAZ rule)
MIN_JUSTIFICATION_CHARS = 15

REQUEST_TIMEOUT = 30

WEBMANIA_EMIT_URL = "https://webmaniabr.com/api/1/nfe/emissao/"
WEBMANIA_SEFAZ_URL = "https://webmaniabr.com/api/1/nfe/sefaz/"
FOCUS_URLS = {"producao": "https://api.focusnfe.com.br", "homologacao": "https://homologacao.focusnfe.com.br"}
ENOTAS_URLS = {"producao": "https://api.enotas.com.br", "homologacao": "https://api.sandbox.enotas.com.br"}


def convert_sale_items(items: list[SaleItem]) -> list[NFeItem]:
    """Sale items as invoice lines (exempt rural producer ICMS)."""
    return [
        NFeItem(
            code=item.tag or f"ITEM-{i}",
            description=item.description or f"Bovino - Brinco {item.tag}",
            ncm=item.ncm or NCM_CATTLE_BREEDING,
            cfop=item.cfop or CFOP_RURAL_PRODUCER,
            unit=item.unit or "CAB",
            quantity=item.quantity,
            unit_price=item.unit_price,
            total=item.total,
            icms_origin=0,
            icms_cst=ICMS_CST_NOT_TAXED,
        )
        for i, item in enumerate(items, start=1)
    ]


def _connection_error(error: Exception) -> NFeResponse:
    return NFeResponse(success=False, status="erro", message=f"Erro de conexão: {error}")


def _json_body(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {"mensagem": response.text or f"HTTP {response.status_code}"}
    return data if isinstance(data, dict) else {"mensagem": str(data)}


# =============================================================================
# Webmania
# =============================================================================


def _recipient_address(recipient: Recipient) -> dict:
    a = recipient.address
    return {
        "logradouro": a.street,
        "numero": a.number,
        "complemento": a.complement,
        "bairro": a.district,
        "municipio": a.city,
        "uf": a.state,
        "cep": a.zip_code,
        "codigo_municipio": a.city_code,
    }


def build_webmania_payload(config: NFeConfig, sale: Sale, items: list[NFeItem]) -> dict:
    issuer = config.issuer
    address = issuer.address
    return {
        "ID": str(int(time.time() * 1000)),
        "operacao": 1,  # outgoing
        "natureza_operacao": NATURE_OF_OPERATION,
        "modelo": 1,
        "finalidade": 1,
        "ambiente": 1 if config.is_production else 2,
        "emitente": {
            "cnpj": issuer.cnpj,
            "razao_social": issuer.legal_name,
            "nome_fantasia": issuer.trade_name,
            "ie": issuer.state_registration,
            "crt": issuer.tax_regime,
            "endereco": {
                "logradouro": address.street,
                "numero": address.number,
                "bairro": address.district,
                "municipio": address.city,
                "uf": address.state,
                "cep": address.zip_code,
                "codigo_municipio": address.city_code,
            }
            if address
            else {},
        },
        "destinatario": {
            "cpf_cnpj": sale.recipient.cpf_cnpj,
            "nome_razao_social": sale.recipient.name,
            "ie": sale.recipient.state_registration or "ISENTO",
            "endereco": _recipient_address(sale.recipient),
            "email": sale.recipient.email,
        },
        "produtos": [
            {
                "item": i,
                "codigo": item.code,
                "descricao": item.description,
                "ncm": item.ncm,
                "cfop": item.cfop,
                "unidade": item.unit,
                "quantidade": item.quantity,
                "subtotal": item.unit_price,
                "total": item.total,
                "impostos": {"icms": {"origem": item.icms_origin, "cst": item.icms_cst}},
            }
            for i, item in enumerate(items, start=1)
        ],
        "pedido": {
            "presenca": 9,  # not in person
            "modalidade_frete": 9,  # no freight
            "informacoes_complementares": sale.notes,
        },
    }


async def _webmania_emit(config: NFeConfig, sale: Sale, items: list[NFeItem]) -> NFeResponse:
    headers = {"X-Consumer-Key": config.api_key, "X-Consumer-Secret": config.api_secret or ""}
    async with httpx.AsyncClient() as client:
        response = await client.post(
            WEBMANIA_EMIT_URL,
            json=build_webmania_payload(config, sale, items),
            headers=headers,
            timeout=REQUEST_TIMEOUT,
        )
    data = _json_body(response)

    if data.get("status") in ("aprovado", "autorizado"):
        return NFeResponse(
            success=True,
            status="autorizada",
            message="NF-e emitida com sucesso",
            access_key=data.get("chave"),
            number=data.get("nfe"),
            series=data.get("serie"),
            protocol=data.get("recibo"),
            issued_at=data.get("data_emissao"),
            xml_url=data.get("xml"),
            danfe_url=data.get("danfe"),
        )
    error = data.get("error") if isinstance(data.get("error"), dict) else {}
    reason = data.get("motivo")
    return NFeResponse(
        success=False,
        status="rejeitada",
        message=error.get("message") or reason or data.get("mensagem") or "Erro na emissão",
        error_code=error.get("code"),
        errors=error.get("errors") or ([reason] if reason else []),
    )


# =============================================================================
# Focus NFe
# =============================================================================


def build_focus_payload(config: NFeConfig, sale: Sale, items: list[NFeItem]) -> dict:
    recipient = sale.recipient
    a = recipient.address
    return {
        "natureza_operacao": NATURE_OF_OPERATION,
        "forma_pagamento": 0,  # cash
        "tipo_documento": 1,  # outgoing
        "finalidade_emissao": 1,
        "cnpj_emitente": config.issuer.cnpj,
        "nome_destinatario": recipient.name,
        "cpf_destinatario": recipient.cpf_cnpj if len(recipient.cpf_cnpj) == 11 else None,
        "cnpj_destinatario": recipient.cpf_cnpj if len(recipient.cpf_cnpj) == 14 else None,
        "inscricao_estadual_destinatario": recipient.state_registration,
        "logradouro_destinatario": a.street,
        "numero_destinatario": a.number,
        "bairro_destinatario": a.district,
        "municipio_destinatario": a.city,
        "uf_destinatario": a.state,
        "cep_destinatario": a.zip_code,
        "codigo_municipio_destinatario": a.city_code,
        "email_destinatario": recipient.email,
        "itens": [
            {
                "numero_item": i,
                "codigo_produto": item.code,
                "descricao": item.description,
                "codigo_ncm": item.ncm,
                "cfop": item.cfop,
                "unidade_comercial": item.unit,
                "quantidade_comercial": item.quantity,
                "valor_unitario_comercial": item.unit_price,
                "valor_bruto": item.total,
                "icms_origem": item.icms_origin,
                "icms_situacao_tributaria": item.icms_cst,
            }
            for i, item in enumerate(items, start=1)
        ],
        "informacoes_adicionais_contribuinte": sale.notes,
        "modalidade_frete": 9,
    }


async def _focus_emit(config: NFeConfig, sale: Sale, items: list[NFeItem]) -> NFeResponse:
    ref = f"REF-{int(time.time() * 1000)}"
    async with httpx.AsyncClient() as client:
        response = await client.post(
            f"{FOCUS_URLS[config.environment]}/v2/nfe",
            params={"ref": ref},
            json=build_focus_payload(config, sale, items),
            auth=(config.api_key, ""),
            timeout=REQUEST_TIMEOUT,
        )
    data = _json_body(response)
    status = data.get("status")

    if status == "autorizado":
        return NFeResponse(
            success=True,
            status="autorizada",
            message="NF-e emitida com sucesso",
            access_key=data.get("chave_nfe"),
            number=data.get("numero"),
            series=data.get("serie"),
            protocol=data.get("protocolo"),
            issued_at=data.get("data_emissao"),
            xml_url=data.get("caminho_xml_nota_fiscal"),
            danfe_url=data.get("caminho_danfe"),
        )
    if status == "processando_autorizacao":
        return NFeResponse(
            success=True,
            status="pendente",
            message="NF-e em processamento. Consulte em alguns segundos.",
            access_key=data.get("chave_nfe"),
        )
    sefaz_message = data.get("mensagem_sefaz")
    code = data.get("codigo_status")
    return NFeResponse(
        success=False,
        status="rejeitada",
        message=sefaz_message or status or data.get("mensagem") or "Erro na emissão",
        error_code=str(code) if code is not None else None,
        errors=data.get("erros_validacao") or ([sefaz_message] if sefaz_message else []),
    )


# =============================================================================
# eNotas
# =============================================================================


def build_enotas_payload(config: NFeConfig, sale: Sale, items: list[NFeItem]) -> dict:
    recipient = sale.recipient
    a = recipient.address
    return {
        "tipo": "NFeModelo55",
        "idExterno": str(int(time.time() * 1000)),
        "ambienteEmissao": "Producao" if config.is_production else "Homologacao",
        "cliente": {
            "tipoPessoa": "F" if recipient.is_person else "J",
            "cpfCnpj": recipient.cpf_cnpj,
            "nome": recipient.name,
            "inscricaoEstadual": recipient.state_registration,
            "email": recipient.email,
            "telefone": recipient.phone,
            "endereco": {
                "logradouro": a.street,
                "numero": a.number,
                "complemento": a.complement,
                "bairro": a.district,
                "cidade": a.city,
                "codigoIbgeCidade": a.city_code,
                "uf": a.state,
                "cep": a.zip_code,
            },
        },
        "itens": [
            {
                "codigo": item.code,
                "descricao": item.description,
                "ncm": item.ncm,
                "cfop": item.cfop,
                "unidade": item.unit,
                "quantidade": item.quantity,
                "valorUnitario": item.unit_price,
            }
            for item in items
        ],
        "informacoesAdicionais": sale.notes,
    }


async def _enotas_emit(config: NFeConfig, sale: Sale, items: list[NFeItem]) -> NFeResponse:
    async with httpx.AsyncClient() as client:
        response = await client.post(
            f"{ENOTAS_URLS[config.environment]}/v2/empresas/{config.issuer.cnpj}/nf-e",
            json=build_enotas_payload(config, sale, items),
            auth=(config.api_key, ""),
            timeout=REQUEST_TIMEOUT,
        )
    data = _json_body(response)

    if data.get("status") == "Autorizada":
        return NFeResponse(
            success=True,
            status="autorizada",
            message="NF-e emitida com sucesso",
            access_key=data.get("chaveAcesso"),
            number=data.get("numero"),
            series=data.get("serie"),
            protocol=data.get("protocolo"),
            issued_at=data.get("dataEmissao"),
            xml_url=data.get("linkDownloadXml"),
            danfe_url=data.get("linkDownloadPdf"),
        )
    reason = data.get("motivoRejeicao")
    return NFeResponse(
        success=False,
        status="rejeitada" if data.get("status") == "Rejeitada" else "erro",
        message=reason or data.get("mensagem") or "Erro na emissão",
        errors=data.get("erros") or ([reason] if reason else []),
    )


# =============================================================================
# Public API
# =============================================================================

_EMITTERS = {
    "webmania": _webmania_emit,
    "focusnfe": _focus_emit,
    "enotas": _enotas_emit,
}


async def emit_nfe(sale: Sale, config: NFeConfig | None = None) -> NFeResponse:
    """Issue the invoice for a sale with the configured provider."""
    config = config or load_nfe_config()
    if not config.provider or not config.api_key:
        return NFeResponse(
            success=False,
            status="erro",
            message="Configuração de NF-e não encontrada. Configure o serviço primeiro.",
        )
    emitter = _EMITTERS.get(config.provider)
    if emitter is None:
        return NFeResponse(success=False, status="erro", message=f"Provider não suportado: {config.provider}")

    items = convert_sale_items(sale.items)
    logger.info("Emitting NF-e for sale %s via %s (%s)", sale.number, config.provider, config.environment)
    try:
        result = await emitter(config, sale, items)
    except httpx.HTTPError as e:
        logger.warning("NF-e provider %s unreachable: %s", config.provider, e)
        return _connection_error(e)

    if result.success:
        logger.info("NF-e %s for sale %s: %s", result.status, sale.number, result.access_key)
    else:
        logger.warning("NF-e for sale %s not issued: %s", sale.number, result.message)
    return result


async def query_nfe(access_key: str, config: NFeConfig | None = None) -> NFeResponse:
    """Status lookups are done in the provider's panel."""
    config = config or load_nfe_config()
    if not config.provider:
        return NFeResponse(success=False, status="erro", message="Configuração não encontrada")
    return NFeResponse(
        success=False,
        status="erro",
        message="Consulta não implementada para este provider. Use o painel do serviço.",
    )


async def cancel_nfe(access_key: str, justification: str, config: NFeConfig | None = None) -> NFeResponse:
    """Validate a cancellation request; the cancellation itself is done in the provider's panel."""
    config = config or load_nfe_config()
    if not config.provider:
        return NFeResponse(success=False, status="erro", message="Configuração não encontrada")
    if len(justification.strip()) < MIN_JUSTIFICATION_CHARS:
        return NFeResponse(
            success=False,
            status="erro",
            message=f"Justificativa deve ter no mínimo {MIN_JUSTIFICATION_CHARS} caracteres",
        )
    return NFeResponse(
        success=False,
        status="erro",
        message="Cancelamento deve ser feito pelo painel do serviço de NF-e.",
    )


async def test_connection(config: NFeConfig | None = None) -> tuple[bool, str]:
    """Check credentials against the provider's SEFAZ status endpoint.

    Returns:
        (ok, message)
    """
    config = config or load_nfe_config()
    try:
        async with httpx.AsyncClient() as client:
            if config.provider == "webmania":
                response = await client.get(
                    WEBMANIA_SEFAZ_URL,
                    headers={"X-Consumer-Key": config.api_key, "X-Consumer-Secret": config.api_secret or ""},
                    timeout=REQUEST_TIMEOUT,
                )
                if response.is_success:
                    return True, "Conexão OK - SEFAZ Online"
                error = _json_body(response).get("error")
                message = error.get("message") if isinstance(error, dict) else None
                return False, message or "Falha na autenticação"

            if config.provider == "focusnfe":
                response = await client.get(
                    f"{FOCUS_URLS[config.environment]}/v2/sefaz",
                    auth=(config.api_key, ""),
                    timeout=REQUEST_TIMEOUT,
                )
                return (True, "Conexão OK") if response.is_success else (False, "Falha na autenticação")
    except httpx.HTTPError as e:
        return False, f"Erro: {e}"

    return False, "Teste não disponível para este provider"
