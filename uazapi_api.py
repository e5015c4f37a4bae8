"""
Integração com a API uazapi para WhatsApp
Envio de mensagens de texto pela instância do revendedor
"""

import logging
from typing import Any, Dict, Optional

import requests

from excecoes import ErroConfiguracao
from utils import limpar_telefone, mascarar_telefone

logger = logging.getLogger(__name__)


class UazapiAPI:
    """
    Wrapper da API uazapi.
    Endpoint usado:
      POST https://{subdominio}.uazapi.com/send/text
           header: token: <api_token da instância>
           body:   { number, text }
    """

    def __init__(self, subdominio: Optional[str], timeout: int = 20, base_url: Optional[str] = None):
        """Inicializa a integração; sem subdomínio o envio não é possível"""
        if not base_url:
            if not subdominio:
                raise ErroConfiguracao("UAZAPI_SUBDOMAIN not set")
            base_url = f"https://{subdominio}.uazapi.com"
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        self.headers = {
            "Content-Type": "application/json",
            "User-Agent": "Cobranca-Automatica/1.0",
        }

        logger.info(f"uazapi inicializada: {self.base_url}")

    def send_text(self, api_token: str, phone: str, message: str) -> Dict[str, Any]:
        """
        Envia uma mensagem de texto, uma única tentativa.

        Retorna {"success": True, "data": ...} para qualquer 2xx, senão
        {"success": False, "error": <corpo da resposta ou erro de transporte>}.
        """
        numero = limpar_telefone(phone)
        if not numero:
            return {"success": False, "error": "Número de telefone inválido"}

        url = f"{self.base_url}/send/text"
        headers = dict(self.headers, token=api_token)
        payload = {"number": numero, "text": message}

        try:
            resp = requests.post(url, headers=headers, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout:
            logger.warning(f"[uazapi] Timeout enviando para {mascarar_telefone(numero)}")
            return {"success": False, "error": f"Timeout após {self.timeout}s na requisição para uazapi"}
        except requests.exceptions.RequestException as e:
            logger.warning(f"[uazapi] Erro de conexão enviando para {mascarar_telefone(numero)}: {e}")
            return {"success": False, "error": str(e)}

        logger.debug(f"[uazapi] POST {url} -> {resp.status_code}")

        if 200 <= resp.status_code < 300:
            try:
                data = resp.json()
            except ValueError:
                data = resp.text
            return {"success": True, "status_code": resp.status_code, "data": data}

        return {"success": False, "status_code": resp.status_code, "error": resp.text}
