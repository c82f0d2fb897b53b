"""ERP stock-adjustment client.

The ERP accepts the whole adjustment batch in a single ``PATCH``. Only an
HTTP 2xx whose JSON body says ``{"success": true}`` counts as an
acknowledgment; every other outcome raises ``ExternalServiceException``.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from stocktake.config import settings
from stocktake.core.exceptions import ExternalServiceException
from stocktake.schemas.integration import ERPStockUpdateItem

logger = logging.getLogger(__name__)


class ERPClient:

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        batch_path: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._base_url = (settings.ERP_BASE_URL if base_url is None else base_url).rstrip("/")
        self._token = settings.ERP_API_TOKEN if token is None else token
        self._timeout = settings.ERP_TIMEOUT_SECONDS if timeout is None else timeout
        self._batch_path = settings.ERP_BATCH_PATH if batch_path is None else batch_path
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self._base_url)

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def send_stock_updates(self, items: List[ERPStockUpdateItem]) -> Dict[str, Any]:
        if not self.is_configured:
            raise ExternalServiceException("ERP integration is not configured (ERP_BASE_URL is empty).")

        payload = [item.model_dump(by_alias=True) for item in items]
        try:
            with httpx.Client(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                resp = client.patch(self._batch_path, headers=self._headers(), json=payload)
        except httpx.HTTPError as exc:
            logger.error("erp_request_failed", extra={"items": len(payload), "error": str(exc)})
            raise ExternalServiceException(f"ERP unreachable: {exc}") from exc

        if resp.status_code < 200 or resp.status_code >= 300:
            logger.error("erp_request_rejected", extra={"status_code": resp.status_code, "body": resp.text[:500]})
            raise ExternalServiceException(
                f"ERP rejected the adjustment batch with HTTP {resp.status_code}.",
                details=[{"status_code": resp.status_code}],
            )

        try:
            body = resp.json()
        except ValueError as exc:
            raise ExternalServiceException("ERP returned a non-JSON acknowledgment.") from exc
        if not isinstance(body, dict) or body.get("success") is not True:
            message = body.get("message") if isinstance(body, dict) else None
            logger.error("erp_batch_not_acknowledged", extra={"items": len(payload), "erp_message": message})
            raise ExternalServiceException(
                f"ERP did not acknowledge the adjustment batch{': ' + str(message) if message else ''}."
            )

        logger.info("erp_batch_acknowledged", extra={"items": len(payload)})
        return body
