"""
Workforce platform API client.

Blocking HTTP via requests, exposed as coroutines through
asyncio.to_thread so each network call is a suspension point for the
upload orchestrator.

Auth: OAuth refresh-token grant; the access token is refreshed a few
minutes before it expires.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import requests
import structlog

from config.settings import Settings, get_settings
from exceptions import (
    AuthExpiredError,
    CreationFailure,
    ExternalServiceError,
    PayrateFailure,
    PlatformApiError,
)
from models.catalog import CatalogEntry, FieldDefinitions

logger = structlog.get_logger(__name__)

# ===================
# ENDPOINTS
# ===================
DEPARTMENTS = "/hr/v1.0/departments"
EMPLOYEES = "/hr/v1.0/employees"
EMPLOYEE_GROUPS = "/hr/v1.0/employeegroups"
EMPLOYEE_TYPES = "/hr/v1.0/employeetypes"
FIELD_DEFINITIONS = "/hr/v1.0/employees/fielddefinitions"
PAYRATES_BY_GROUP = "/pay/v1.0/payrates/employeeGroups"

PAGE_DELAY_SECONDS = 0.2


class PlatformClient:
    """
    Client for the platform's HR and pay APIs.

    Implements AuthProvider, RemoteEmployeeAPI, PortalSchemaProvider and
    CatalogProvider (see integrations/protocols.py).
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
        refresh_token: Optional[str] = None,
    ):
        self.settings = settings or get_settings()
        self.session = session or requests.Session()
        self.refresh_token = refresh_token
        self.access_token: Optional[str] = None
        self.token_expiry: Optional[datetime] = None

    # ===================
    # AUTH
    # ===================

    def is_authenticated(self) -> bool:
        """True when an unexpired access token is held."""
        if not (self.access_token and self.refresh_token and self.token_expiry):
            return False
        return datetime.now(timezone.utc) < self.token_expiry

    def _should_refresh(self) -> bool:
        if not self.access_token or not self.token_expiry:
            return True
        buffer = timedelta(minutes=self.settings.token_refresh_buffer_minutes)
        return datetime.now(timezone.utc) >= self.token_expiry - buffer

    def clear_tokens(self) -> None:
        self.access_token = None
        self.refresh_token = None
        self.token_expiry = None

    def _refresh_access_token(self, refresh_token: Optional[str] = None) -> None:
        """
        Exchange a refresh token for an access token.

        Raises:
            AuthExpiredError: If no refresh token is available or the grant fails
        """
        token = refresh_token or self.refresh_token
        if not token:
            raise AuthExpiredError("No refresh token available. Please re-authenticate.")

        logger.info("refreshing_access_token")
        try:
            response = self.session.post(
                self.settings.platform_auth_url,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": token,
                    "client_id": self.settings.platform_client_id or "",
                },
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Accept": "application/json",
                },
                timeout=self.settings.platform_request_timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error("token_refresh_request_failed", error=str(e))
            raise AuthExpiredError(f"Token refresh failed: {str(e)}")

        if not response.ok:
            payload = _json_or_empty(response)
            self.clear_tokens()
            logger.error("token_refresh_rejected", status=response.status_code)
            raise AuthExpiredError(
                f"Token refresh failed: {payload.get('error_description') or response.reason}"
            )

        tokens = response.json()
        self.refresh_token = tokens.get("refresh_token") or token
        self.access_token = tokens["access_token"]
        self.token_expiry = datetime.now(timezone.utc) + timedelta(
            seconds=int(tokens.get("expires_in", 3600))
        )
        logger.info("access_token_refreshed", expires_at=self.token_expiry.isoformat())

    async def initialize(self, refresh_token: str) -> None:
        """Store a refresh token and fetch the first access token."""
        await asyncio.to_thread(self._refresh_access_token, refresh_token)

    async def reauthenticate(self, credential: Optional[str]) -> bool:
        """
        Silent re-authentication with a stored refresh credential.

        Returns:
            True if a new access token was obtained
        """
        if not credential and not self.refresh_token:
            logger.warning("reauthentication_skipped", reason="no_credential")
            return False
        try:
            await asyncio.to_thread(self._refresh_access_token, credential)
            return True
        except AuthExpiredError as e:
            logger.warning("reauthentication_failed", error=e.message)
            return False

    async def test_connection(self) -> bool:
        try:
            await self.get_departments()
            return True
        except PlatformApiError as e:
            logger.error("connection_test_failed", status=e.platform_status)
            if e.is_auth_error:
                self.clear_tokens()
            return False
        except (ExternalServiceError, AuthExpiredError) as e:
            logger.error("connection_test_failed", error=e.message)
            return False

    # ===================
    # TRANSPORT
    # ===================

    def _headers(self) -> dict[str, str]:
        return {
            "X-ClientId": self.settings.platform_client_id or "",
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        """
        Authenticated request; returns the decoded JSON body ({} if none).

        Raises:
            AuthExpiredError: If the token cannot be refreshed
            PlatformApiError: On a non-2xx response
            ExternalServiceError: On a transport failure
        """
        if self._should_refresh():
            self._refresh_access_token()

        url = f"{self.settings.platform_api_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                headers=self._headers(),
                timeout=self.settings.platform_request_timeout,
                **kwargs
            )
        except requests.exceptions.RequestException as e:
            logger.error("platform_request_failed", method=method, path=path, error=str(e))
            raise ExternalServiceError("platform", f"Request to platform failed: {str(e)}")

        if response.ok:
            if "application/json" not in response.headers.get("Content-Type", ""):
                return {}
            try:
                payload = response.json()
            except ValueError as e:
                logger.error("platform_malformed_json", method=method, path=path, error=str(e))
                raise PlatformApiError(response.status_code, f"Malformed JSON from platform: {str(e)}")
            if not isinstance(payload, dict):
                raise PlatformApiError(
                    response.status_code,
                    f"Unexpected platform response of type {type(payload).__name__}"
                )
            return payload

        payload = _json_or_empty(response)
        message = (
            payload.get("message")
            or payload.get("error_description")
            or payload.get("error")
            or payload.get("detail")
            or response.reason
            or "Unknown error"
        )
        logger.error(
            "platform_api_error",
            method=method,
            path=path,
            status=response.status_code,
            message=message
        )
        raise PlatformApiError(response.status_code, str(message), payload)

    async def _call(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        return await asyncio.to_thread(self._request, method, path, **kwargs)

    # ===================
    # CATALOG / SCHEMA
    # ===================

    async def _get_catalog(self, path: str) -> list[CatalogEntry]:
        response = await self._call("GET", path)
        return [
            CatalogEntry(id=item["id"], name=item.get("name"))
            for item in response.get("data") or []
        ]

    async def get_departments(self) -> list[CatalogEntry]:
        return await self._get_catalog(DEPARTMENTS)

    async def get_employee_groups(self) -> list[CatalogEntry]:
        return await self._get_catalog(EMPLOYEE_GROUPS)

    async def get_employee_types(self) -> list[CatalogEntry]:
        return await self._get_catalog(EMPLOYEE_TYPES)

    async def get_field_definitions(self) -> FieldDefinitions:
        response = await self._call("GET", FIELD_DEFINITIONS, params={"type": "Post"})
        return FieldDefinitions.model_validate(response.get("data") or {})

    # ===================
    # EMPLOYEES
    # ===================

    async def find_by_emails(self, emails: list[str]) -> dict[str, dict[str, Any]]:
        """
        Existing employees whose userName matches one of the emails.

        The platform has no search-by-email endpoint, so all employees are
        scanned page by page.

        Args:
            emails: Login emails (any case)

        Returns:
            Matching employees keyed by lowercase email
        """
        wanted = {e.strip().lower() for e in emails if e and e.strip()}
        found: dict[str, dict[str, Any]] = {}
        if not wanted:
            return found

        limit = self.settings.existing_employee_page_size
        offset = 0
        while True:
            response = await self._call(
                "GET", EMPLOYEES, params={"limit": limit, "offset": offset}
            )
            page = response.get("data") or []
            for employee in page:
                user_name = (employee.get("userName") or "").strip().lower()
                if user_name in wanted:
                    found[user_name] = employee

            total = (response.get("paging") or {}).get("total", 0)
            offset += limit
            if not page or offset >= total:
                break
            await asyncio.sleep(PAGE_DELAY_SECONDS)

        logger.info("existing_employees_checked", checked=len(wanted), found=len(found))
        return found

    async def create(self, request: dict[str, Any]) -> int:
        """
        Create one employee.

        Raises:
            CreationFailure: If the platform rejects the request or is unreachable
        """
        try:
            response = await self._call("POST", EMPLOYEES, json=request)
        except PlatformApiError as e:
            message = e.user_friendly_message()
            if message != e.message:
                message = f"{message} ({e.message})"
            raise CreationFailure(
                message,
                details={"status": e.platform_status, "response": e.payload}
            )
        except (ExternalServiceError, AuthExpiredError) as e:
            raise CreationFailure(e.message, details={"code": e.code})

        data = response.get("data") or response
        employee_id = data.get("id") if isinstance(data, dict) else None
        if employee_id is None:
            raise CreationFailure("Platform response did not include an employee ID")
        try:
            return int(employee_id)
        except (TypeError, ValueError):
            raise CreationFailure(
                f"Platform returned an invalid employee ID: {employee_id!r}",
                details={"response": response}
            )

    async def set_payrate(
        self,
        employee_id: int,
        group_id: int,
        rate: float,
        valid_from: str,
    ) -> None:
        """
        Set one employee's hourly rate in one employee group.

        Raises:
            PayrateFailure: If the platform rejects the rate or is unreachable
        """
        body = {
            "wageType": "HourlyRate",
            "rate": rate,
            "employeeIds": [employee_id],
            "validFrom": valid_from,
        }
        try:
            await self._call("PUT", f"{PAYRATES_BY_GROUP}/{group_id}", json=body)
        except PlatformApiError as e:
            raise PayrateFailure(employee_id, group_id, e.user_friendly_message())
        except (ExternalServiceError, AuthExpiredError) as e:
            raise PayrateFailure(employee_id, group_id, e.message)


def _json_or_empty(response: requests.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}
