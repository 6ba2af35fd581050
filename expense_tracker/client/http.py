"""HTTP client for talking with the expense REST service."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import requests
from pydantic import BaseModel, TypeAdapter

from expense_tracker import schemas
from expense_tracker.config import Settings, load_settings
from expense_tracker.errors import TransportError, UnknownServerError, error_for_status

LOG = logging.getLogger(__name__)

_JSON_BODY = TypeAdapter(dict[str, Any])


def _json_body(payload: Mapping[str, Any] | BaseModel, *, partial: bool = False) -> dict[str, Any]:
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json", exclude_unset=partial, exclude_none=not partial)
    return _JSON_BODY.dump_python(dict(payload), mode="json")


class ExpenseClient:
    """Thin wrapper over ``/api/expenses`` returning parsed schema objects.

    ``session`` may be any object exposing a requests-style ``request`` method,
    which lets tests plug in FastAPI's ``TestClient``.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        session: Any | None = None,
        settings: Settings | None = None,
    ) -> None:
        if base_url is None or timeout is None:
            settings = settings or load_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.session = session or requests.Session()

    @property
    def expenses_url(self) -> str:
        return f"{self.base_url}/api/expenses"

    def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            LOG.warning("%s %s failed: %s", method, url, exc)
            raise TransportError(f"Could not connect to the backend at {self.base_url}: {exc}") from exc
        try:
            payload = response.json()
        except ValueError as exc:
            raise UnknownServerError(f"Unexpected response from server (HTTP {response.status_code})") from exc
        if not isinstance(payload, dict):
            raise UnknownServerError(f"Unexpected response from server (HTTP {response.status_code})")
        if response.status_code >= 400 or not payload.get("success", False):
            raise error_for_status(response.status_code, payload.get("message"))
        return payload

    def list_expenses(
        self,
        *,
        category: schemas.Category | str | None = None,
        sort_by: str = "date",
        order: str = "desc",
        page: int = 1,
        limit: int = 10,
    ) -> list[schemas.ExpenseRead]:
        params: dict[str, Any] = {"page": page, "limit": limit, "sortBy": sort_by, "order": order}
        if category is not None:
            params["category"] = schemas.Category(category).value
        payload = self._request("GET", self.expenses_url, params=params)
        return [schemas.ExpenseRead.model_validate(item) for item in payload.get("data", [])]

    def fetch_all(
        self,
        *,
        category: schemas.Category | str | None = None,
        sort_by: str = "date",
        order: str = "desc",
        page_size: int = 100,
    ) -> list[schemas.ExpenseRead]:
        """Walk every page of the listing and return the concatenated records."""

        records: list[schemas.ExpenseRead] = []
        page = 1
        while True:
            batch = self.list_expenses(
                category=category, sort_by=sort_by, order=order, page=page, limit=page_size
            )
            records.extend(batch)
            if len(batch) < page_size:
                return records
            page += 1

    def get_expense(self, expense_id: str) -> schemas.ExpenseRead:
        payload = self._request("GET", f"{self.expenses_url}/{expense_id}")
        return schemas.ExpenseRead.model_validate(payload["data"])

    def create_expense(self, expense: Mapping[str, Any] | schemas.ExpenseCreate) -> schemas.ExpenseRead:
        payload = self._request("POST", self.expenses_url, json=_json_body(expense))
        return schemas.ExpenseRead.model_validate(payload["data"])

    def update_expense(
        self,
        expense_id: str,
        changes: Mapping[str, Any] | BaseModel,
    ) -> schemas.ExpenseRead:
        body = _json_body(changes, partial=isinstance(changes, schemas.ExpenseUpdate))
        payload = self._request("PUT", f"{self.expenses_url}/{expense_id}", json=body)
        return schemas.ExpenseRead.model_validate(payload["data"])

    def delete_expense(self, expense_id: str) -> str:
        payload = self._request("DELETE", f"{self.expenses_url}/{expense_id}")
        return str(payload.get("message", ""))

    def summary(self) -> schemas.SummaryRead:
        payload = self._request("GET", f"{self.expenses_url}/summary")
        return schemas.SummaryRead.model_validate(payload["data"])
