"""Google Sheets handler: appends one row through the Sheets v4 values:append endpoint."""

import logging
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from autoflow.exceptions import HandlerError
from autoflow.types import ActionConfig, ExecutionContext, GoogleSheetsConfig, MissingPathPolicy
from autoflow.workflows.templates import resolve_template, resolve_value

logger = logging.getLogger(__name__)

# async (user_id) -> OAuth access token with Sheets write scope
TokenProvider = Callable[[str], Awaitable[str]]


def to_row(values: Any) -> list[Any]:
    """Normalize resolved ``values`` into one row. Strings split on commas."""
    if values is None:
        return []
    if isinstance(values, list):
        return values
    if isinstance(values, str):
        return [v.strip() for v in values.split(",")] if values else []
    return [values]


class GoogleSheetsHandler:

    def __init__(
        self,
        token_provider: Optional[TokenProvider] = None,
        base_url: str = "https://sheets.googleapis.com/v4",
        timeout: float = 30.0,
        missing: MissingPathPolicy = MissingPathPolicy.EMPTY,
    ):
        self.token_provider = token_provider
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.missing = missing

    async def __call__(self, action: ActionConfig, context: ExecutionContext) -> dict[str, Any]:
        try:
            cfg = GoogleSheetsConfig.model_validate(action.config)
        except ValidationError as exc:
            raise HandlerError(f"Invalid google_sheets config: {exc}", action_type="google_sheets") from exc

        user_id = context.meta.user_id
        if not user_id:
            raise HandlerError("userId is required for Google Sheets actions", action_type="google_sheets")
        if self.token_provider is None:
            raise HandlerError("No Google token provider configured", action_type="google_sheets")

        spreadsheet_id = resolve_template(cfg.spreadsheet_id, context, self.missing)
        cell_range = resolve_template(cfg.range, context, self.missing)
        row = to_row(resolve_value(cfg.values, context, self.missing))
        if not spreadsheet_id.strip() or not cell_range.strip():
            raise HandlerError(
                "Google Sheets config is missing spreadsheetId or range", action_type="google_sheets"
            )

        token = await self.token_provider(user_id)
        url = f"{self.base_url}/spreadsheets/{spreadsheet_id}/values/{quote(cell_range, safe='!:')}:append"

        logger.info(f"[Sheets] append spreadsheet={spreadsheet_id} range={cell_range} cells={len(row)}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.post(
                    url,
                    headers={"Authorization": f"Bearer {token}"},
                    params={"valueInputOption": "RAW"},
                    json={"values": [row]},
                )
            r.raise_for_status()
        except httpx.HTTPError as exc:
            raise HandlerError(f"Google Sheets append failed: {exc}", action_type="google_sheets") from exc

        try:
            updates = r.json().get("updates") or {}
        except ValueError as exc:
            raise HandlerError(
                f"Google Sheets returned a non-JSON response: {exc}", action_type="google_sheets"
            ) from exc
        return {
            "spreadsheetId": spreadsheet_id,
            "updatedRange": updates.get("updatedRange", ""),
            "updatedRows": updates.get("updatedRows", 0),
        }
