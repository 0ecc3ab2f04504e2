"""User automations. Payloads are a tagged union keyed by automation type."""
import logging
from typing import Any

from pydantic import BaseModel, ValidationError

from finance_hub.backend.core import Row
from finance_hub.db import AutomationStatus, AutomationType
from finance_hub.schemas import (AUTOMATION_ADAPTER,
                                 AUTOMATION_CREATE_ADAPTER, Automation,
                                 AutomationUpdate)
from finance_hub.services.resource_service import ListFilters, ResourceService

logger = logging.getLogger(__name__)


class AutomationFilters(ListFilters):
    status: AutomationStatus | None = None
    type: AutomationType | None = None


class AutomationService(ResourceService[Automation]):
    table = "automations"
    label = "Automation"
    update_model = AutomationUpdate
    filters_model = AutomationFilters

    def _parse(self, row: Row) -> Automation:
        return AUTOMATION_ADAPTER.validate_python(row)

    def _parse_rows(self, rows: list[Row]) -> list[Automation]:
        """Rows whose trigger or action does not fit their type are left out and reported."""
        automations, skipped = [], []
        for row in rows:
            try:
                automations.append(self._parse(row))
            except ValidationError as exc:
                logger.warning(
                    "Skipping automation %s: %d invalid field(s)", row.get("id"), exc.error_count()
                )
                skipped.append(row.get("name") or row.get("id"))
        if skipped:
            self._notifier.error(
                "Some automations could not be loaded",
                f"Unrecognised trigger or action in: {', '.join(map(str, skipped))}",
            )
        return automations

    def _create_values(self, payload: Any) -> dict[str, Any]:
        if not isinstance(payload, BaseModel):
            payload = AUTOMATION_CREATE_ADAPTER.validate_python(payload)
        return payload.model_dump(mode="json")

    async def _update_values(self, resource_id: str, changes: Any) -> dict[str, Any]:
        values = await super()._update_values(resource_id, changes)
        if "trigger" in values or "action" in values:
            # new trigger/action must still fit the stored automation's type
            current = await self.get(resource_id)
            merged = {**current.model_dump(mode="json"), **values}
            checked = AUTOMATION_ADAPTER.validate_python(merged).model_dump(mode="json")
            values.update({key: checked[key] for key in ("trigger", "action") if key in values})
        return values

    async def set_status(self, automation_id: str, status: AutomationStatus | str) -> Automation:
        """Activate, pause or return an automation to draft."""
        return await self.update(automation_id, AutomationUpdate(status=AutomationStatus(status)))
