"""Request and response models for CSV import and smart update."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ImportResponse(BaseModel):
    """Successful CSV import.

    Attributes:
        success: Always True (failures use the error envelope)
        imported: Records written
        total: Data rows parsed from the file
    """
    success: bool = True
    imported: int
    total: int


class SmartUpdateRequest(BaseModel):
    """Smart update request.

    Either ``actionId`` (legacy console id such as ``mainmenu-meals``) or
    ``kind`` (table key) selects the target. Fields are optional so missing
    input is answered with the console's own 400 message.
    """
    model_config = ConfigDict(populate_by_name=True)

    action_id: Optional[str] = Field(None, alias="actionId")
    kind: Optional[str] = None
    prompt: Optional[str] = None

    def target(self) -> Optional[str]:
        return self.action_id or self.kind


class SmartUpdateResponse(BaseModel):
    """Applied reconciliation diff."""
    success: bool = True
    action: str
    count: int
    summary: str
