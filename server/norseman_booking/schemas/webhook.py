"""Payment provider webhook schemas."""

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

COMPLETED_STATUS = "COMPLETED"


class LetsRegWebhookPayload(BaseModel):
    """Payment notification; accepts snake_case and camelCase keys."""

    model_config = ConfigDict(extra="ignore")

    reference_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("reference_id", "referenceId")
    )
    status: Optional[str] = None
    transaction_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("transaction_id", "transactionId")
    )

    @property
    def is_completed(self) -> bool:
        return self.status == COMPLETED_STATUS


class WebhookAck(BaseModel):
    """Acknowledgement returned to the payment provider."""

    received: bool = True
