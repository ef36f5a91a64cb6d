"""Admin audit schemas."""

import enum
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class AuditAction(str, enum.Enum):
    CREATE_PRODUCT = "create_product"
    UPDATE_PRODUCT = "update_product"
    DELETE_PRODUCT = "delete_product"
    UPDATE_PRICE = "update_price"
    UPDATE_INVENTORY = "update_inventory"
    UPDATE_ORDER_STATUS = "update_order_status"
    CANCEL_ORDER = "cancel_order"
    REFUND_ORDER = "refund_order"
    CREATE_APPOINTMENT = "create_appointment"
    UPDATE_APPOINTMENT = "update_appointment"
    CANCEL_APPOINTMENT = "cancel_appointment"
    UPDATE_USER_ROLE = "update_user_role"
    UPDATE_USER_TIER = "update_user_tier"
    BAN_USER = "ban_user"
    UPDATE_SETTING = "update_setting"
    EXPORT_DATA = "export_data"
    BULK_UPDATE = "bulk_update"
    DELETE_ARCHIVE = "delete_archive"
    UPDATE_AVAILABILITY = "update_availability"


class AuditTargetType(str, enum.Enum):
    PRODUCT = "product"
    ORDER = "order"
    ORDER_ITEM = "order_item"
    USER = "user"
    PROFILE = "profile"
    APPOINTMENT = "appointment"
    ARCHIVE = "archive"
    SETTING = "setting"
    EXPERT = "expert"


class AuditLogEntry(BaseModel):
    """What happened. Who did it is supplied by the caller's session."""

    action: AuditAction
    target_type: AuditTargetType
    target_id: str | int | UUID | None = None
    old_value: dict | None = None
    new_value: dict | None = None
    metadata: dict = Field(default_factory=dict)


class AuditLogResult(BaseModel):
    success: bool
    error: str | None = None


class AuditLogRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    admin_id: UUID
    action: str
    target_type: str
    target_id: str | None = None
    old_value: dict | None = None
    new_value: dict | None = None
    metadata: dict = Field(default_factory=dict)
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime
    admin_name: str = "Unknown"
    admin_email: str = ""


class AuditLogPage(BaseModel):
    data: list[AuditLogRecord] = Field(default_factory=list)
    count: int = 0
