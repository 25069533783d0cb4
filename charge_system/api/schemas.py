"""
Pydantic schemas for API request/response models.

Charge creation uses the core CreateChargeRequest directly; responses use the
core Charge model.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from charge_system.core.types import ChargeStatus


class UpdateChargeStatusRequest(BaseModel):
    """Request schema for a manual status correction."""

    status: ChargeStatus = Field(..., description="New charge status")

    model_config = {"json_schema_extra": {"examples": [{"status": "PAID"}]}}


class PaymentMethodsResponse(BaseModel):
    """Payment methods the service can process."""

    methods: List[str] = Field(..., description="Supported payment method tags")


class HealthCheckResponse(BaseModel):
    """Response schema for health checks."""

    status: str = Field(..., description="Overall health status (healthy/unhealthy)")
    checks: Optional[Dict[str, Any]] = Field(default=None, description="Individual service checks")
    message: Optional[str] = Field(default=None, description="Status message")


class ErrorResponse(BaseModel):
    """Error body returned for failed requests."""

    detail: str = Field(..., description="Error message")
