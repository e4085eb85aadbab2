from __future__ import annotations

import re
from typing import Annotated, Any, Mapping, Optional, Type

from pydantic import AfterValidator, BaseModel, ConfigDict, ValidationError
from pydantic_core import PydanticCustomError

from foc_core.errors import PayloadValidationError

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _required(message: str) -> AfterValidator:
    def check(value: str) -> str:
        if not value:
            raise PydanticCustomError("required", message)
        return value

    return AfterValidator(check)


def _iso_day(value: str) -> str:
    if not value:
        raise PydanticCustomError("required", "Delivery Date is required")
    if not DATE_RE.match(value):
        raise PydanticCustomError("date_format", "Invalid date format")
    return value


class _Payload(BaseModel):
    # Missing keys go through the same validators as blank ones.
    model_config = ConfigDict(validate_default=True)


class RequestPayload(_Payload):
    username: Annotated[str, _required("Username is required")] = ""
    requestor: Annotated[str, _required("Requestor is required")] = ""
    customRequestor: Optional[str] = None
    campaignName: Annotated[str, _required("Campaign Name is required")] = ""
    unitName: Annotated[str, _required("Unit Name is required")] = ""
    imeiIfAny: Optional[str] = None
    kolName: Annotated[str, _required("KOL Name is required")] = ""
    kolAddress: Annotated[str, _required("KOL Address is required")] = ""
    kolPhoneNumber: Annotated[str, _required("KOL Phone Number is required")] = ""
    deliveryDate: Annotated[str, AfterValidator(_iso_day)] = ""
    typeOfDelivery: Annotated[str, _required("Type of Delivery is required")] = ""
    typeOfFoc: Annotated[str, _required("Type of FOC is required")] = ""


class ReturnPayload(_Payload):
    username: Annotated[str, _required("Username is required")] = ""
    requestor: Annotated[str, _required("Requestor is required")] = ""
    customRequestor: Optional[str] = None
    unitName: Annotated[str, _required("Unit Name is required")] = ""
    imei: Annotated[str, _required("IMEI is required")] = ""
    fromKol: Annotated[str, _required("From KOL is required")] = ""
    kolAddress: Annotated[str, _required("KOL Address is required")] = ""
    kolPhoneNumber: Annotated[str, _required("KOL Phone Number is required")] = ""
    typeOfFoc: Annotated[str, _required("Type of FOC is required")] = ""


def parse_payload(model: Type[_Payload], data: Any) -> Any:
    """Validate `data`, raising `PayloadValidationError` with the first field message."""
    if isinstance(data, BaseModel):
        data = data.model_dump()
    if not isinstance(data, Mapping):
        raise PayloadValidationError("payload must be an object")
    try:
        return model.model_validate(dict(data))
    except ValidationError as exc:
        errors = exc.errors()
        message = errors[0]["msg"] if errors else "Validation failed"
        raise PayloadValidationError(str(exc), public_message=message) from exc


def final_requestor(payload: RequestPayload | ReturnPayload) -> str:
    if payload.requestor == "Other":
        return payload.customRequestor or "Other"
    return payload.requestor
