"""Pydantic request / response models and JSON shaping for the HTTP layer."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field

from trajet_api.core.utils import as_utc
from trajet_api.db.models import Trajet

_ALIASES = {"populate_by_name": True}


# -- Requests --------------------------------------------------------------


class SignupRequest(BaseModel):
    # presence is checked by the service so that a missing field is a 400
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone_number: Optional[str] = Field(default=None, alias="phoneNumber")
    roles: Optional[list[str]] = None

    model_config = _ALIASES


class SignInRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    fcm_token: Optional[str] = Field(default=None, alias="fcmToken")

    model_config = _ALIASES


class VerifyEmailRequest(BaseModel):
    user_id: Optional[str] = Field(default=None, alias="userId")
    verification_code: Optional[str] = Field(default=None, alias="verificationCode")

    model_config = _ALIASES


class EmailRequest(BaseModel):
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    password: Optional[str] = None


# -- Responses -------------------------------------------------------------


class MessageResponse(BaseModel):
    message: str


class SignupResponse(BaseModel):
    message: str
    user_id: str = Field(serialization_alias="userId")
    email_sent: bool = Field(serialization_alias="emailSent")


class ResendResponse(BaseModel):
    message: str
    user_id: str = Field(serialization_alias="userId")


class SignInResponse(BaseModel):
    id: str
    username: str
    email: str
    roles: list[str]
    access_token: str = Field(serialization_alias="accessToken")


# -- Trajets ---------------------------------------------------------------

# public JSON name -> column
TRAJET_FIELDS = {
    "pointRamassage": "point_ramassage",
    "pointLivraison": "point_livraison",
    "modeTransport": "mode_transport",
    "dateTraject": "date_traject",
    "driverId": "driver_id",
    "driver": "driver_id",
}


def trajet_from_payload(payload: Mapping[str, Any]) -> dict:
    """Map public field names onto column names; everything else passes through."""
    return {TRAJET_FIELDS.get(key, key): value for key, value in dict(payload or {}).items()}


def _iso(value) -> Optional[str]:
    moment = as_utc(value)
    return moment.isoformat() if moment else None


def trajet_to_dict(trajet: Trajet) -> dict:
    data = dict(trajet.details or {})
    data.update(
        {
            "id": trajet.id,
            "pointRamassage": trajet.point_ramassage,
            "pointLivraison": trajet.point_livraison,
            "modeTransport": trajet.mode_transport,
            "dateTraject": _iso(trajet.date_traject),
            "driverId": trajet.driver_id,
            "createdAt": _iso(trajet.created_at),
            "updatedAt": _iso(trajet.updated_at),
        }
    )
    return data
