"""Pydantic models for validating upsert payloads.

Payloads arrive from admin callers as loose JSON. Keys may be snake_case or
camelCase (``scheduledAt``). Only the keys a caller actually sent are merged
onto an existing record, which is why the store dumps these models with
``exclude_unset=True``.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Type, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from campaign_engine.config import engine_config as cfg
from campaign_engine.scheduling.due import registered_recurrences
from campaign_engine.exceptions import ValidationError

CampaignStatus = Literal["draft", "scheduled", "active", "paused", "completed"]

M = TypeVar("M", bound=BaseModel)


def safe_string_list(value: Any) -> List[str]:
    """Accept a list or a comma separated string; return trimmed, non-empty strings."""
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if isinstance(value, (list, tuple, set)):
        return [str(v).strip() for v in value if str(v).strip()]
    return []


class _Payload(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
        str_strip_whitespace=True,
    )


class CampaignPayload(_Payload):
    id: Optional[str] = None
    status: Optional[CampaignStatus] = None
    message: Optional[Dict[str, Any]] = None
    audience: Optional[Dict[str, Any]] = None
    scheduled_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    recurrence: Optional[str] = None
    channels: Optional[List[str]] = None
    name: Optional[str] = None
    advertiser_name: Optional[str] = None
    budget_tier: Optional[str] = None

    @field_validator("message", mode="before")
    @classmethod
    def _wrap_text_message(cls, v: Any) -> Any:
        if isinstance(v, str):
            return {"text": v}
        return v

    @field_validator("audience", mode="before")
    @classmethod
    def _normalise_audience(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            return v
        out = dict(v)
        for key in ("room_ids", "roomIds", "tags"):
            if key in out:
                out[key] = safe_string_list(out[key])
        if "roomIds" in out:
            out["room_ids"] = out.pop("roomIds")
        return out

    @field_validator("scheduled_at", "ends_at")
    @classmethod
    def _assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @field_validator("recurrence")
    @classmethod
    def _known_recurrence(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        if v not in registered_recurrences():
            raise ValueError(f"unknown recurrence '{v}'")
        return v

    @field_validator("channels", mode="before")
    @classmethod
    def _known_channels(cls, v: Any) -> Any:
        if v is None:
            return v
        # unknown channel names are dropped; an empty result falls back to the default
        channels = [c for c in safe_string_list(v) if c in cfg.CAMPAIGN_CHANNELS]
        return channels or list(cfg.DEFAULT_CHANNELS)


class NotificationPayload(_Payload):
    id: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None
    type: Optional[str] = None
    unread: Optional[bool] = None
    time: Optional[str] = None
    action_label: Optional[str] = None
    action_href: Optional[str] = None
    media_url: Optional[str] = None
    media_kind: Optional[str] = None
    room_id: Optional[str] = None
    campaign_id: Optional[str] = None


def parse_payload(model: Type[M], data: Any) -> M:
    """Validate ``data`` against ``model``; raise the engine ValidationError on failure."""
    if not isinstance(data, dict):
        raise ValidationError("payload must be a JSON object")
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(f"invalid {model.__name__}: {e.error_count()} error(s)", errors=e.errors()) from e


__all__ = ["CampaignPayload", "NotificationPayload", "parse_payload", "safe_string_list"]
