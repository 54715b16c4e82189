"""Wire payloads sent by the client beacon."""
from __future__ import annotations

from dataclasses import dataclass, field

from mika.errors import ValidationError
from mika.models.tracking import EVENT_TYPES


def _str(value) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _float(value, field_name: str) -> float | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number", code="invalid_number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number", code="invalid_number")


def _dict(value, field_name: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError(f"{field_name} must be an object", code="invalid_object")
    return value


@dataclass(frozen=True)
class Utm:
    source: str | None = None
    medium: str | None = None
    campaign: str | None = None
    term: str | None = None
    content: str | None = None

    @classmethod
    def from_json(cls, data) -> "Utm":
        data = _dict(data, "utm")
        return cls(
            source=_str(data.get("source")),
            medium=_str(data.get("medium")),
            campaign=_str(data.get("campaign")),
            term=_str(data.get("term")),
            content=_str(data.get("content")),
        )


@dataclass(frozen=True)
class Device:
    type: str | None = None
    browser: str | None = None
    os: str | None = None

    @classmethod
    def from_json(cls, data) -> "Device":
        data = _dict(data, "device")
        return cls(type=_str(data.get("type")), browser=_str(data.get("browser")), os=_str(data.get("os")))


@dataclass(frozen=True)
class Geo:
    country: str | None = None
    region: str | None = None
    city: str | None = None

    @classmethod
    def from_json(cls, data) -> "Geo":
        data = _dict(data, "geo")
        return cls(country=_str(data.get("country")), region=_str(data.get("region")), city=_str(data.get("city")))


@dataclass(frozen=True)
class TrackPayload:
    """Body of POST /api/track."""

    type: str
    name: str | None = None
    value: float | None = None
    workspace_id: str | None = None
    landing_page_id: str | None = None
    campaign_id: str | None = None
    visitor_id: str | None = None
    cookie_id: str | None = None
    fingerprint_hash: str | None = None
    session_id: str | None = None
    lead_id: str | None = None
    url: str | None = None
    entry_url: str | None = None
    referrer: str | None = None
    utm: Utm = field(default_factory=Utm)
    device: Device = field(default_factory=Device)
    geo: Geo = field(default_factory=Geo)
    scroll_depth: float | None = None
    time_on_page: float | None = None
    element_clicked: str | None = None
    metadata: dict = field(default_factory=dict)

    @property
    def has_identity(self) -> bool:
        return bool(self.visitor_id or self.cookie_id or self.fingerprint_hash)

    @classmethod
    def from_json(cls, data) -> "TrackPayload":
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object", code="invalid_body")

        event_type = _str(data.get("type"))
        if not event_type:
            raise ValidationError("type is required", code="event_type_required")
        if event_type not in EVENT_TYPES:
            raise ValidationError(f"Unknown event type '{event_type}'", code="invalid_event_type")

        # Beacon sends pageUrl; url is accepted as an alias.
        url = _str(data.get("url")) or _str(data.get("pageUrl"))
        return cls(
            type=event_type,
            name=_str(data.get("name")),
            value=_float(data.get("value"), "value"),
            workspace_id=_str(data.get("workspaceId")),
            landing_page_id=_str(data.get("landingPageId")),
            campaign_id=_str(data.get("campaignId")),
            visitor_id=_str(data.get("visitorId")),
            cookie_id=_str(data.get("cookieId")),
            fingerprint_hash=_str(data.get("fingerprintHash")),
            session_id=_str(data.get("sessionId")),
            lead_id=_str(data.get("leadId")),
            url=url,
            entry_url=_str(data.get("entryUrl")) or url,
            referrer=_str(data.get("referrer")),
            utm=Utm.from_json(data.get("utm")),
            device=Device.from_json(data.get("device")),
            geo=Geo.from_json(data.get("geo")),
            scroll_depth=_float(data.get("scrollDepth"), "scrollDepth"),
            time_on_page=_float(data.get("timeOnPage"), "timeOnPage"),
            element_clicked=_str(data.get("elementClicked")),
            metadata=dict(_dict(data.get("metadata"), "metadata")),
        )


@dataclass(frozen=True)
class LeadPayload:
    """Body of POST /api/leads."""

    email: str | None
    name: str | None = None
    phone: str | None = None
    workspace_id: str | None = None
    visitor_id: str | None = None
    cookie_id: str | None = None
    captured_via: str | None = None
    landing_page_id: str | None = None
    campaign_id: str | None = None
    utm: Utm = field(default_factory=Utm)
    custom_fields: dict = field(default_factory=dict)
    tags: list = field(default_factory=list)

    @classmethod
    def from_json(cls, data) -> "LeadPayload":
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object", code="invalid_body")

        tags = data.get("tags") or []
        if isinstance(tags, str):
            tags = [tags]
        if not isinstance(tags, list):
            raise ValidationError("tags must be a list of strings", code="invalid_tags")

        return cls(
            email=_str(data.get("email")),
            name=_str(data.get("name")),
            phone=_str(data.get("phone")),
            workspace_id=_str(data.get("workspaceId")),
            visitor_id=_str(data.get("visitorId")),
            cookie_id=_str(data.get("cookieId")),
            captured_via=_str(data.get("capturedVia")),
            landing_page_id=_str(data.get("landingPageId")),
            campaign_id=_str(data.get("campaignId")),
            utm=Utm.from_json(data.get("utm")),
            custom_fields=dict(_dict(data.get("customFields"), "customFields")),
            tags=[str(tag).strip() for tag in tags if str(tag).strip()],
        )
