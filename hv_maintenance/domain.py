"""
Record-level rules that hold regardless of where a record is edited.

Title and nature are free-text escapable enums. The form submits the pair
``(value, custom_value)``; :func:`resolve_choice` turns it into either a
:class:`KnownChoice` or a :class:`CustomChoice`, so the "Other" sentinel can
never be what gets stored.
"""
from enum import Enum
from typing import Literal, Mapping, Optional, Type, Union

from pydantic import BaseModel

from hv_maintenance.constants import MUNICIPALITIES_BY_ID
from hv_maintenance.exceptions import IncompleteRecord, InvalidSentinel
from hv_maintenance.schemas.maintenance import (
    EVIDENCE_SLOTS, MaintenanceNature, Municipality, ServiceType
)



class KnownChoice(BaseModel):
    kind: Literal["known"] = "known"
    value: str

    @property
    def text(self) -> str:
        return self.value


class CustomChoice(BaseModel):
    kind: Literal["custom"] = "custom"
    text: str


Choice = Union[KnownChoice, CustomChoice]


class ValidationResult(BaseModel):
    municipality: Municipality
    title: Choice
    nature: Choice


def plain_value(value):
    return value.value if isinstance(value, Enum) else value


def resolve_choice(value, custom: Optional[str], enum_cls: Type[Enum], field: str) -> Choice:
    value = plain_value(value)
    if isinstance(value, str):
        value = value.strip()
    sentinel = enum_cls.OTHER.value

    if value is None or value == sentinel:
        text = (custom or "").strip()
        # The sentinel itself is never a valid custom text
        if not text or text == sentinel:
            raise InvalidSentinel(f"'{field}' is '{sentinel}' but no custom {field} was given")
        return CustomChoice(text=text)

    if value in {member.value for member in enum_cls}:
        return KnownChoice(value=value)

    text = str(value)
    if not text:
        raise IncompleteRecord(f"'{field}' is required")
    return CustomChoice(text=text)


def resolve_municipality(municipality_id: Optional[str], municipalities: Optional[Mapping[str, Municipality]] = None) -> Municipality:
    lookup = MUNICIPALITIES_BY_ID if municipalities is None else municipalities
    if not municipality_id:
        raise IncompleteRecord("A municipality must be selected")
    municipality = lookup.get(municipality_id)
    if municipality is None:
        raise IncompleteRecord(f"Unknown municipality '{municipality_id}'")
    return municipality


def validate_record(data: Mapping, municipalities: Optional[Mapping[str, Municipality]] = None) -> ValidationResult:
    """
    Checks a record payload at save time.

    ``data`` holds the merged record fields plus the optional
    ``custom_title`` / ``custom_nature`` companions. Raises
    ``IncompleteRecord`` or ``InvalidSentinel``; never coerces.
    """
    municipality = resolve_municipality(data.get("municipality_id"), municipalities)
    title = resolve_choice(data.get("title"), data.get("custom_title"), ServiceType, "title")
    nature = resolve_choice(data.get("nature"), data.get("custom_nature"), MaintenanceNature, "nature")
    return ValidationResult(municipality=municipality, title=title, nature=nature)


def evidence_count(stage) -> int:
    """Number of occupied before/during/after slots (0-3)."""
    return sum(1 for slot in EVIDENCE_SLOTS if getattr(stage, slot.value, None) is not None)
