"""Built-in school-year events offered during budget setup."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .models import Audience, EventAllocation, EventKind


@dataclass(frozen=True, slots=True)
class EventTemplate:
    event_id: str
    name: str
    icon: str
    audience: Audience = Audience.CHILDREN
    kind: EventKind = EventKind.HOLIDAY

    def instantiate(self) -> EventAllocation:
        """Return a fresh, disabled allocation for this template."""

        return EventAllocation(
            event_id=self.event_id,
            name=self.name,
            icon=self.icon,
            audience=self.audience,
            kind=self.kind,
        )


# School-year order, birthdays last.
EVENT_TEMPLATES: Tuple[EventTemplate, ...] = (
    EventTemplate("rosh-hashanah", "ראש השנה", "🍎"),
    EventTemplate("hanukkah", "חנוכה", "🕎"),
    EventTemplate("tu-bishvat", 'ט"ו בשבט', "🌳"),
    EventTemplate("purim", "פורים", "🎭"),
    EventTemplate("pesach", "פסח", "🍷"),
    EventTemplate("yom-hamechanech", "יום המחנך", "👩‍🏫", Audience.STAFF),
    EventTemplate("yom-haatzmaut", "יום העצמאות", "🇮🇱"),
    EventTemplate("end-of-year", "מתנות סוף שנה", "🎓"),
    EventTemplate("birthdays-kids", "ימי הולדת ילדים", "🎂", kind=EventKind.BIRTHDAY),
    EventTemplate("birthdays-staff", "ימי הולדת צוות", "🎁", Audience.STAFF, EventKind.BIRTHDAY),
)

CUSTOM_EVENT_ICON = "✨"
CUSTOM_EVENT_PREFIX = "custom-"


def builtin_event_ids() -> Tuple[str, ...]:
    return tuple(template.event_id for template in EVENT_TEMPLATES)


__all__ = [
    "CUSTOM_EVENT_ICON",
    "CUSTOM_EVENT_PREFIX",
    "EVENT_TEMPLATES",
    "EventTemplate",
    "builtin_event_ids",
]
