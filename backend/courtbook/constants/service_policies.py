"""Per-category token redemption limits."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Tuple

from ..core.enums import ServiceCategory

WEEKDAYS: FrozenSet[int] = frozenset({0, 1, 2, 3, 4})  # Monday..Friday


@dataclass(frozen=True)
class ServicePolicy:
    category: ServiceCategory
    name: str
    max_redemption_percentage: int
    allowed_weekdays: Optional[FrozenSet[int]] = None
    allowed_hours: Optional[Tuple[int, int]] = None  # [start_hour, end_hour)

    def to_payload(self) -> dict[str, object]:
        return {
            "category": self.category.value,
            "name": self.name,
            "max_redemption_percentage": self.max_redemption_percentage,
            "allowed_weekdays": sorted(self.allowed_weekdays) if self.allowed_weekdays else None,
            "allowed_hours": list(self.allowed_hours) if self.allowed_hours else None,
        }


SERVICE_POLICIES: Dict[ServiceCategory, ServicePolicy] = {
    ServiceCategory.COURT_BOOKING: ServicePolicy(
        ServiceCategory.COURT_BOOKING,
        "Court Booking",
        30,
        allowed_weekdays=WEEKDAYS,
    ),
    ServiceCategory.COACHING_LESSON: ServicePolicy(
        ServiceCategory.COACHING_LESSON, "Coaching Lesson", 25
    ),
    ServiceCategory.GROUP_CLINIC: ServicePolicy(ServiceCategory.GROUP_CLINIC, "Group Clinic", 20),
    ServiceCategory.EQUIPMENT_RENTAL: ServicePolicy(
        ServiceCategory.EQUIPMENT_RENTAL, "Equipment Rental", 50
    ),
    ServiceCategory.CLUB_MERCHANDISE: ServicePolicy(
        ServiceCategory.CLUB_MERCHANDISE, "Club Merchandise", 15
    ),
}
