"""Business ground-truth snapshot and page classification."""

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from ai_visibility.errors import ValidationError


class PageType(str, enum.Enum):
    """Kinds of pages the auditor knows schema requirements for."""

    HOMEPAGE = "homepage"
    MENU = "menu"
    ABOUT = "about"
    FAQ = "faq"
    EVENTS = "events"
    OTHER = "other"

    @classmethod
    def parse(cls, value: "str | PageType") -> "PageType":
        if isinstance(value, PageType):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            allowed = ", ".join(p.value for p in cls)
            raise ValidationError(
                f"Unknown page type {value!r}. Expected one of: {allowed}"
            ) from exc


@dataclass(frozen=True)
class BusinessContext:
    """Immutable ground truth for the business being scored.

    Supplied by the caller and never mutated by the scoring core.
    """

    business_name: str
    city: Optional[str] = None
    state: Optional[str] = None
    categories: tuple[str, ...] = ()
    amenities: Mapping[str, bool] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.business_name, str) or not self.business_name.strip():
            raise ValidationError("BusinessContext.business_name must be a non-empty string.")
        # Accept any iterable of categories but store a tuple.
        if not isinstance(self.categories, tuple):
            object.__setattr__(self, "categories", tuple(self.categories or ()))
        # Read-only copy; the caller's dict stays theirs.
        object.__setattr__(self, "amenities", MappingProxyType(dict(self.amenities or {})))

    @property
    def primary_category(self) -> str:
        return self.categories[0] if self.categories else ""

    def amenity_labels(self, limit: int = 2) -> list[str]:
        """Human-readable labels for the amenity flags that are set."""
        labels: list[str] = []
        for key, enabled in self.amenities.items():
            if enabled is not True:
                continue
            label = key
            for prefix in ("has_", "is_", "serves_"):
                if label.startswith(prefix):
                    label = label[len(prefix):]
                    break
            labels.append(label.replace("_", " "))
            if len(labels) >= limit:
                break
        return labels
