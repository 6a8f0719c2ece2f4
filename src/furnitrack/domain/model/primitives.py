"""Value objects and small helpers shared across the entity model."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from typing import Final

INCHES_TO_CM: Final[float] = 2.54

type SpecValue = str | int | float | bool | None
type Specs = dict[str, SpecValue]


def inches_to_cm(value: float) -> float:
    return value * INCHES_TO_CM


def cm_to_inches(value: float) -> float:
    return value / INCHES_TO_CM


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""

    return int(time.time() * 1000)


def new_id(prefix: str = "") -> str:
    """Generate a fresh local id such as ``i_<uuid4>``."""

    value = str(uuid.uuid4())
    return f"{prefix}_{value}" if prefix else value


@dataclass(slots=True, frozen=True, kw_only=True)
class Dimensions:
    """Width/depth/height in inches; any part may be unknown."""

    w_in: float | None = None
    d_in: float | None = None
    h_in: float | None = None

    @property
    def is_empty(self) -> bool:
        return self.w_in is None and self.d_in is None and self.h_in is None

    def to_text(self) -> str:
        """Render as ``"WxDxH in"`` with ``?`` for unknown parts."""

        if self.is_empty:
            return ""
        parts = ["?" if value is None else _format_number(value) for value in self.as_tuple()]
        return f"{'x'.join(parts)} in"

    def as_tuple(self) -> tuple[float | None, float | None, float | None]:
        return (self.w_in, self.d_in, self.h_in)


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))
