"""Region value object — immutable (province, city) pair parsed from free text."""

from __future__ import annotations

import re
from dataclasses import dataclass

# Provinces recognised when a region has to be inferred from free-form text
# (package descriptions, organization addresses).
KNOWN_PROVINCES: tuple[str, ...] = (
    "Beijing", "Shanghai", "Tianjin", "Chongqing", "Guangdong", "Jiangsu",
    "Zhejiang", "Shandong", "Henan", "Sichuan", "Hubei", "Hunan", "Hebei",
    "Fujian", "Anhui", "Jiangxi", "Liaoning", "Shaanxi", "Yunnan", "Guangxi",
)

_SEPARATORS = re.compile(r"\s*[/,|;]\s*")


@dataclass(frozen=True)
class Region:
    province: str
    city: str | None = None

    def same_province(self, other: "Region") -> bool:
        return self.province.lower() == other.province.lower()

    def match_score(self, other: "Region") -> float:
        """1.0 exact, 0.5 same province / different city, 0.0 otherwise.

        A side that names only a province matches any city of that province.
        """
        if not self.same_province(other):
            return 0.0
        if self.city is None or other.city is None:
            return 1.0
        if self.city.lower() == other.city.lower():
            return 1.0
        return 0.5

    def __str__(self) -> str:
        return f"{self.province}/{self.city}" if self.city else self.province


def parse_region(text: str | None) -> Region | None:
    """Parse "Province/City" (also ',', '|' or ';' separated) into a Region."""
    if not text or not text.strip():
        return None
    parts = [p for p in _SEPARATORS.split(text.strip()) if p]
    if not parts:
        return None
    city = parts[1] if len(parts) > 1 else None
    return Region(province=parts[0], city=city)


def infer_region(text: str | None) -> Region | None:
    """Find the first known province mentioned anywhere in free text."""
    if not text:
        return None
    lowered = text.lower()
    for province in KNOWN_PROVINCES:
        if province.lower() in lowered:
            return Region(province=province)
    return None
