"""
impact_dashboard/data/schema.py

Defines the logical fields of a business-impact survey and the column names we accept for each.
Survey spreadsheets are authored by hand, so the same field shows up under many spellings:
- "Local Loss", "Local Revenue Loss (LKR)", "LocalLoss", ...
- "Market Types", "Market Type", "Market", ...

Two lists are kept per field:
- SYNONYMS: concrete column names used by the name-equality resolver during aggregation
- DETECTION_TOKENS: substring rules used by detect_mapping() for column diagnostics

Both lists describe the same column families, so the diagnostics report matches what aggregation actually reads.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple


# Logical field names (snake_case, same spelling everywhere in the package)
DISTRICT = "district"
NATURE_OF_BUSINESS = "nature_of_business"
INDUSTRY_SCALE = "industry_scale"
NATURE_OF_IMPACT = "nature_of_impact"
RESTART_DATE = "restart_date"
MARKET_TYPE = "market_type"
LOCAL_LOSS = "local_loss"
EXPORT_LOSS = "export_loss"

LOGICAL_FIELDS: List[str] = [
    DISTRICT,
    NATURE_OF_BUSINESS,
    INDUSTRY_SCALE,
    NATURE_OF_IMPACT,
    RESTART_DATE,
    MARKET_TYPE,
    LOCAL_LOSS,
    EXPORT_LOSS,
]

# Fields the user can narrow the dataset by (exact-match categorical filters)
FILTERABLE_FIELDS: List[str] = [
    DISTRICT,
    NATURE_OF_BUSINESS,
    INDUSTRY_SCALE,
    MARKET_TYPE,
    NATURE_OF_IMPACT,
]

# Pseudo-category for rows with no resolvable value. Used by every breakdown and by the filter options.
UNKNOWN = "Unknown"

# Filter sentinel meaning "no restriction on this field"
ALL = "All"

# Ranked candidate names per field. Earlier entries win when a row carries several of them.
SYNONYMS: Dict[str, List[str]] = {
    DISTRICT: ["District", "Location", "Province", "Region"],
    NATURE_OF_BUSINESS: [
        "Nature of Business",
        "Business Nature",
        "Business Type",
        "Type of Business",
        "BusinessNature",
        "Business_Type",
    ],
    INDUSTRY_SCALE: [
        "Industry Scale",
        "Scale",
        "Business Scale",
        "IndustryScale",
        "Business_Scale",
        "Size",
    ],
    NATURE_OF_IMPACT: ["Nature of Impact", "Impact", "Damage Level"],
    RESTART_DATE: ["Possible Restart Date", "Restart Date", "Restart Date Expected"],
    MARKET_TYPE: ["Market Types", "Market Type", "Market", "Market Category"],
    LOCAL_LOSS: [
        "Local Revenue Loss (LKR)",
        "Local Loss",
        "Local Loss (USD)",
        "Local Revenue Loss",
        "Local Revenue Loss (USD)",
        "Local Loss (LKR)",
        "Local Revenue Loss LKR",
        "LocalLoss",
        "Local_Revenue_Loss",
    ],
    EXPORT_LOSS: [
        "Export Revenue Loss (USD)",
        "Export Loss",
        "Export Revenue Loss",
        "Export Loss (USD)",
        "Export Revenue Loss USD",
        "ExportLoss",
        "Export_Revenue_Loss",
    ],
}

# Substring rules for column detection.
# Each rule is a tuple of tokens that must ALL appear in the collapsed label; a field matches if ANY of its rules does.
# Example: LOCAL_LOSS matches "Local Revenue Loss (LKR)" through ("local", "revenue") and "Loss in LKR" through ("loss", "lkr").
DETECTION_TOKENS: Dict[str, List[Tuple[str, ...]]] = {
    DISTRICT: [("district",), ("location",), ("province",), ("region",)],
    NATURE_OF_BUSINESS: [
        ("nature", "business"),
        ("businesstype",),
        ("type", "business"),
    ],
    INDUSTRY_SCALE: [("scale",), ("size",)],
    NATURE_OF_IMPACT: [("impact",), ("damage",)],
    RESTART_DATE: [("restart",), ("reopen",)],
    MARKET_TYPE: [("market",), ("customer",)],
    LOCAL_LOSS: [
        ("local", "loss"),
        ("local", "revenue"),
        ("localloss",),
        ("localrevenueloss",),
        ("loss", "lkr"),
    ],
    EXPORT_LOSS: [
        ("export", "loss"),
        ("export", "revenue"),
        ("exportloss",),
        ("exportrevenueloss",),
        ("export", "usd"),
    ],
}


@dataclass(frozen=True)
class SurveySchema:
    """
    Container for the survey vocabulary, so the resolver and the engine can be pointed at a different survey layout.
    """
    fields: List[str]
    filterable_fields: List[str]
    synonyms: Dict[str, List[str]]
    detection_tokens: Dict[str, List[Tuple[str, ...]]]

    @classmethod
    def impact_default(cls) -> "SurveySchema":
        return cls(
            fields=LOGICAL_FIELDS,
            filterable_fields=FILTERABLE_FIELDS,
            synonyms=SYNONYMS,
            detection_tokens=DETECTION_TOKENS,
        )

    def candidates(self, field: str) -> List[str]:
        return self.synonyms.get(field, [])
