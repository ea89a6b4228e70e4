"""
Ordered registry of measurement fields.

The registry, not the table, decides what a measurement summary contains and
in which order. Identity and audit columns (id, customer_id, created_at,
updated_at) are absent. Add a column to models.Measurement and
an entry here together.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class MeasurementField:
    key: str
    label: str = field(default="")
    numeric: bool = True

    def __post_init__(self) -> None:
        if not self.label:
            object.__setattr__(self, "label", self.key.replace("_", " "))


# All numeric values are inches.
MEASUREMENT_FIELDS: tuple[MeasurementField, ...] = tuple(
    MeasurementField(k)
    for k in (
        "neck",
        "shoulder_width",
        "chest",
        "bust",
        "waist",
        "hip",
        "sleeve_length",
        "arm_circumference",
        "back_length",
        "front_length",
        "inseam",
        "outseam",
        "thigh",
        "knee",
        "calf",
        "wrist",
        "under_bust",
        "armhole",
        "bicep",
        "elbow",
        "short_sleeve_length",
        "back_width",
        "front_width",
        "shoulder_to_apex",
        "apex_to_apex",
        "shoulder_to_waist",
        "waist_to_hip",
        "waist_to_knee",
        "waist_to_ankle",
        "full_length",
        "top_length",
        "kurta_length",
        "blouse_length",
        "front_neck_depth",
        "back_neck_depth",
        "collar",
        "rise",
        "ankle",
        "trouser_length",
        "height",
    )
)

NOTES_FIELD = MeasurementField("custom_notes", numeric=False)

# Summary order: every numeric field in declaration order, then the notes.
SUMMARY_FIELDS: tuple[MeasurementField, ...] = MEASUREMENT_FIELDS + (NOTES_FIELD,)

FIELDS_BY_KEY: dict[str, MeasurementField] = {f.key: f for f in SUMMARY_FIELDS}
