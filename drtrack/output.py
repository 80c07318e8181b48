"""Output table schema and assembly.

The reconstruction produces a single table with a fixed, ordered set
of columns.  Each column declares the features it depends on; a column
is only emitted when all of them are present, so a run without
elevation has no 3D columns at all instead of columns full of NaN.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List

import numpy as np
import pandas as pd

ELEVATION = "elevation"
PITCH = "pitch"
CURRENT = "current"
VP = "vp"
VPC = "vpc"


@dataclass(frozen=True)
class OutputField:
    """A named output column and the features it requires."""

    name: str
    requires: FrozenSet[str] = frozenset()


def _fields(names: Iterable[str], *requires: str) -> List[OutputField]:
    return [OutputField(name, frozenset(requires)) for name in names]


def _metric_names(prefix: str, dim: str) -> List[str]:
    return [
        f"{prefix}.distance.{dim}",
        f"{prefix}.cumulative.distance.{dim}",
        f"{prefix}.dist.from.start.{dim}",
        f"{prefix}.speed.{dim}",
    ]


def _track_fields(prefix: str, *requires: str) -> List[OutputField]:
    fields = []
    for name_2d, name_3d in zip(_metric_names(prefix, "2D"), _metric_names(prefix, "3D")):
        fields.append(OutputField(name_2d, frozenset(requires)))
        fields.append(OutputField(name_3d, frozenset(requires + (ELEVATION,))))
    return fields


OUTPUT_FIELDS: List[OutputField] = (
    _fields(["Row.number", "Timestamp", "DR.seconds", "Heading", "Marked.event"])
    + _fields(["Pitch"], PITCH)
    + _fields(["Elevation"], ELEVATION)
    + _fields(["Speed", "Speed.scaled", "Radial.distance"])
    + _fields(
        ["Current.speed", "Current.heading", "Integrated.heading", "Integrated.radial.distance"],
        CURRENT,
    )
    + _fields(["DR.longitude", "DR.latitude"])
    + _track_fields("DR")
    + _fields(["VP.seconds", "VP.longitude", "VP.latitude", "VP.present"], VP)
    + _fields(["VP.used.to.correct"], VP, VPC)
    + _fields(["VP.count", "VP.distance.2D", "VP.cumulative.distance.2D", "VP.speed.2D"], VP)
    + _fields(["Dist.corr.factor", "Head.corr.factor", "DRc.longitude", "DRc.latitude"], VPC)
    + _track_fields("DRc", VPC)
    + _fields(["Distance.before.correction", "Distance.after.correction"], VPC)
)
"""Every column the reconstruction can produce, in output order."""

_FIELD_NAMES = {f.name for f in OUTPUT_FIELDS}


class TrackOutputBuilder:
    """Collect output columns and assemble them into a DataFrame."""

    def __init__(self, n_rows: int):
        self.n_rows = n_rows
        self.features: set = set()
        self.columns: Dict[str, np.ndarray] = {}

    def enable(self, *features: str) -> "TrackOutputBuilder":
        """Mark features as present."""
        self.features.update(features)
        return self

    def add(self, name: str, values) -> "TrackOutputBuilder":
        """Store a column.  The name must belong to `OUTPUT_FIELDS`."""
        if name not in _FIELD_NAMES:
            raise KeyError(f"{name!r} is not an output field")
        values = np.asarray(values)
        if values.shape != (self.n_rows,):
            raise ValueError(f"{name} must have {self.n_rows} values, got shape {values.shape}")
        self.columns[name] = values
        return self

    def update(self, columns: Dict[str, np.ndarray]) -> "TrackOutputBuilder":
        for name, values in columns.items():
            self.add(name, values)
        return self

    def enabled_fields(self) -> List[OutputField]:
        return [f for f in OUTPUT_FIELDS if f.requires <= self.features]

    def build(self) -> pd.DataFrame:
        """Assemble the enabled columns in schema order.

        Raises
        ------
        KeyError
            If an enabled column was never added.
        """
        data = {}
        for f in self.enabled_fields():
            if f.name not in self.columns:
                raise KeyError(f"output field {f.name!r} is enabled but was not computed")
            data[f.name] = self.columns[f.name]
        return pd.DataFrame(data)
