"""Reconstruction settings.

`ReckoningConfig` gathers every scalar option of the pipeline.  It can
be built directly, or from a dictionary (typically loaded from YAML
with `drtrack.utils.load_config`) that may use either the Python field
names or the dotted names used in field notes and older configuration
files (``thresh.t``, ``Dist_Head.corr``, ``VP.ME`` ...).
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Optional

from .utils.geodesy import EARTH_RADIUS


class AnchorMethod(str, Enum):
    """Strategies for under-sampling verified positions into anchors."""

    ALL = "All"
    DIVIDE = "Divide"
    TIME_DIST = "Time_Dist"
    CUM_DIST = "Cum.Dist"
    TIME_DIST_CORR_FAC = "Time_Dist_Corr.Fac"

    @classmethod
    def parse(cls, value: Any) -> Optional["AnchorMethod"]:
        """Return the matching method, or None for disabled correction."""
        if value is None or isinstance(value, cls):
            return value
        text = str(value).strip()
        if text.lower() in ("", "none", "off", "false"):
            return None
        for member in cls:
            if member.value.lower() == text.lower() or member.name.lower() == text.lower():
                return member
        raise ValueError(f"Unknown anchor method: {value!r}")


_ALIASES = {
    "thresh.t": "thresh_t",
    "thresh.d": "thresh_d",
    "dist.step": "dist_step",
    "Dist_Head.corr": "dist_head_corr",
    "VP.ME": "vp_me",
    "Outgoing": "outgoing",
    "max.speed": "max_speed",
    "Earth.radius": "earth_radius",
}


@dataclass(frozen=True)
class ReckoningConfig:
    """Options controlling integration and verified position correction."""

    method: Optional[AnchorMethod] = None
    """Anchor selection strategy.  None disables correction."""

    thresh_t: float = 0.0
    """Time threshold in seconds (Time_Dist family) or number of
    intermediate anchors (Divide)."""

    thresh_d: float = 0.0
    """Distance threshold in metres (Time_Dist family, Cum.Dist)."""

    dist_step: int = 1
    """Stride, in verified positions, used for VP distances."""

    span: float = 0.0
    """Length in seconds of the candidate window of Time_Dist_Corr.Fac."""

    dist_head_corr: bool = False
    """Score Time_Dist_Corr.Fac candidates on heading as well as distance."""

    bound: bool = True
    """Force the last verified position to be an anchor and stop the
    corrected track there."""

    outgoing: bool = True
    """Integrate forward from the start coordinate; False integrates
    backwards from an end coordinate."""

    vp_me: bool = False
    """Ignore verified positions recorded while the movement flag is off."""

    max_speed: Optional[float] = None
    """Cap applied to the scaled speed before integration."""

    earth_radius: float = EARTH_RADIUS
    """Spherical Earth radius in metres."""

    def __post_init__(self):
        object.__setattr__(self, "method", AnchorMethod.parse(self.method))
        if int(self.dist_step) != self.dist_step or self.dist_step < 1:
            raise ValueError("dist_step must be a positive integer")
        object.__setattr__(self, "dist_step", int(self.dist_step))
        for name in ("thresh_t", "thresh_d", "span"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        if self.max_speed is not None and self.max_speed < 0:
            raise ValueError("max_speed must be non-negative")
        if self.earth_radius <= 0:
            raise ValueError("earth_radius must be positive")

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "ReckoningConfig":
        """Build a configuration from a mapping of option names."""
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in values.items():
            name = _ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown configuration option: {key!r}")
            kwargs[name] = value
        return cls(**kwargs)
