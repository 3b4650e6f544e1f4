# upsd_monitor/services/status_decoder.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, MutableMapping, Tuple

from upsd_monitor.models.device import Value
from upsd_monitor.services.variables import as_text


STATUS_VARIABLE = "ups.status"


@dataclass(frozen=True)
class StatusFlag:
    token: str
    bit: int
    tag: str


# apcupsd STATFLAG layout (rogerprice.org NUT config examples, 1.3.2).
# Consumers of apcupsd metrics depend on these positions; never renumber.
STATUS_FLAGS: Tuple[StatusFlag, ...] = (
    StatusFlag("CAL", 0, "status_CAL"),      # runtime calibration
    StatusFlag("TRIM", 1, "status_TRIM"),    # SmartTrim
    StatusFlag("BOOST", 2, "status_BOOST"),  # SmartBoost
    StatusFlag("OL", 3, "status_OL"),        # on line
    StatusFlag("OB", 4, "status_OB"),        # on battery
    StatusFlag("OVER", 5, "status_OVER"),    # overloaded output
    StatusFlag("LB", 6, "status_LB"),        # battery low
    StatusFlag("RB", 7, "status_RB"),        # replace battery
)


def parse_status(status: str) -> Tuple[int, Dict[str, str]]:
    """
    Map a whitespace separated NUT status string to the apcupsd bit word
    plus one "true" tag per recognized token. Unknown tokens are ignored.
    """
    tokens = set(status.split())
    mask = 0
    tags: Dict[str, str] = {}
    for flag in STATUS_FLAGS:
        if flag.token in tokens:
            mask |= 1 << flag.bit
            tags[flag.tag] = "true"
    return mask, tags


def decode_status(variables: Mapping[str, Value], tags: MutableMapping[str, str]) -> int:
    mask, status_tags = parse_status(as_text(variables.get(STATUS_VARIABLE)))
    tags.update(status_tags)
    return mask
