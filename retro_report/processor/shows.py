"""Publisher show formatter — final display list of shows per publisher.

Network publishers that sell content bundles get their bundle markers
collapsed into a single "N Various content-category bundles" entry, where
N is the number of distinct bundle subtypes seen.  Every other publisher
gets its cleaned show labels, deduplicated and sorted.
"""

import re
from dataclasses import dataclass
from typing import Callable

from .normalizer import parse_bundle_marker


BUNDLE_COUNT_LABEL = "{count} Various content-category bundles"
GEOTARGET_RE = re.compile(r"^RON - .+ Geotarget$")


@dataclass(frozen=True)
class NetworkFamily:
    """Collapsing rule for one network publisher family."""
    name: str
    matches: Callable[[str], bool]
    bundle_family: str
    named_shows: tuple[str, ...] = ()
    list_geotargets: bool = False


_ARN_WORD = re.compile(r"\barn\b")

FAMILIES: tuple[NetworkFamily, ...] = (
    NetworkFamily(
        name="Australian Radio Network",
        matches=lambda p: "australian radio network" in p or bool(_ARN_WORD.search(p)),
        bundle_family="ARN",
        named_shows=("Run of Network",),
    ),
    NetworkFamily(
        name="NZME",
        matches=lambda p: "nzme" in p,
        bundle_family="NZME",
        named_shows=(
            "The Front Page",
            "Fletch, Vaughan, and Hayley",
            "The Hauraki Big Show",
            "The Country",
            "The ACC Network",
            "Newstalk",
        ),
    ),
    NetworkFamily(
        name="Genuina Media",
        matches=lambda p: "genuina" in p,
        bundle_family="GENUINA",
        named_shows=("Cafe Con Adm",),
        list_geotargets=True,
    ),
)


def find_family(publisher: str) -> NetworkFamily | None:
    publisher_lower = (publisher or "").lower()
    for family in FAMILIES:
        if family.matches(publisher_lower):
            return family
    return None


def _format_family(family: NetworkFamily, shows: list[str]) -> list[str]:
    named, geotargets = [], []
    subtypes: set[str] = set()
    for show in shows:
        if show in family.named_shows:
            named.append(show)
        elif family.list_geotargets and GEOTARGET_RE.match(show):
            geotargets.append(show)
        else:
            marker = parse_bundle_marker(show)
            if marker and marker[0] == family.bundle_family:
                subtypes.add(marker[1])
    result = named + geotargets
    if subtypes:
        result.append(BUNDLE_COUNT_LABEL.format(count=len(subtypes)))
    return result


def format_shows(publisher: str, shows) -> list[str]:
    """Ordered, deduplicated display list of *shows* for *publisher*."""
    unique = sorted({s.strip() for s in shows if s and s.strip()})
    family = find_family(publisher)
    if family is not None:
        return _format_family(family, unique)
    return [s for s in unique if parse_bundle_marker(s) is None]
