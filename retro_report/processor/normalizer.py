"""Show name normalizer — turns raw campaign labels into canonical show names.

Show-column values are already canonical and pass through unchanged.
Campaign-column values are matched against an ordered allow-list of known
publisher naming conventions; the first matching rule decides the label.
Unrecognized campaigns normalize to "" and are left out of the report.

Some campaigns are content bundles rather than shows.  Those normalize to
a bundle marker ``<FAMILY>_BUNDLE:<subtype>`` which the publisher show
formatter later collapses into a "N Various content-category bundles"
entry, counting distinct subtypes.

Usage::

    from retro_report.processor.normalizer import normalize_show

    normalize_show("NPR_RON_Canada", "campaign", "NPR")
    # -> "RON - Canada Geotarget"
"""

import re
from dataclasses import dataclass
from typing import Any, Callable

from ..schema.models import ShowSource


# ---------------------------------------------------------------------------
# Bundle markers
# ---------------------------------------------------------------------------

GENERIC_BUNDLE = "generic"
BUNDLE_MARKER_RE = re.compile(r"^([A-Z]+)_BUNDLE(?::(.*))?$")


def bundle_marker(family: str, subtype: str | None = None) -> str:
    """Encode a bundle marker, e.g. ``NZME_BUNDLE:lifestyle``."""
    subtype = (subtype or "").strip() or GENERIC_BUNDLE
    return f"{family.upper()}_BUNDLE:{subtype}"


def parse_bundle_marker(label: str) -> tuple[str, str] | None:
    """Decode a bundle marker into ``(family, subtype)``; None if not a marker."""
    m = BUNDLE_MARKER_RE.match(label)
    if not m:
        return None
    return m.group(1), (m.group(2) or "").strip() or GENERIC_BUNDLE


# ---------------------------------------------------------------------------
# Rule records
# ---------------------------------------------------------------------------

Predicate = Callable[[str, str], Any]
Transform = Callable[[str, Any], str]


@dataclass(frozen=True)
class Rule:
    """One entry of the cascade.

    ``predicate(name, publisher)`` receives the lower-cased, trimmed campaign
    and publisher and returns a truthy value (often a regex match) when the
    rule applies.  ``transform(name, match)`` builds the label.
    """
    name: str
    predicate: Predicate
    transform: Transform

    def apply(self, name: str, publisher: str) -> str | None:
        match = self.predicate(name, publisher)
        if not match:
            return None
        return self.transform(name, match)


def _starts(*prefixes):
    return lambda name, publisher: name.startswith(prefixes)


def _equals(*values):
    return lambda name, publisher: name in values


def _contains(*parts):
    return lambda name, publisher: any(p in name for p in parts)


def _search(pattern):
    regex = re.compile(pattern)
    return lambda name, publisher: regex.search(name)


def _literal(value):
    return lambda name, match: value


def _title(token: str) -> str:
    return token[:1].upper() + token[1:].lower()


# ---------------------------------------------------------------------------
# Publisher-specific transforms
# ---------------------------------------------------------------------------

def _npr_geotarget(name, match):
    geography = match.group(1)
    if geography == "av":
        return "RON AV - Global"
    return f"RON - {_title(geography)} Geotarget"


BBC_GEOGRAPHIES = {
    "asia": "Asia",
    "us": "US",
    "canada": "Canada",
    "latam": "LatAm",
    "northam": "US",
    "europe": "Europe",
}

_BBC_RE = re.compile(r"^bbc_([a-z]+)")


def _bbc_match(name, publisher):
    m = _BBC_RE.match(name)
    if m and m.group(1) in BBC_GEOGRAPHIES:
        return m
    return None


def _bbc_target(name, match):
    return f"Premium Shows - {BBC_GEOGRAPHIES[match.group(1)]} Target"


_ARN_BUNDLE_RE = re.compile(r"^(?:arn|australian radio network)_([a-z0-9 ]+)_")


def _arn_bundle(name, match):
    m = _ARN_BUNDLE_RE.match(name)
    return bundle_marker("ARN", m.group(1) if m else None)


_NZME_BUNDLE_RE = re.compile(r"nzme_([a-z0-9 ]+)_")


def _nzme_bundle(name, match):
    if "frontpage" in name or "front page" in name:
        return "The Front Page"
    m = _NZME_BUNDLE_RE.search(name)
    return bundle_marker("NZME", m.group(1) if m else None)


def _genuina_geotarget(name, match):
    return f"RON - {_title(match.group(2))} Geotarget"


_GENUINA_BUNDLE_RE = re.compile(r"^genuina[_ ]([a-z0-9 ]+)_")


def _genuina_bundle(name, match):
    m = _GENUINA_BUNDLE_RE.match(name)
    return bundle_marker("GENUINA", m.group(1) if m else None)


def _marketplace_match(name, publisher):
    return "marketplace" in name and "american public media" in publisher


# ---------------------------------------------------------------------------
# The cascade
# ---------------------------------------------------------------------------

# Order is significant: earlier rules shadow later, broader ones.
RULES: tuple[Rule, ...] = (
    # NPR
    Rule("npr_ron", _search(r"^npr_ron_([a-z]+)"), _npr_geotarget),
    Rule("this_american_life", _equals("this american life"), _literal("This American Life")),
    # BBC
    Rule("bbc_geo", _bbc_match, _bbc_target),
    # Australian Radio Network
    Rule("arn_ron", _starts("arn_ron_", "australian radio network_ron"), _literal("Run of Network")),
    Rule("arn_bundle", _starts("arn_", "australian radio network_"), _arn_bundle),
    # Mamamia
    Rule("mamamia_ron", _starts("mamamia_ron_"), _literal("Run of Network")),
    # NZME named shows
    Rule("nzme_front_page", lambda n, p: n == "the front page" or n.startswith("nzme_the front page"),
         _literal("The Front Page")),
    Rule("nzme_fletch", _contains("zm's fletch, vaughan & hayley"), _literal("Fletch, Vaughan, and Hayley")),
    Rule("nzme_hauraki", _contains("the hauraki big show"), _literal("The Hauraki Big Show")),
    Rule("nzme_country", _equals("the country"), _literal("The Country")),
    # NZME networks
    Rule("nzme_acc", _starts("nzme_acc"), _literal("The ACC Network")),
    Rule("nzme_newstalk", _starts("nzme_newstalk"), _literal("Newstalk")),
    Rule("nzme_bundle", _starts("nzme_"), _nzme_bundle),
    # Genuina Media
    Rule("genuina_cafe", _contains("cafe com adm", "by leandro vieira"), _literal("Cafe Con Adm")),
    Rule("genuina_geo", _search(r"(genuina_|genuina)(mexico|colombia|argentina|chile|brazil)_ron_"),
         _genuina_geotarget),
    Rule("genuina_bundle", _starts("genuina_", "genuina "), _genuina_bundle),
    # American Public Media
    Rule("apm_marketplace", _marketplace_match, _literal("RON - US Geotarget")),
    # Crooked Media
    Rule("crooked_world", _equals("pod save the world"), _literal("Pod Save the World")),
    Rule("crooked_uk", _equals("pod save the uk"), _literal("Pod Save the UK")),
    # Libsyn
    Rule("libsyn_abc", _starts("abc_ron news_"), _literal("ABC News RON")),
    # MediaWorks
    Rule("mediaworks_mw", _starts("mediaworks_mw ron_"), _literal("Mediaworks RON")),
    Rule("mediaworks_sxm", _starts("mediaworks_sxm ron_"), _literal("SXM RON")),
)


def _as_source(source) -> ShowSource:
    if isinstance(source, ShowSource):
        return source
    try:
        return ShowSource(str(source).lower())
    except ValueError:
        return ShowSource.NONE


def normalize_show(raw: str, source, publisher: str = "", rules=RULES) -> str:
    """Return the canonical show label for *raw*, or "" to exclude it.

    Args:
        raw: Value from the show or campaign column.
        source: ``ShowSource`` (or its string value) naming that column.
        publisher: Owning publisher, used by publisher-specific rules.
        rules: Cascade to evaluate, in order.
    """
    if _as_source(source) is not ShowSource.CAMPAIGN:
        return raw
    name = (raw or "").strip().lower()
    if not name:
        return ""
    publisher_lower = (publisher or "").strip().lower()
    for rule in rules:
        label = rule.apply(name, publisher_lower)
        if label is not None:
            return label
    return ""

