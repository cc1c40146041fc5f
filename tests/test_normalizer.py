"""Tests for the show name normalizer cascade."""

import pytest

from retro_report.processor.normalizer import (
    GENERIC_BUNDLE,
    RULES,
    Rule,
    bundle_marker,
    normalize_show,
    parse_bundle_marker,
)
from retro_report.schema.models import ShowSource


def campaign(raw, publisher=""):
    return normalize_show(raw, ShowSource.CAMPAIGN, publisher)


# ---------------------------------------------------------------------------
# Source handling
# ---------------------------------------------------------------------------

class TestSourceHandling:
    @pytest.mark.parametrize("raw", [
        "Morning Show",
        "NPR_RON_AV",
        "  padded  ",
        "nzme_anything_x",
    ])
    def test_show_source_passes_through_unchanged(self, raw):
        assert normalize_show(raw, ShowSource.SHOW, "NPR") == raw

    def test_source_as_string(self):
        assert normalize_show("NPR_RON_AV", "campaign", "NPR") == "RON AV - Global"
        assert normalize_show("NPR_RON_AV", "show", "NPR") == "NPR_RON_AV"

    def test_none_source_passes_through(self):
        assert normalize_show("", ShowSource.NONE) == ""

    def test_unknown_source_string_treated_as_none(self):
        assert normalize_show("NPR_RON_AV", "episode") == "NPR_RON_AV"

    def test_empty_campaign(self):
        assert campaign("") == ""
        assert campaign("   ") == ""
        assert campaign(None) == ""

    def test_unrecognized_campaign_dropped(self):
        assert campaign("Q3 Brand Push - Generic", "Someone") == ""


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

class TestNpr:
    def test_av_is_global(self):
        assert campaign("NPR_RON_AV", "NPR") == "RON AV - Global"

    def test_geotarget(self):
        assert campaign("NPR_RON_Canada", "NPR") == "RON - Canada Geotarget"

    def test_geotarget_title_cased(self):
        assert campaign("npr_ron_UK_extra", "NPR") == "RON - Uk Geotarget"

    def test_this_american_life(self):
        assert campaign("This American Life") == "This American Life"


class TestBbc:
    @pytest.mark.parametrize("raw, expected", [
        ("BBC_Asia_Q3", "Premium Shows - Asia Target"),
        ("BBC_LatAm", "Premium Shows - LatAm Target"),
        ("BBC_NorthAm_Premium", "Premium Shows - US Target"),
        ("bbc_europe", "Premium Shows - Europe Target"),
    ])
    def test_geographies(self, raw, expected):
        assert campaign(raw) == expected

    def test_unknown_geography_dropped(self):
        assert campaign("BBC_Africa") == ""


class TestArn:
    def test_run_of_network(self):
        assert campaign("ARN_RON_Sept") == "Run of Network"
        assert campaign("Australian Radio Network_RON") == "Run of Network"

    def test_bundle_marker(self):
        assert campaign("ARN_Comedy_Q3") == "ARN_BUNDLE:comedy"

    def test_bundle_without_subtype(self):
        assert campaign("ARN_misc") == f"ARN_BUNDLE:{GENERIC_BUNDLE}"


class TestNzme:
    @pytest.mark.parametrize("raw, expected", [
        ("The Front Page", "The Front Page"),
        ("NZME_The Front Page_Aug", "The Front Page"),
        ("ZM's Fletch, Vaughan & Hayley", "Fletch, Vaughan, and Hayley"),
        ("The Hauraki Big Show", "The Hauraki Big Show"),
        ("The Country", "The Country"),
        ("NZME_ACC_Network", "The ACC Network"),
        ("NZME_Newstalk ZB", "Newstalk"),
    ])
    def test_named_shows(self, raw, expected):
        assert campaign(raw) == expected

    def test_frontpage_inside_bundle_name(self):
        assert campaign("NZME_frontpage bundle_x") == "The Front Page"

    def test_bundle_marker(self):
        assert campaign("NZME_Lifestyle_Aug") == "NZME_BUNDLE:lifestyle"


class TestGenuina:
    def test_cafe(self):
        assert campaign("Cafe com ADM by Leandro Vieira") == "Cafe Con Adm"

    def test_geotarget(self):
        assert campaign("Genuina_Mexico_RON_Q3") == "RON - Mexico Geotarget"

    def test_bundle_marker(self):
        assert campaign("Genuina_Sports_Q3") == "GENUINA_BUNDLE:sports"


class TestOtherPublishers:
    def test_marketplace_requires_apm_publisher(self):
        assert campaign("Marketplace_Q3", "American Public Media") == "RON - US Geotarget"
        assert campaign("Marketplace_Q3", "Other Media") == ""

    def test_crooked(self):
        assert campaign("Pod Save the World") == "Pod Save the World"
        assert campaign("pod save the uk") == "Pod Save the UK"

    def test_libsyn(self):
        assert campaign("ABC_RON News_Q3") == "ABC News RON"

    def test_mediaworks(self):
        assert campaign("MediaWorks_MW RON_Aug") == "Mediaworks RON"
        assert campaign("MediaWorks_SXM RON_Aug") == "SXM RON"

    def test_mamamia(self):
        assert campaign("Mamamia_RON_Aug") == "Run of Network"


# ---------------------------------------------------------------------------
# Cascade mechanics
# ---------------------------------------------------------------------------

class TestCascade:
    def test_rule_names_unique(self):
        names = [r.name for r in RULES]
        assert len(names) == len(set(names))

    def test_first_match_wins(self):
        # The NZME named-network rules sit before the generic bundle rule
        names = [r.name for r in RULES]
        assert names.index("nzme_acc") < names.index("nzme_bundle")
        assert names.index("arn_ron") < names.index("arn_bundle")

    def test_custom_rules(self):
        rules = (
            Rule("first", lambda n, p: n.startswith("x"), lambda n, m: "First"),
            Rule("second", lambda n, p: True, lambda n, m: "Second"),
        )
        assert normalize_show("xyz", ShowSource.CAMPAIGN, rules=rules) == "First"
        assert normalize_show("abc", ShowSource.CAMPAIGN, rules=rules) == "Second"

    def test_rule_receives_lowercased_input(self):
        seen = []
        rules = (Rule("spy", lambda n, p: seen.append((n, p)), lambda n, m: "x"),)
        normalize_show("  MiXeD ", ShowSource.CAMPAIGN, " Pub ", rules=rules)
        assert seen == [("mixed", "pub")]


class TestBundleMarkers:
    def test_encode(self):
        assert bundle_marker("nzme", "lifestyle") == "NZME_BUNDLE:lifestyle"

    def test_encode_without_subtype(self):
        assert bundle_marker("ARN") == f"ARN_BUNDLE:{GENERIC_BUNDLE}"

    def test_decode(self):
        assert parse_bundle_marker("GENUINA_BUNDLE:sports") == ("GENUINA", "sports")

    def test_decode_without_subtype(self):
        assert parse_bundle_marker("NZME_BUNDLE") == ("NZME", GENERIC_BUNDLE)

    def test_decode_plain_label(self):
        assert parse_bundle_marker("The Front Page") is None
