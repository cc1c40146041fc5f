"""Tests for the publisher show formatter."""

import pytest

from retro_report.processor.shows import (
    BUNDLE_COUNT_LABEL,
    FAMILIES,
    find_family,
    format_shows,
)


def bundles(n):
    return BUNDLE_COUNT_LABEL.format(count=n)


class TestFindFamily:
    @pytest.mark.parametrize("publisher, expected", [
        ("Australian Radio Network", "Australian Radio Network"),
        ("ARN", "Australian Radio Network"),
        ("arn podcasts", "Australian Radio Network"),
        ("NZME", "NZME"),
        ("NZME Radio", "NZME"),
        ("Genuina Media", "Genuina Media"),
    ])
    def test_families(self, publisher, expected):
        assert find_family(publisher).name == expected

    @pytest.mark.parametrize("publisher", ["Barnaby Media", "Warner Audio", "NPR", "", None])
    def test_not_a_family(self, publisher):
        assert find_family(publisher) is None

    def test_family_names_unique(self):
        names = [f.name for f in FAMILIES]
        assert len(names) == len(set(names))


class TestPlainPublishers:
    def test_sorted_and_deduplicated(self):
        assert format_shows("Acme", ["Morning Show", "Evening Show", "Morning Show"]) == [
            "Evening Show", "Morning Show",
        ]

    def test_blank_labels_dropped(self):
        assert format_shows("Acme", ["", "  ", "Show"]) == ["Show"]

    def test_stray_bundle_markers_dropped(self):
        assert format_shows("Acme", ["NZME_BUNDLE:music", "Show"]) == ["Show"]

    def test_empty(self):
        assert format_shows("Acme", []) == []

    def test_accepts_frozenset(self):
        assert format_shows("Acme", frozenset({"B", "A"})) == ["A", "B"]


class TestNzme:
    def test_named_then_bundle_count(self):
        shows = {
            "The Front Page",
            "Newstalk",
            "NZME_BUNDLE:lifestyle",
            "NZME_BUNDLE:music",
            "NZME_BUNDLE:lifestyle",
        }
        assert format_shows("NZME", shows) == ["Newstalk", "The Front Page", bundles(2)]

    def test_bundles_only(self):
        assert format_shows("NZME", {"NZME_BUNDLE:music"}) == [bundles(1)]

    def test_unlisted_labels_dropped(self):
        assert format_shows("NZME", {"Random Show", "The Country"}) == ["The Country"]

    def test_other_family_markers_ignored(self):
        assert format_shows("NZME", {"ARN_BUNDLE:comedy", "Newstalk"}) == ["Newstalk"]


class TestArn:
    def test_run_of_network_and_bundles(self):
        shows = {"Run of Network", "ARN_BUNDLE:comedy", "ARN_BUNDLE:news"}
        assert format_shows("Australian Radio Network", shows) == [
            "Run of Network", bundles(2),
        ]

    def test_generic_bundles_count_once(self):
        shows = {"ARN_BUNDLE:generic"}
        assert format_shows("ARN", shows) == [bundles(1)]


class TestGenuina:
    def test_named_geotargets_and_bundles(self):
        shows = {
            "RON - Mexico Geotarget",
            "Cafe Con Adm",
            "RON - Brazil Geotarget",
            "GENUINA_BUNDLE:sports",
        }
        assert format_shows("Genuina Media", shows) == [
            "Cafe Con Adm",
            "RON - Brazil Geotarget",
            "RON - Mexico Geotarget",
            bundles(1),
        ]

    def test_geotargets_not_listed_for_other_families(self):
        assert format_shows("NZME", {"RON - Mexico Geotarget"}) == []
