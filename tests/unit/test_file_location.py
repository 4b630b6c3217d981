"""
Destination resolution tests.

Tests services.file_location: first-match routing, metadata files left
in place, unmatched files and the URL mapping built from a plan.
"""

import pytest

from core.models import DestinationRule, FileLocation, PlannedMove
from exceptions import ValidationError
from services import build_url_mapping, resolve_destinations
from tests.factories.model_factories import make_granule_file


RULES = [
    DestinationRule(regex=r".*\.txt$", bucket="B", filepath="moved"),
    DestinationRule(regex=r".*\.md$", bucket="C", filepath="/moved/"),
]


class TestResolveDestinations:

    def test_routes_each_file_by_first_matching_rule(self):
        files = [
            make_granule_file("A", "orig/g.txt"),
            make_granule_file("A", "orig/g.md"),
        ]
        plan = resolve_destinations(files, RULES)

        assert [str(m.target) for m in plan] == ["B/moved/g.txt", "C/moved/g.md"]
        assert all(m.changes_location for m in plan)

    def test_first_rule_wins_when_several_match(self):
        rules = [
            DestinationRule(regex=r"g\.", bucket="first", filepath="x"),
            DestinationRule(regex=r".*\.txt$", bucket="second", filepath="y"),
        ]
        plan = resolve_destinations([make_granule_file("A", "orig/g.txt")], rules)
        assert plan[0].target == FileLocation(bucket="first", key="x/g.txt")

    def test_empty_filepath_puts_file_at_bucket_root(self):
        rules = [DestinationRule(regex=".*", bucket="B")]
        plan = resolve_destinations([make_granule_file("A", "orig/g.txt")], rules)
        assert plan[0].target.key == "g.txt"

    def test_plan_preserves_file_order(self):
        files = [make_granule_file("A", f"orig/f{i}.txt") for i in range(5)]
        plan = resolve_destinations(files, RULES)
        assert [m.file_name for m in plan] == [f"f{i}.txt" for i in range(5)]

    def test_file_already_at_target_does_not_change_location(self):
        plan = resolve_destinations([make_granule_file("B", "moved/g.txt")], RULES)
        assert not plan[0].changes_location

    def test_unmatched_metadata_file_stays_in_place(self):
        metadata = make_granule_file("A", "orig/g.cmr.xml")
        plan = resolve_destinations([make_granule_file("A", "orig/g.txt"), metadata], RULES)

        assert plan[1].target == metadata.location
        assert not plan[1].changes_location

    def test_unmatched_data_file_is_rejected(self):
        files = [make_granule_file("A", "orig/g.txt"), make_granule_file("A", "orig/g.hdf")]
        with pytest.raises(ValidationError, match="g.hdf"):
            resolve_destinations(files, RULES)

    def test_all_unmatched_files_are_named(self):
        files = [make_granule_file("A", "orig/a.hdf"), make_granule_file("A", "orig/b.nc")]
        with pytest.raises(ValidationError) as exc_info:
            resolve_destinations(files, RULES)
        assert "a.hdf, b.nc" in str(exc_info.value)

    def test_two_files_with_same_target_are_rejected(self):
        files = [make_granule_file("A", "orig/g.txt"), make_granule_file("X", "other/g.txt")]
        with pytest.raises(ValidationError, match="same destination"):
            resolve_destinations(files, RULES)

    def test_resolution_is_deterministic(self):
        files = [make_granule_file("A", "orig/g.txt"), make_granule_file("A", "orig/g.md")]
        assert resolve_destinations(files, RULES) == resolve_destinations(files, RULES)


class TestBuildUrlMapping:

    def test_maps_distribution_and_s3_urls(self, storage_config):
        moves = [PlannedMove(
            file_name="g.txt",
            source=FileLocation(bucket="A", key="orig/g.txt"),
            target=FileLocation(bucket="B", key="moved/g.txt"),
        )]
        mapping = build_url_mapping(moves, storage_config)

        assert mapping == {
            "https://data.test.example.com/A/orig/g.txt": "https://data.test.example.com/B/moved/g.txt",
            "s3://A/orig/g.txt": "s3://B/moved/g.txt",
        }

    def test_unchanged_files_are_not_mapped(self, storage_config):
        location = FileLocation(bucket="A", key="orig/g.cmr.xml")
        moves = [PlannedMove(file_name="g.cmr.xml", source=location, target=location)]
        assert build_url_mapping(moves, storage_config) == {}
