"""Tests for bucket_migration.py

Tests cover:
- Destination bucket provisioning with collision handling
- Diffing so already migrated objects are skipped
- Routing objects to single-shot or multipart transfer
- Error propagation and end-of-run summary
"""

from unittest import mock

import pytest
from botocore.exceptions import ClientError

from bucket_migration import BucketMigrationOrchestrator, MigrationSummary, ObjectCopier
from migration_errors import BucketNameCollisionError, MultipartUploadError
from multipart_transfer import MultipartTransfer
from storage_gateway import BucketCreateStatus, ObjectDescriptor, ObjectStream
from tests.gateway_test_utils import MIB, FakeGateway, client_error, payload
from transfer_strategy import TransferStrategy


def _orchestrator(source, dest, **kwargs):
    multipart = MultipartTransfer(dest, chunk_size=5 * MIB, max_workers=2)
    copier = ObjectCopier(source, dest, multipart)
    return BucketMigrationOrchestrator(source, dest, copier, **kwargs)


@pytest.fixture(name="scenario")
def fixture_scenario():
    """Bucket 'a' with x (3 MiB) and y (7 MiB); destination already has x"""
    x_data = payload(3 * MIB, seed=1)
    y_data = payload(7 * MIB, seed=2)
    source = FakeGateway(buckets={"a": {"x": x_data, "y": y_data}})
    dest = FakeGateway(buckets={"a": {"x": x_data}})
    return source, dest, y_data


class TestMigrationScenario:
    """Test the end-to-end migration of one partially migrated bucket"""

    def test_only_pending_object_is_transferred(self, scenario, mock_print):
        """x is skipped and y goes through the multipart protocol in two parts"""
        source, dest, y_data = scenario

        summary = _orchestrator(source, dest).migrate_all_buckets()

        assert [call[2] for call in source.calls_named("get_object")] == ["y"]
        assert not dest.calls_named("put_object")
        parts = dest.calls_named("upload_part")
        assert sorted((call[4], call[5]) for call in parts) == [(1, 5 * MIB), (2, 2 * MIB)]
        manifest = dest.calls_named("complete_multipart_upload")[0][4]
        assert [entry["PartNumber"] for entry in manifest] == [1, 2]
        assert dest.buckets["a"]["y"] == y_data
        assert summary.objects_transferred == 1
        assert summary.objects_skipped == 1
        assert summary.multipart_objects == 1
        assert summary.bytes_transferred == 7 * MIB
        mock_print.assert_any_call("Object: y")

    def test_rerun_transfers_nothing(self, scenario, mock_print):  # pylint: disable=unused-argument
        """A second run finds nothing pending"""
        source, dest, _ = scenario
        _orchestrator(source, dest).migrate_all_buckets()
        source.calls.clear()

        summary = _orchestrator(source, dest).migrate_all_buckets()

        assert not source.calls_named("get_object")
        assert summary.objects_transferred == 0
        assert summary.objects_skipped == 2


class TestObjectCopier:
    """Test ObjectCopier strategy routing"""

    def test_small_object_uses_single_put(self):
        """Objects under the threshold are written with put_object"""
        source = FakeGateway(buckets={"src": {"small": b"hello"}})
        dest = FakeGateway(buckets={"dst": {}})
        multipart = mock.Mock()
        copier = ObjectCopier(source, dest, multipart)

        strategy, copied = copier.copy_object("src", "dst", ObjectDescriptor("small", 5))

        assert strategy is TransferStrategy.SINGLE
        assert copied == 5
        assert dest.buckets["dst"]["small"] == b"hello"
        multipart.transfer.assert_not_called()

    def test_single_put_closes_source_body(self):
        """The source body is released after a single-shot copy"""
        body = mock.Mock()
        source = mock.Mock()
        source.get_object.return_value = ObjectStream(content_length=2, chunks=iter([b"hi"]), body=body)
        dest = FakeGateway(buckets={"dst": {}})
        copier = ObjectCopier(source, dest, mock.Mock())

        copier.copy_object("src", "dst", ObjectDescriptor("k", 2))

        assert dest.buckets["dst"]["k"] == b"hi"
        body.close.assert_called_once_with()

    def test_threshold_sized_object_uses_multipart(self):
        """An object exactly at the threshold is chunked"""
        data = payload(5 * MIB)
        source = FakeGateway(buckets={"src": {"big": data}})
        dest = FakeGateway(buckets={"dst": {}})
        copier = ObjectCopier(source, dest, MultipartTransfer(dest, chunk_size=5 * MIB))

        strategy, copied = copier.copy_object("src", "dst", ObjectDescriptor("big", len(data)))

        assert strategy is TransferStrategy.CHUNKED
        assert copied == 5 * MIB
        assert len(dest.calls_named("upload_part")) == 1
        assert dest.buckets["dst"]["big"] == data

    def test_custom_threshold(self):
        """A lower threshold routes small objects to multipart"""
        source = FakeGateway(buckets={"src": {"k": b"0123456789"}})
        dest = FakeGateway(buckets={"dst": {}})
        copier = ObjectCopier(source, dest, MultipartTransfer(dest, chunk_size=4), threshold=8)

        strategy, _ = copier.copy_object("src", "dst", ObjectDescriptor("k", 10))

        assert strategy is TransferStrategy.CHUNKED
        assert dest.buckets["dst"]["k"] == b"0123456789"


class TestProvisionBucket:
    """Test destination bucket creation and collision handling"""

    def test_new_bucket_keeps_name(self, source, dest):
        """An unused name is created as-is"""
        assert _orchestrator(source, dest).provision_bucket("photos") == "photos"
        assert "photos" in dest.buckets

    def test_owned_bucket_is_idempotent(self, source, dest):
        """Creating an owned bucket twice is not an error and adds no bucket"""
        orchestrator = _orchestrator(source, dest)
        orchestrator.provision_bucket("photos")

        assert orchestrator.provision_bucket("photos") == "photos"
        assert list(dest.buckets) == ["photos"]

    def test_foreign_bucket_gets_suffix(self, source):
        """A name owned by another account is retried once with the suffix"""
        dest = FakeGateway(foreign_buckets={"photos"})
        orchestrator = _orchestrator(source, dest, bucket_suffix="-migrated")

        assert orchestrator.provision_bucket("photos") == "photos-migrated"
        assert [call[1] for call in dest.calls_named("create_bucket")] == ["photos", "photos-migrated"]

    def test_suffixed_bucket_already_owned_is_reused(self, source):
        """On a rerun the suffixed bucket we own is accepted"""
        dest = FakeGateway(buckets={"photos-migrated": {}}, foreign_buckets={"photos"})
        orchestrator = _orchestrator(source, dest, bucket_suffix="-migrated")

        assert orchestrator.provision_bucket("photos") == "photos-migrated"

    def test_collision_without_suffix_is_fatal(self, source):
        """Without NEW_BUCKET_SUFFIX a foreign name stops the run"""
        dest = FakeGateway(foreign_buckets={"photos"})

        with pytest.raises(BucketNameCollisionError, match="NEW_BUCKET_SUFFIX"):
            _orchestrator(source, dest).provision_bucket("photos")

    def test_suffixed_name_also_taken_is_fatal(self, source):
        """The suffix is only tried once"""
        dest = FakeGateway(foreign_buckets={"photos", "photos-x"})

        with pytest.raises(BucketNameCollisionError):
            _orchestrator(source, dest, bucket_suffix="-x").provision_bucket("photos")
        assert len(dest.calls_named("create_bucket")) == 2

    def test_unexpected_creation_error_propagates(self, source, dest):
        """Errors other than name conflicts are fatal"""
        dest.create_bucket = mock.Mock(side_effect=client_error("AccessDenied", "CreateBucket"))

        with pytest.raises(ClientError):
            _orchestrator(source, dest).provision_bucket("photos")


class TestMigrateBucket:
    """Test the per-bucket sequence"""

    def test_call_sequence(self, mock_print):  # pylint: disable=unused-argument
        """Create, list both sides, re-create with region, then copy"""
        source = FakeGateway(buckets={"a": {"k": b"data"}})
        dest = FakeGateway()
        orchestrator = _orchestrator(source, dest, dest_region="ap-northeast-1")

        orchestrator.migrate_bucket("a", MigrationSummary())

        assert dest.call_names() == [
            "create_bucket",
            "list_objects_v2",
            "create_bucket",
            "put_object",
        ]
        assert dest.calls_named("create_bucket") == [
            ("create_bucket", "a", None),
            ("create_bucket", "a", "ap-northeast-1"),
        ]
        assert source.call_names() == ["list_objects_v2", "get_object"]

    def test_rejected_location_constraint_does_not_stop_copy(self, mock_print):  # pylint: disable=unused-argument
        """An error from the region re-create is logged and the objects are still copied"""
        source = FakeGateway(buckets={"a": {"k": b"data"}})
        dest = FakeGateway()
        create_bucket = dest.create_bucket

        def _create(bucket, location_constraint=None):
            if location_constraint is not None:
                raise client_error("IllegalLocationConstraintException", "CreateBucket")
            return create_bucket(bucket, location_constraint)

        dest.create_bucket = _create

        with mock.patch("bucket_migration.logging.warning") as mock_warning:
            _orchestrator(source, dest, dest_region="ap-northeast-1").migrate_bucket("a", MigrationSummary())

        assert dest.buckets["a"] == {"k": b"data"}
        mock_warning.assert_called_once()

    def test_us_east_1_recreate_has_no_constraint(self, mock_print):  # pylint: disable=unused-argument
        """us-east-1 is never sent as a location constraint"""
        source = FakeGateway(buckets={"a": {}})
        dest = FakeGateway()

        _orchestrator(source, dest, dest_region="us-east-1").migrate_bucket("a", MigrationSummary())

        assert [call[2] for call in dest.calls_named("create_bucket")] == [None, None]

    def test_listings_use_max_keys(self, mock_print):  # pylint: disable=unused-argument
        """Both diff listings are bounded by max_keys"""
        source = FakeGateway(buckets={"a": {}})
        dest = FakeGateway()

        _orchestrator(source, dest, max_keys=123).migrate_bucket("a", MigrationSummary())

        assert source.calls_named("list_objects_v2") == [("list_objects_v2", "a", 123)]
        assert dest.calls_named("list_objects_v2") == [("list_objects_v2", "a", 123)]

    def test_objects_copied_into_renamed_bucket(self, mock_print):
        """Objects land in the suffixed bucket when the name collides"""
        source = FakeGateway(buckets={"a": {"k": b"data"}})
        dest = FakeGateway(foreign_buckets={"a"})

        _orchestrator(source, dest, bucket_suffix="-new").migrate_bucket("a", MigrationSummary())

        assert dest.buckets["a-new"] == {"k": b"data"}
        mock_print.assert_any_call("New Bucket: a-new")

    def test_source_is_never_mutated(self, mock_print):  # pylint: disable=unused-argument
        """Only read operations reach the source"""
        source = FakeGateway(buckets={"a": {"k": b"data", "big": payload(6 * MIB)}})
        dest = FakeGateway()

        _orchestrator(source, dest).migrate_bucket("a", MigrationSummary())

        assert set(source.call_names()) <= {"list_objects_v2", "get_object"}


class TestMigrateAllBuckets:
    """Test the run over every bucket"""

    def test_buckets_processed_in_listing_order(self, mock_print):
        """Buckets follow the source listing order, unsorted"""
        source = FakeGateway(buckets={"zeta": {"1": b"a"}, "alpha": {"2": b"b"}})
        dest = FakeGateway()

        summary = _orchestrator(source, dest).migrate_all_buckets()

        printed = [c.args[0] for c in mock_print.call_args_list if c.args and str(c.args[0]).startswith("Bucket:")]
        assert printed == ["Bucket: zeta", "Bucket: alpha"]
        assert summary.buckets == 2
        assert dest.buckets == {"zeta": {"1": b"a"}, "alpha": {"2": b"b"}}
        mock_print.assert_any_call("Done!")

    def test_excluded_buckets_are_skipped(self, mock_print):  # pylint: disable=unused-argument
        """Excluded buckets are neither created nor copied"""
        source = FakeGateway(buckets={"keep": {"1": b"a"}, "skip": {"2": b"b"}})
        dest = FakeGateway()

        summary = _orchestrator(source, dest, excluded_buckets=["skip"]).migrate_all_buckets()

        assert list(dest.buckets) == ["keep"]
        assert summary.buckets == 1

    def test_get_failure_stops_run_without_rollback(self, mock_print):  # pylint: disable=unused-argument
        """A failed object stops the run; earlier objects stay migrated"""
        source = FakeGateway(buckets={"a": {"1": b"one", "2": b"two", "3": b"three"}, "b": {"4": b"x"}})
        source.failing_gets = {"2"}
        dest = FakeGateway()

        with pytest.raises(ClientError):
            _orchestrator(source, dest).migrate_all_buckets()

        assert dest.buckets["a"] == {"1": b"one"}
        assert "b" not in dest.buckets

    def test_multipart_failure_stops_run(self, mock_print):  # pylint: disable=unused-argument
        """A failed chunked transfer surfaces as MultipartUploadError"""
        source = FakeGateway(buckets={"a": {"big": payload(6 * MIB)}})
        dest = FakeGateway()
        dest.failing_parts = {2}

        with pytest.raises(MultipartUploadError):
            _orchestrator(source, dest).migrate_all_buckets()

    def test_status_enum_drives_provisioning(self, mock_print):  # pylint: disable=unused-argument
        """A mocked destination reporting ALREADY_OWNED_BY_YOU reuses the name"""
        source = FakeGateway(buckets={"a": {}})
        dest = mock.Mock()
        dest.create_bucket.return_value = BucketCreateStatus.ALREADY_OWNED_BY_YOU
        dest.list_objects_v2.return_value = []

        _orchestrator(source, dest).migrate_all_buckets()

        assert dest.create_bucket.call_args_list[0] == mock.call("a")
