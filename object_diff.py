"""Diffing source and destination listings to find objects still to transfer"""

from __future__ import annotations

from typing import Iterable

from storage_gateway import ObjectDescriptor


def pending_keys(
    source_listing: Iterable[ObjectDescriptor], dest_listing: Iterable[ObjectDescriptor]
) -> set[str]:
    """
    Return every source key that is absent from the destination.

    Both listings must be fully materialized (all pages merged). Membership is
    exact string equality on keys; sizes and other metadata are ignored.
    """
    migrated = {obj.key for obj in dest_listing}
    return {obj.key for obj in source_listing if obj.key not in migrated}


def pending_objects(
    source_listing: Iterable[ObjectDescriptor], dest_listing: Iterable[ObjectDescriptor]
) -> list[ObjectDescriptor]:
    """Return the pending source descriptors in source listing order."""
    source_listing = list(source_listing)
    pending = pending_keys(source_listing, dest_listing)
    return [obj for obj in source_listing if obj.key in pending]
