"""
Earth Engine collection helpers for Sentinel-2 SR and its cloud probability.
"""
import logging
import ee

from .config import S2_SR_COLLECTION, S2_CLOUDPROB_COLLECTION, CLOUDPROB_PROPERTY


def sentinel_collection(region):
    """Sentinel-2 harmonized surface reflectance over the region."""
    return ee.ImageCollection(S2_SR_COLLECTION).filterBounds(region)


def sentinel_cloudprob_collection(region):
    """Sentinel-2 s2cloudless probability over the region."""
    return ee.ImageCollection(S2_CLOUDPROB_COLLECTION).filterBounds(region)


def join_cloudprob(s2_sr_col, s2_prob_col):
    """
    Attach the matching cloud probability image to each SR image by system:index.

    Uses saveFirst so SR images without a match are kept; the match (if any)
    is stored under the ``cloudprob`` property.
    """
    condition = ee.Filter.equals(leftField='system:index', rightField='system:index')
    joined = ee.Join.saveFirst(CLOUDPROB_PROPERTY).apply(
        primary=s2_sr_col, secondary=s2_prob_col, condition=condition)
    return ee.ImageCollection(joined)


def joined_collection(region):
    """SR collection joined with cloud probability, both bounded to region."""
    logging.debug("Building joined %s / %s collection", S2_SR_COLLECTION, S2_CLOUDPROB_COLLECTION)
    return join_cloudprob(sentinel_collection(region), sentinel_cloudprob_collection(region))


def window_collection(joined, window):
    """Restrict a joined collection to a DateWindow (end exclusive)."""
    return joined.filterDate(window.start_iso, window.end_iso)
