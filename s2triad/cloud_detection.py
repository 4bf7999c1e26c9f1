"""
Server-side cloud probability bands and per-image quality metrics.

Metrics are area-weighted means over the export polygon computed with
``bestEffort`` reductions, so values are approximate whenever Earth Engine
has to coarsen the sampling scale to stay under ``maxPixels``.
"""
import logging
from typing import List

import ee

from .config import (
    CLOUDPROB_PROPERTY, VALID_REFERENCE_BAND,
    DEFAULT_ROI_CLOUD, DEFAULT_CLOUD_FRAC, DEFAULT_VALID_FRAC,
)
from .quality_scoring import Candidate

PROB_BAND = "probability"


def add_cloud_probability(img):
    """Add the joined s2cloudless band; images without a match get a constant fully-cloudy band."""
    img = ee.Image(img)
    cp = img.get(CLOUDPROB_PROPERTY)
    prob = ee.Image(ee.Algorithms.If(
        cp,
        ee.Image(cp).select(PROB_BAND),
        ee.Image.constant(DEFAULT_ROI_CLOUD).rename(PROB_BAND),
    ))
    return ee.Image(img.addBands(prob.rename(PROB_BAND))
                    .copyProperties(img, ['system:time_start', 'CLOUDY_PIXEL_PERCENTAGE']))


def _or_default(value, default):
    # Only a null reduction is replaced; a legitimate 0 must survive.
    return ee.Number(ee.Algorithms.If(ee.Algorithms.IsEqual(value, None), default, value))


def _region_mean(image, band, geometry, scale, max_pixels):
    return image.reduceRegion(
        reducer=ee.Reducer.mean(),
        geometry=geometry,
        scale=scale,
        bestEffort=True,
        maxPixels=max_pixels,
    ).get(band)


def metrics_adder(geometry, cfg):
    """
    Build a mappable function that sets roiCloud, cloudFrac and validFrac.

    roiCloud  = mean cloud probability (lower is better), default 100
    cloudFrac = fraction of pixels with prob > threshold (lower is better), default 1
    validFrac = fraction of unmasked pixels in B2 (higher is better), default 0
    """
    def add_metrics(img):
        img = ee.Image(img)
        prob = img.select(PROB_BAND)

        roi_cloud = _or_default(
            _region_mean(prob, PROB_BAND, geometry, cfg.cloud_metric_scale, cfg.max_pixels),
            DEFAULT_ROI_CLOUD)
        cloud_frac = _or_default(
            _region_mean(prob.gt(cfg.cloud_prob_thresh), PROB_BAND, geometry,
                         cfg.cloud_metric_scale, cfg.max_pixels),
            DEFAULT_CLOUD_FRAC)
        valid_frac = _or_default(
            _region_mean(img.select(VALID_REFERENCE_BAND).mask(), VALID_REFERENCE_BAND, geometry,
                         cfg.valid_metric_scale, cfg.max_pixels),
            DEFAULT_VALID_FRAC)

        return img.set({
            'roiCloud': roi_cloud,
            'cloudFrac': cloud_frac,
            'validFrac': valid_frac,
        })

    return add_metrics


def score_collection(collection, geometry, cfg):
    """Cloud probability band plus metrics for every image in the collection."""
    return collection.map(add_cloud_probability).map(metrics_adder(geometry, cfg))


def _candidate_feature(img):
    img = ee.Image(img)
    return ee.Feature(None, {
        'id': img.get('system:index'),
        'time_start': img.get('system:time_start'),
        'roiCloud': img.get('roiCloud'),
        'cloudFrac': img.get('cloudFrac'),
        'validFrac': img.get('validFrac'),
        'CLOUDY_PIXEL_PERCENTAGE': img.get('CLOUDY_PIXEL_PERCENTAGE'),
    })


def fetch_candidates(scored) -> List[Candidate]:
    """
    Pull the metrics of every scored image in one round-trip.

    Blocks until the server-side reductions have finished.
    """
    info = ee.FeatureCollection(scored.map(_candidate_feature)).getInfo()
    features = (info or {}).get('features', [])
    candidates = [Candidate.from_properties(f.get('properties', {})) for f in features]
    logging.debug("Fetched %d candidates", len(candidates))
    return candidates
