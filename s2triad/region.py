"""
Square region of interest of fixed area around a center point, built in a
projected CRS, plus the inset export polygon.
"""
import math
import logging
from typing import NamedTuple, Optional

import pyproj
from shapely.geometry import Point, Polygon, box, mapping
from shapely.ops import transform as shp_transform

from .utils import utm_epsg_for

WGS84 = "EPSG:4326"


class RegionGeometry(NamedTuple):
    lat: float
    lon: float
    area_m2: float
    buffer_m: float
    crs: str
    center: Point        # projected
    roi: Polygon         # projected
    export: Polygon      # projected, inset by buffer_m
    roi_ll: Polygon      # lon/lat
    export_ll: Polygon   # lon/lat

    @property
    def side_m(self) -> float:
        return math.sqrt(self.area_m2)

    @property
    def half_side_m(self) -> float:
        return self.side_m / 2.0

    def ee_geometries(self):
        """
        Earth Engine counterparts: (roi, export, roi_ll, export_ll).

        The projected rectangles are planar in ``crs``; the lon/lat polygons
        are used for catalog filtering, thumbnails and display.
        """
        import ee

        def planar(poly):
            return ee.Geometry.Rectangle(list(poly.bounds), proj=self.crs, geodesic=False)

        def geographic(poly):
            return ee.Geometry(mapping(poly), opt_geodesic=False)

        return planar(self.roi), planar(self.export), geographic(self.roi_ll), geographic(self.export_ll)


def square_side(area_m2: float) -> float:
    return math.sqrt(area_m2)


def build_region(lat: float, lon: float, area_m2: float, buffer_m: float,
                 crs: Optional[str] = None) -> RegionGeometry:
    """
    Axis-aligned square of ``area_m2`` centered on (lat, lon) in ``crs``,
    and the same square shrunk on every side by ``buffer_m``.

    With no ``crs`` the UTM zone of the center point is used. Degenerate areas
    or buffers are not validated here.
    """
    crs = crs or utm_epsg_for(lon, lat)
    to_proj = pyproj.Transformer.from_crs(WGS84, crs, always_xy=True).transform
    to_wgs = pyproj.Transformer.from_crs(crs, WGS84, always_xy=True).transform

    x, y = to_proj(lon, lat)
    half = square_side(area_m2) / 2.0
    roi = box(x - half, y - half, x + half, y + half)
    inset = half - buffer_m
    export = box(x - inset, y - inset, x + inset, y + inset)

    logging.debug("Region %s: side %.1fm, export side %.1fm (center %.1f, %.1f)",
                  crs, 2 * half, 2 * inset, x, y)

    return RegionGeometry(
        lat=lat, lon=lon, area_m2=area_m2, buffer_m=buffer_m, crs=crs,
        center=Point(x, y), roi=roi, export=export,
        roi_ll=shp_transform(to_wgs, roi),
        export_ll=shp_transform(to_wgs, export),
    )


def region_from_config(cfg) -> RegionGeometry:
    return build_region(cfg.lat, cfg.lon, cfg.square_area_m2, cfg.export_buffer_m, cfg.out_crs)
