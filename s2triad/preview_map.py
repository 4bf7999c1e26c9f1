"""
HTML preview map of the region outlines and the rendered before / on / after layers.
Uses folium so the result opens in any browser.
"""
import os
import logging
from typing import Dict, Optional

import folium
from shapely.geometry import mapping

ROI_COLOR = 'red'
EXPORT_COLOR = 'yellow'


def _outline(geom, color: str, name: str, show: bool = False):
    return folium.GeoJson(
        mapping(geom),
        name=name,
        show=show,
        style_function=lambda _feature, c=color: {'color': c, 'weight': 2, 'fillOpacity': 0.0},
    )


def create_preview_map(region, layers: Optional[Dict[str, str]] = None, zoom_start: int = 13) -> folium.Map:
    """
    Build the preview map.

    Args:
        region: RegionGeometry
        layers: name -> XYZ tile URL of an already rendered RGB8 image
    """
    m = folium.Map(location=[region.lat, region.lon], zoom_start=zoom_start, tiles='OpenStreetMap')
    folium.TileLayer(
        tiles='https://server.arcgisonline.com/ArcGIS/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}',
        attr='Esri',
        name='Esri World Imagery',
        overlay=False,
    ).add_to(m)

    _outline(region.roi_ll, ROI_COLOR, f'ROI ({region.area_m2 / 1e6:g} km^2)').add_to(m)
    _outline(region.export_ll, EXPORT_COLOR, 'Export region (inset)').add_to(m)

    for name, url in (layers or {}).items():
        folium.TileLayer(tiles=url, attr='Google Earth Engine', name=name, overlay=True).add_to(m)

    folium.LayerControl(collapsed=False).add_to(m)
    minx, miny, maxx, maxy = region.roi_ll.bounds
    m.fit_bounds([[miny, minx], [maxy, maxx]])
    return m


def save_preview_map(region, layers: Optional[Dict[str, str]], out_html: str) -> str:
    m = create_preview_map(region, layers)
    os.makedirs(os.path.dirname(out_html) or ".", exist_ok=True)
    m.save(out_html)
    logging.info("Preview map written to %s", out_html)
    return out_html
