"""GeoIPT point lookup.

Finds the zoning / planning-instrument polygons (IPT, PRC, SCC) that
contain a clicked map point. A regional catalog of KML/GeoJSON geometry
files is narrowed by viewport bounding box, then each candidate file is
parsed and tested with point-in-polygon containment.
"""

__version__ = "0.1.0"
