"""Lookup pipeline activities.

Each activity performs a single stage of a point query:
- resolve_catalog: Region manifest + listings → viewport candidates
- parse_geometry: Extract polygon features from KML / GeoJSON files
- find_containing: Fetch candidates and ray-cast the query point
- assemble_results: Match list + per-file candidate table
- build_report: Report document with UTM coordinates and zone metrics
- export_zone: KML / JSON download of one matched zone
"""
