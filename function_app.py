"""Azure Functions entry point: GeoIPT point lookup.

This module registers the HTTP functions using the Python v2
programming model.

All business logic lives in the geoipt package. This file is purely
the wiring layer between Azure Functions bindings and application code.
"""

from __future__ import annotations

import json
import logging

import azure.functions as func

from geoipt.activities.build_report import build_report
from geoipt.activities.export_zone import ExportError, export_zone
from geoipt.core.constants import QueryStatus
from geoipt.core.context import QueryContext
from geoipt.core.exceptions import ContractError
from geoipt.core.ingress import parse_export_params, parse_query_params
from geoipt.orchestrators.query_pipeline import resolve_query

app = func.FunctionApp(http_auth_level=func.AuthLevel.ANONYMOUS)

logger = logging.getLogger("geoipt.function_app")

_JSON_MIMETYPE = "application/json"


def _json_response(body: object, status_code: int) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps(body, ensure_ascii=False),
        status_code=status_code,
        mimetype=_JSON_MIMETYPE,
    )


def _error_response(exc: ContractError | ExportError, status_code: int) -> func.HttpResponse:
    return _json_response({"error": exc.to_error_dict()}, status_code)


# ---------------------------------------------------------------------------
# HTTP: Point query → report JSON
# ---------------------------------------------------------------------------


@app.function_name("geoipt_query")
@app.route(route="query", methods=["GET"])
def geoipt_query(req: func.HttpRequest) -> func.HttpResponse:
    """Resolve the zones containing ``lat``/``lon`` within ``bbox``.

    Returns:
        400 for malformed parameters, 503 when the layer catalog is
        unavailable, 200 with the report document otherwise.
    """
    try:
        point, viewport = parse_query_params(req.params)
    except ContractError as exc:
        logger.warning("Rejected query | code=%s | %s", exc.code, exc)
        return _error_response(exc, 400)

    with QueryContext.from_config() as context:
        result = resolve_query(point, viewport, context)

    report = build_report(result)
    status_code = 503 if result.status is QueryStatus.CATALOG_UNAVAILABLE else 200
    return _json_response(report.model_dump(mode="json"), status_code)


# ---------------------------------------------------------------------------
# HTTP: Export one matched zone as KML / JSON
# ---------------------------------------------------------------------------


@app.function_name("geoipt_export")
@app.route(route="export", methods=["GET"])
def geoipt_export(req: func.HttpRequest) -> func.HttpResponse:
    """Download one matched zone as an attachment.

    The query is re-run and the zone is selected by ``file``, ``index``
    and the optional ``folder`` among its matches, so only zones that contain the point
    can be exported.
    """
    try:
        request = parse_export_params(req.params)
    except ContractError as exc:
        logger.warning("Rejected export | code=%s | %s", exc.code, exc)
        return _error_response(exc, 400)

    with QueryContext.from_config() as context:
        result = resolve_query(request.point, request.viewport, context)

    if result.status is QueryStatus.CATALOG_UNAVAILABLE:
        return _json_response({"error": result.error}, 503)

    match = next(
        (
            m
            for m in result.matches
            if m.source_file == request.file_name
            and m.feature_index == request.feature_index
            and (not request.folder_key or m.folder_key == request.folder_key)
        ),
        None,
    )
    if match is None:
        logger.info(
            "Export target not matched | folder=%s | file=%s | index=%d | correlation_id=%s",
            request.folder_key,
            request.file_name,
            request.feature_index,
            result.correlation_id,
        )
        return _json_response(
            {"error": {"code": "ZONE_NOT_FOUND", "message": "No matching zone for this point"}},
            404,
        )

    instrument_name = next(
        (
            row.name
            for row in result.candidate_table
            if row.file_name == match.source_file and row.folder_key == match.folder_key
        ),
        "",
    )
    try:
        exported = export_zone(match, request.fmt, instrument_name=instrument_name)
    except ExportError as exc:
        logger.warning("Export failed | code=%s | %s", exc.code, exc)
        return _error_response(exc, 422)

    return func.HttpResponse(
        exported.content,
        status_code=200,
        mimetype=exported.content_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.file_name}"'},
    )
