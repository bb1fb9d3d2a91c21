from __future__ import annotations

import csv
import io
import logging
from functools import wraps

from flask import Flask, jsonify, request, send_file, session
from PIL import Image, UnidentifiedImageError
from pyzbar.pyzbar import decode as pyzbar_decode

from ..common.datetime_utils import isoformat_or_none, now_local
from ..common.validators import require_positive_int
from ..core.enums import Role
from ..core.exceptions import (
    ConflictError,
    NotEligibleError,
    NotFoundError,
    ValidationError,
)
from ..container import Container
from .model import AttendanceRecord
from .service import ScanResult

logger = logging.getLogger(__name__)

EXPORT_FIELDS = [
    "student_number",
    "student_name",
    "college",
    "course",
    "status",
    "time_in",
    "time_out",
    "date_recorded",
]


def record_to_json(record: AttendanceRecord) -> dict:
    return {
        "id": record.attendance_id,
        "eventId": record.event_id,
        "studentId": record.student_id,
        "timeIn": isoformat_or_none(record.time_in),
        "timeOut": isoformat_or_none(record.time_out),
        "status": record.status.value,
        "mode": record.mode.value if record.mode else None,
        "createdAt": isoformat_or_none(record.created_at),
        "updatedAt": isoformat_or_none(record.updated_at),
    }


def error_response(exc: Exception):
    """Map domain exceptions to JSON responses; store details never leave the server."""

    if isinstance(exc, NotFoundError):
        return jsonify({"success": False, "message": str(exc)}), 404
    if isinstance(exc, ValidationError):
        return jsonify({"success": False, "message": str(exc)}), 400
    if isinstance(exc, NotEligibleError):
        return jsonify({"success": False, "message": str(exc)}), 403
    if isinstance(exc, ConflictError):
        return jsonify({"success": False, "message": "Attendance is being updated elsewhere, please scan again"}), 409
    logger.exception("request failed path=%s", request.path)
    return jsonify({"success": False, "message": "Failed to process attendance"}), 500


def register(app: Flask, container: Container) -> None:
    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify({"success": False, "message": "Unauthorized"}), 401
            return view(*args, **kwargs)

        return wrapper

    def admin_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify({"success": False, "message": "Unauthorized"}), 401
            if session.get("role") != Role.ADMIN.value:
                return jsonify({"success": False, "message": "Forbidden"}), 403
            return view(*args, **kwargs)

        return wrapper

    def _is_admin() -> bool:
        return session.get("role") == Role.ADMIN.value

    def _scan_json(result: ScanResult) -> dict:
        return {
            "success": True,
            "studentName": result.student_name,
            "studentId": result.student_number,
            "eventTitle": result.event_title,
            "action": result.action.value,
            "timestamp": result.timestamp.isoformat(),
            "record": record_to_json(result.record),
        }

    @app.route("/api/attendance/event/<int:event_id>/record", methods=["POST"], endpoint="api_record_scan")
    @login_required
    def api_record_scan(event_id: int):
        data = request.get_json(silent=True) or {}
        try:
            result = container.scan_service.record_scan(event_id, str(data.get("barcode") or ""))
        except Exception as e:
            return error_response(e)
        return jsonify(_scan_json(result)), 200

    @app.route(
        "/api/attendance/event/<int:event_id>/record/image",
        methods=["POST"],
        endpoint="api_record_scan_image",
    )
    @login_required
    def api_record_scan_image(event_id: int):
        """Decode the barcode from an uploaded photo of the ID, then toggle."""

        if "image" not in request.files:
            return jsonify({"success": False, "message": "Image file is required"}), 400

        try:
            img = Image.open(request.files["image"].stream).convert("RGB")
        except UnidentifiedImageError:
            return jsonify({"success": False, "message": "Uploaded file is not an image"}), 400

        decoded = pyzbar_decode(img)
        if not decoded:
            return jsonify({"success": False, "message": "No barcode found in image"}), 400

        try:
            barcode = decoded[0].data.decode("utf-8").strip()
        except UnicodeDecodeError:
            return jsonify({"success": False, "message": "Unreadable barcode"}), 400

        try:
            result = container.scan_service.record_scan(event_id, barcode)
        except Exception as e:
            return error_response(e)
        return jsonify(_scan_json(result)), 200

    @app.route("/api/attendance/barcode-scan", methods=["POST"], endpoint="api_barcode_scan")
    @login_required
    def api_barcode_scan():
        data = request.get_json(silent=True) or {}
        if not data.get("studentId") or not data.get("eventId") or not data.get("mode"):
            return jsonify({"success": False, "message": "Student ID, event ID and mode are required"}), 400

        try:
            result = container.scan_service.record_directed_scan(
                require_positive_int(data["eventId"], "eventId"),
                str(data["studentId"]),
                str(data["mode"]),
                admin_override=bool(data.get("adminOverride")) and _is_admin(),
            )
        except Exception as e:
            return error_response(e)
        return jsonify(_scan_json(result)), 201

    @app.route("/api/attendance/bulk-scan", methods=["POST"], endpoint="api_bulk_scan")
    @login_required
    def api_bulk_scan():
        data = request.get_json(silent=True) or {}
        student_ids = data.get("studentIds")
        if not isinstance(student_ids, list) or not data.get("eventId") or not data.get("mode"):
            return jsonify({"success": False, "message": "studentIds (list), eventId and mode are required"}), 400

        try:
            result = container.scan_service.record_bulk_scan(
                require_positive_int(data["eventId"], "eventId"),
                student_ids,
                str(data["mode"]),
                admin_override=bool(data.get("adminOverride")) and _is_admin(),
            )
        except Exception as e:
            return error_response(e)

        return jsonify(
            {
                "success": True,
                "results": {
                    "success": result.success,
                    "failed": [{"studentId": b, "error": err} for b, err in result.failed],
                },
                "total": result.total,
                "successful": result.successful,
                "failed": result.failed_count,
            }
        ), 200

    @app.route("/api/attendance/event/<int:event_id>/records", methods=["GET"], endpoint="api_event_records")
    @login_required
    def api_event_records(event_id: int):
        try:
            listing = container.report_service.list_event_records(event_id)
        except Exception as e:
            return error_response(e)

        records = [
            {
                "id": row.id,
                "studentId": row.student_number,
                "studentName": row.student_name,
                "timeIn": isoformat_or_none(row.time_in),
                "timeOut": isoformat_or_none(row.time_out),
                "status": row.status.value,
            }
            for row in listing.records
        ]
        return jsonify({"success": True, "records": records, "total": listing.total}), 200

    @app.route("/api/attendance/event/<int:event_id>/stats", methods=["GET"], endpoint="api_event_stats")
    @login_required
    def api_event_stats(event_id: int):
        try:
            stats = container.report_service.compute_event_stats(event_id)
        except Exception as e:
            return error_response(e)

        return jsonify(
            {
                "success": True,
                "totalEligible": stats.total_eligible,
                "attended": stats.attended,
                "percentage": stats.percentage,
                "scopeDetails": {
                    "scopeType": stats.scope_details["scope_type"],
                    "college": stats.scope_details["college"],
                    "course": stats.scope_details["course"],
                },
            }
        ), 200

    @app.route("/api/attendance/event/<int:event_id>/export", methods=["GET"], endpoint="api_event_export")
    @admin_required
    def api_event_export(event_id: int):
        try:
            event, rows = container.report_service.export_event_rows(event_id)
        except Exception as e:
            return error_response(e)

        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=EXPORT_FIELDS)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)

        slug = "-".join(event.title.split()) or f"event-{event.event_id}"
        filename = f"attendance-{slug}-{now_local().strftime('%Y-%m-%d')}.csv"
        return send_file(
            io.BytesIO(out.getvalue().encode("utf-8-sig")),
            mimetype="text/csv",
            as_attachment=True,
            download_name=filename,
        )

    @app.route("/api/attendance/event/<int:event_id>", methods=["POST"], endpoint="api_create_record")
    @admin_required
    def api_create_record(event_id: int):
        data = request.get_json(silent=True) or {}
        try:
            record = container.record_editor.create_record(event_id, str(data.get("studentId") or ""), data)
        except Exception as e:
            return error_response(e)
        return jsonify({"success": True, "record": record_to_json(record)}), 201

    @app.route(
        "/api/attendance/event/<int:event_id>/<int:record_id>",
        methods=["PUT"],
        endpoint="api_update_record",
    )
    @admin_required
    def api_update_record(event_id: int, record_id: int):
        data = request.get_json(silent=True) or {}
        try:
            record = container.record_editor.update_record(event_id, record_id, data)
        except Exception as e:
            return error_response(e)
        return jsonify({"success": True, "record": record_to_json(record)}), 200

    @app.route(
        "/api/attendance/event/<int:event_id>/<int:record_id>",
        methods=["DELETE"],
        endpoint="api_delete_record",
    )
    @admin_required
    def api_delete_record(event_id: int, record_id: int):
        try:
            container.record_editor.soft_delete_record(record_id, event_id=event_id)
        except Exception as e:
            return error_response(e)
        return jsonify({"success": True, "message": "Attendance record deleted"}), 200
