from __future__ import annotations

import io
from functools import wraps

import qrcode
from flask import Flask, jsonify, request, send_file, session

from ..attendance.controller import error_response
from ..common.datetime_utils import isoformat_or_none
from ..container import Container
from ..core.exceptions import NotFoundError


def register(app: Flask, container: Container) -> None:
    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify({"success": False, "message": "Unauthorized"}), 401
            return view(*args, **kwargs)

        return wrapper

    @app.route(
        "/api/students/<student_number>/events-with-status",
        methods=["GET"],
        endpoint="api_student_events_with_status",
    )
    @login_required
    def api_student_events_with_status(student_number: str):
        try:
            history = container.report_service.student_history(
                student_number,
                filter=request.args.get("filter", "all"),
            )
        except Exception as e:
            return error_response(e)

        events = []
        for item in history.events:
            event = item["event"]
            details = item["status_details"]
            events.append(
                {
                    "id": event.event_id,
                    "title": event.title,
                    "date": event.event_date.isoformat() if event.event_date else None,
                    "scopeType": event.scope_type.value,
                    "attendanceType": event.attendance_type.value,
                    "attendanceStatus": item["attendance_status"].value,
                    "statusDetails": None
                    if details is None
                    else {
                        "timeIn": isoformat_or_none(details["time_in"]),
                        "timeOut": isoformat_or_none(details["time_out"]),
                        "recordedAt": isoformat_or_none(details["recorded_at"]),
                    },
                }
            )

        stats = history.stats
        return jsonify(
            {
                "success": True,
                "student": {
                    "studentId": history.student.student_number,
                    "name": history.student.name,
                    "college": history.student.college,
                    "course": history.student.course,
                },
                "events": events,
                "stats": {
                    "total": stats["total"],
                    "attended": stats["attended"],
                    "missed": stats["missed"],
                    "attendanceRate": stats["attendance_rate"],
                },
            }
        ), 200

    @app.route("/api/students/<student_number>/badge.png", methods=["GET"], endpoint="api_student_badge")
    @login_required
    def api_student_badge(student_number: str):
        """QR code of the student number, printed on ID badges for scanning."""

        try:
            student = container.students_repo.get_by_number(student_number)
            if not student:
                raise NotFoundError("student", "Student not found")
        except Exception as e:
            return error_response(e)

        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=2,
        )
        qr.add_data(student.student_number)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")

        buf = io.BytesIO()
        img.save(buf, format="PNG")
        buf.seek(0)
        return send_file(buf, mimetype="image/png", download_name=f"badge-{student.student_number}.png")
