import logging

from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def first_message(detail):
    """اولین پیام خوانا از ساختار تو در توی خطاهای DRF."""
    if isinstance(detail, dict):
        for value in detail.values():
            msg = first_message(value)
            if msg:
                return msg
        return ""
    if isinstance(detail, (list, tuple)):
        for value in detail:
            msg = first_message(value)
            if msg:
                return msg
        return ""
    return str(detail) if detail is not None else ""


def api_exception_handler(exc, context):
    """
    همه‌ی پاسخ‌های خطا را به شکل واحد برمی‌گرداند:
        {"success": false, "message": "...", "errors": {...}}
    خطاهای پیش‌بینی‌نشده به DRF برنمی‌گردند و Django 500 می‌دهد.
    """
    response = exception_handler(exc, context)
    if response is None:
        view = context.get("view")
        logger.exception("UNHANDLED_API_ERROR view=%s", view.__class__.__name__ if view else None)
        return None

    data = response.data
    body = {"success": False}
    if isinstance(data, dict) and set(data.keys()) <= {"detail", "code", "messages"}:
        body["message"] = first_message(data.get("detail"))
    else:
        body["message"] = "Validation failed" if response.status_code == 400 else first_message(data)
        body["errors"] = data
    response.data = body
    return response
