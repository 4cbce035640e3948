from rest_framework.views import exception_handler


def api_exception_handler(exc, context):
    """
    Wrap DRF error responses in the {"status": "error", "message": ...}
    envelope used by every LearnHub API view.
    """
    response = exception_handler(exc, context)
    if response is None:
        return None

    detail = response.data
    if isinstance(detail, dict) and 'detail' in detail:
        message = detail['detail']
        errors = None
    else:
        message = "Invalid request"
        errors = detail

    body = {
        "status": "error",
        "message": str(message),
        "code": getattr(exc, 'default_code', 'error'),
    }
    if errors is not None:
        body["errors"] = errors

    if getattr(exc, 'get_codes', None):
        codes = exc.get_codes()
        if isinstance(codes, str):
            body["code"] = codes

    response.data = body
    return response
