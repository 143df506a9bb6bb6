"""Request body helpers shared by the JSON blueprints."""
from flask import request


def request_payload() -> dict:
    """JSON object body, or the form fields; anything else counts as empty."""
    if request.is_json:
        data = request.get_json(silent=True)
    else:
        data = request.form.to_dict()
    return data if isinstance(data, dict) else {}
