"""Helper functions for the application."""
from flask import jsonify, request
from typing import Dict, Any, Iterable, List, Optional

def handle_error(error, status_code: int):
    """Handle application errors with consistent format."""
    message = getattr(error, 'description', None) or str(error)
    return error_response(message, status_code)

def success_response(data: Optional[Dict[str, Any]] = None, message: str = None, status_code: int = 200):
    """Return consistent success response."""
    response = {'success': True}
    
    if message is not None:
        response['message'] = message
    
    if data:
        response.update(data)
    
    return jsonify(response), status_code

def error_response(message: str, status_code: int = 400):
    """Return consistent error response."""
    return jsonify({
        'success': False,
        'error': message
    }), status_code

def json_body() -> Dict[str, Any]:
    """Request JSON object, or an empty dict for anything else."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}

def parse_id(value) -> Optional[int]:
    """Return ``value`` as a positive integer id, or None when malformed."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
        return number if number > 0 else None
    return None

def parse_id_list(values) -> List[Any]:
    """Accept a list or a comma separated string of ids."""
    if values is None:
        return []
    if isinstance(values, str):
        return [v.strip() for v in values.split(',') if v.strip()]
    if isinstance(values, (list, tuple)):
        return list(values)
    return []

def chunked(items: List[Any], size: int) -> Iterable[List[Any]]:
    """Yield consecutive slices of ``items`` of at most ``size`` elements."""
    for start in range(0, len(items), size):
        yield items[start:start + size]
