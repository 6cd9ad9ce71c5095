from typing import Any, Optional

from flask import jsonify, request


class APIResponse:
    """Standardized API response handler"""

    @staticmethod
    def success(data: Any = None, status_code: int = 200):
        response = jsonify({'success': True, 'data': data})
        response.headers['Cache-Control'] = 'no-store'
        return response, status_code

    @staticmethod
    def created(data: Any = None):
        return APIResponse.success(data, status_code=201)

    @staticmethod
    def error(message: str, code: str = 'invalid_argument', details: Optional[dict] = None, status_code: int = 400):
        response = jsonify({
            'success': False,
            'error': code,
            'message': message,
            'retryable': False,
            'details': details or {},
        })
        response.headers['Cache-Control'] = 'no-store'
        return response, status_code

    @staticmethod
    def json_body() -> dict:
        """Request JSON object; anything else is treated as empty."""
        payload = request.get_json(silent=True)
        return payload if isinstance(payload, dict) else {}
