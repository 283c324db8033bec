"""
Flask app exposing the document mailer to automation platforms.
Routes: tool discovery, send-by-name webhook, table reload, health.
"""

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from . import __version__
from .logger import get_logger
from .service import (
    STATUS_DELIVERY_FAILED,
    STATUS_INVALID,
    STATUS_NOT_FOUND,
    DispatchService,
)

logger = get_logger()

MAX_BODY_BYTES = 1024 * 1024
FORM_MIMETYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

TOOL_NAME = "send_pdf_by_name"

TOOL_MANIFEST = {
    "name": "teacher-pdf-mcp",
    "version": __version__,
    "tools": [
        {
            "name": TOOL_NAME,
            "description": "Find PDF by PDF name and email it to the teacher.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "pdf_name": {"type": "string"},
                    "teacher_name": {"type": "string"},
                    "teacher_email": {"type": "string"},
                },
                "required": ["pdf_name", "teacher_name", "teacher_email"],
            },
        }
    ],
}


def _request_body() -> dict:
    """JSON regardless of content type, falling back to form fields."""
    if request.mimetype in FORM_MIMETYPES:
        return request.form.to_dict()
    data = request.get_json(force=True, silent=True)
    return data if isinstance(data, dict) else {}


def create_app(service: DispatchService) -> Flask:
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = MAX_BODY_BYTES
    CORS(app, send_wildcard=True)

    @app.route('/mcp', methods=['GET'])
    def discovery():
        return jsonify(TOOL_MANIFEST)

    @app.route(f'/mcp/tools/{TOOL_NAME}', methods=['POST'])
    def send_pdf_by_name():
        body = _request_body()
        logger.debug("Incoming dispatch request", body=body)

        outcome = service.dispatch(body)
        status = outcome["status"]

        if status == STATUS_INVALID:
            return jsonify({
                'ok': False,
                'message': 'Missing required fields',
                'errors': outcome['errors'],
                'resolved': {
                    'pdf_name': outcome['resolved']['query'],
                    'teacher_name': outcome['resolved']['recipient_name'],
                    'teacher_email': outcome['resolved']['recipient_email'],
                },
                'hint': 'Ensure fields exist in customData (pdf_name, teacher_name, teacher_email)',
            }), 400

        if status == STATUS_NOT_FOUND:
            return jsonify({
                'ok': False,
                'message': 'No PDF found for that pdf_name',
                'pdf_name': outcome['pdf_name'],
                'reason': outcome['reason'],
            }), 404

        if status == STATUS_DELIVERY_FAILED:
            return jsonify({
                'ok': False,
                'message': 'Email delivery failed',
                'pdf_name': outcome['pdf_name'],
                'error': outcome['error'],
            }), 502

        return jsonify({
            'ok': True,
            'message': 'PDF sent successfully',
            'pdf_name': outcome['pdf_name'],
            'pdf_link': outcome['pdf_link'],
            'email_id': outcome['email_id'],
        })

    @app.route('/reload', methods=['GET', 'POST'])
    def reload_table():
        result = service.reload()
        if not result['ok']:
            return jsonify({'ok': False, 'message': result['message']}), 500
        return jsonify({'ok': True, 'count': result['count']})

    @app.route('/health', methods=['GET'])
    def health():
        table = service.table
        return jsonify({
            'ok': True,
            'version': __version__,
            'documents': len(table),
            'generation': table.generation,
            'loaded_at': table.loaded_at.isoformat() if table.loaded_at else None,
        })

    @app.errorhandler(HTTPException)
    def http_error(e):
        return jsonify({'ok': False, 'message': e.description}), e.code

    @app.errorhandler(Exception)
    def unhandled_error(e):
        logger.error("Unhandled error", error=str(e), error_type=type(e).__name__)
        return jsonify({'ok': False, 'message': str(e) or 'Server error'}), 500

    return app
