import io
import logging
import secrets
import sys
import threading
from typing import List, Optional

from flask import Blueprint, Flask, abort, current_app, jsonify, request, send_file
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.errors import RateLimitExceeded
from flask_limiter.util import get_remote_address
from flask_caching import Cache

# Import WSGIMiddleware for Flask (WSGI) to Uvicorn (ASGI) compatibility
from uvicorn.middleware.wsgi import WSGIMiddleware

import config
from intake import IntakeForm, UnknownField, ValidationFailure, resolve_field
from oracle import GeminiAnalyzer
from pdf_report import create_report_pdf
from report_renderer import project_state, render_report
from session_flow import (
    Effect,
    InvalidTransition,
    Restart,
    SessionFlow,
    SessionPhase,
    SessionState,
    Start,
    Submit,
    Transition,
    UpdateField,
    transition,
)

# Configure logging
_handlers = [logging.StreamHandler(sys.stdout)]
if config.LOG_FILE:
    _handlers.append(logging.FileHandler(config.LOG_FILE))
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=_handlers
)
logger = logging.getLogger(__name__)

cache = Cache()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["2000 per day", "300 per hour"],
)
api = Blueprint("api", __name__)


class SessionNotFound(LookupError):
    pass


# --- Session Store ---
class SessionStore:
    """
    Keeps session states in the in-process cache, keyed by session id.

    The load -> transition -> save step runs under a lock; oracle calls happen
    outside of it, so a session waiting on the oracle is visible as
    ``submitting`` to every other request.
    """

    def __init__(self, backend):
        self.backend = backend
        self._lock = threading.Lock()

    @staticmethod
    def _key(session_id: str) -> str:
        return f"session:{session_id}"

    def create(self) -> str:
        session_id = secrets.token_urlsafe(16)
        self.backend.set(self._key(session_id), SessionState())
        logger.info(f"Session {session_id} created.")
        return session_id

    def load(self, session_id: str) -> SessionState:
        state = self.backend.get(self._key(session_id))
        if state is None:
            raise SessionNotFound(session_id)
        return state

    def apply(self, session_id: str, event) -> Transition:
        with self._lock:
            outcome = transition(self.load(session_id), event)
            self.backend.set(self._key(session_id), outcome.state)
        return outcome

    def delete(self, session_id: str) -> bool:
        with self._lock:
            return bool(self.backend.delete(self._key(session_id)))


class StoredSessionCell:
    """State cell for ``SessionFlow`` backed by the session store."""

    def __init__(self, store: SessionStore, session_id: str):
        self.store = store
        self.session_id = session_id

    @property
    def state(self) -> SessionState:
        return self.store.load(self.session_id)

    def apply(self, event) -> Transition:
        return self.store.apply(self.session_id, event)


# --- Helpers ---
def _store() -> SessionStore:
    return current_app.extensions["session_store"]


def _flow(session_id: str) -> SessionFlow:
    store = _store()
    store.load(session_id)
    return SessionFlow(current_app.extensions["analyzer"], StoredSessionCell(store, session_id))


def _field_updates(data) -> List[UpdateField]:
    """Validates a ``{field: value}`` body before any of it is applied."""
    if not isinstance(data, dict):
        abort(400, description="Expected a JSON object of intake fields.")
    updates = []
    for field, value in data.items():
        resolve_field(field)
        if not isinstance(value, str):
            abort(400, description=f"Field '{field}' must be a string.")
        updates.append(UpdateField(field, value))
    return updates


def _session_response(session_id: str, state: SessionState, effects: Optional[List[Effect]] = None, status: int = 200):
    return jsonify({
        "session_id": session_id,
        "phase": state.phase.value,
        "view": project_state(state),
        "effects": [effect.to_dict() for effect in effects or []],
    }), status


# --- Flask Routes ---
@api.route('/')
def home():
    """Basic home route for health check."""
    return jsonify({"status": "ok", "service": "mind-color-map"})


@api.route('/sessions', methods=['POST'])
def create_session():
    session_id = _store().create()
    return _session_response(session_id, SessionState(), status=201)


@api.route('/sessions/<session_id>', methods=['GET'])
@limiter.exempt  # polled while a submission is in flight
def get_session(session_id):
    return _session_response(session_id, _store().load(session_id))


@api.route('/sessions/<session_id>', methods=['DELETE'])
def delete_session(session_id):
    if not _store().delete(session_id):
        raise SessionNotFound(session_id)
    logger.info(f"Session {session_id} discarded.")
    return "", 204


@api.route('/sessions/<session_id>/start', methods=['POST'])
def start_session(session_id):
    flow = _flow(session_id)
    effects = flow.apply(Start())
    return _session_response(session_id, flow.state, effects)


@api.route('/sessions/<session_id>/draft', methods=['PATCH'])
def update_draft(session_id):
    updates = _field_updates(request.get_json(silent=True))
    flow = _flow(session_id)
    for update in updates:
        flow.apply(update)
    return _session_response(session_id, flow.state)


@api.route('/sessions/<session_id>/submit', methods=['POST'])
@limiter.limit("10 per minute")
async def submit_session(session_id):
    """
    Finalizes the draft and waits for the oracle.

    Responds with the report on success, or with the intake view and a
    notify effect when the oracle fails.
    """
    updates = _field_updates(request.get_json(silent=True) or {})
    flow = _flow(session_id)
    for update in updates:
        flow.apply(update)

    effects = await flow.dispatch(Submit())
    state = flow.last_state

    # Staying in intake with no effects means the submitted draft was rejected.
    if state.phase is SessionPhase.INTAKE and not effects:
        try:
            IntakeForm(state.draft).try_submit()
        except ValidationFailure as e:
            return jsonify({
                "error": str(e),
                "missing_fields": e.missing_fields,
                "invalid_fields": e.invalid_fields,
                "session_id": session_id,
                "phase": state.phase.value,
                "view": project_state(state),
            }), 422

    return _session_response(session_id, state, effects)


@api.route('/sessions/<session_id>/restart', methods=['POST'])
def restart_session(session_id):
    flow = _flow(session_id)
    effects = flow.apply(Restart())
    return _session_response(session_id, flow.state, effects)


@api.route('/sessions/<session_id>/report.pdf', methods=['GET'])
@limiter.limit("5 per minute")
def download_report(session_id):
    state = _store().load(session_id)
    if state.phase is not SessionPhase.REPORT:
        abort(409, description="The report is not ready for this session.")

    pdf_bytes = create_report_pdf(render_report(state.submitted, state.result))
    filename = f"Mind_Color_Map_{state.submitted.full_name.replace(' ', '_')}.pdf"
    return send_file(
        io.BytesIO(pdf_bytes),
        mimetype='application/pdf',
        as_attachment=True,
        download_name=filename
    )


# Error handlers
@api.app_errorhandler(SessionNotFound)
def session_not_found(error):
    logger.warning(f"Unknown or expired session: {error}")
    return jsonify({"error": "Not Found: The session does not exist or has expired."}), 404


@api.app_errorhandler(InvalidTransition)
def invalid_transition(error):
    logger.warning(f"Rejected event: {error}")
    return jsonify({"error": f"Conflict: {error}", "phase": error.phase.value}), 409


@api.app_errorhandler(UnknownField)
def unknown_field(error):
    logger.error(f"Bad Request: {error}")
    return jsonify({"error": f"Bad Request: {error}"}), 400


@api.app_errorhandler(400)
def bad_request(error):
    logger.error(f"Bad Request: {error}")
    return jsonify({"error": "Bad Request: " + str(error.description)}), 400


@api.app_errorhandler(404)
def not_found(error):
    logger.error(f"Not Found: {error}")
    return jsonify({"error": "Not Found: The requested URL was not found on the server."}), 404


@api.app_errorhandler(405)
def method_not_allowed(error):
    logger.error(f"Method Not Allowed: {error}")
    return jsonify({"error": "Method Not Allowed: " + str(error.description)}), 405


@api.app_errorhandler(409)
def conflict(error):
    logger.warning(f"Conflict: {error}")
    return jsonify({"error": "Conflict: " + str(error.description)}), 409


@api.app_errorhandler(RateLimitExceeded)
def rate_limited(error):
    logger.warning(f"Rate limit exceeded: {error.description}")
    return jsonify({"error": "Too Many Requests: " + str(error.description)}), 429


@api.app_errorhandler(500)
def internal_server_error(error):
    logger.error(f"Internal Server Error: {error}", exc_info=True)
    return jsonify({"error": "Internal Server Error: The server encountered an internal error and was unable to complete your request. Please try again later."}), 500


def create_app(analyzer=None, config_overrides: Optional[dict] = None) -> Flask:
    app = Flask(__name__)
    app.config.update(config.flask_config())
    if config_overrides:
        app.config.update(config_overrides)
    app.json.sort_keys = False

    cache.init_app(app)
    limiter.init_app(app)
    CORS(app, resources={r"/*": {"origins": config.CORS_ORIGINS}})

    with app.app_context():
        app.extensions["session_store"] = SessionStore(cache.cache)
    app.extensions["analyzer"] = analyzer if analyzer is not None else GeminiAnalyzer()

    app.register_blueprint(api)
    logger.info("Flask app instance created.")
    return app


app = create_app()

# This is the WSGI application that Uvicorn will serve.
# uvicorn app:asgi_app --host 0.0.0.0 --port 8000
asgi_app = WSGIMiddleware(app)

if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=config.PORT)
