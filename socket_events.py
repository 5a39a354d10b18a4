from threading import Lock
from flask_socketio import emit, join_room, leave_room
from flask import current_app, request
from flask_jwt_extended import decode_token
from jwt.exceptions import PyJWTError
from flask_jwt_extended.exceptions import JWTExtendedException
from extensions import socketio
from resources.store import current_store_status, load_settings
from utils.auth import ADMIN, STAFF

KITCHEN_ROOM = "kitchen"

# Store active back-office connections
active_staff = {}

broadcaster = None
broadcaster_lock = Lock()


def _status_payload():
    settings = load_settings()
    return {"store_name": settings.store_name, "status": current_store_status(settings).to_dict()}


@socketio.on("connect")
def handle_connect(auth):
    """Storefront clients connect anonymously; staff authenticate with their access token."""
    _ensure_broadcaster()

    token = auth.get("token") if auth else None
    if not token:
        return True

    try:
        decoded_token = decode_token(token)
    except (PyJWTError, JWTExtendedException) as exc:
        current_app.logger.info("Rejected socket connection: %s", exc)
        return False

    role = decoded_token.get("role")
    if role not in (ADMIN, STAFF):
        return False

    active_staff[request.sid] = {"identity": decoded_token["sub"], "role": role}
    emit("connected", {"message": "Connected successfully", "role": role})
    return True


@socketio.on("disconnect")
def handle_disconnect(*args):
    staff = active_staff.pop(request.sid, None)
    if staff:
        current_app.logger.debug("Staff %s disconnected", staff["identity"])


@socketio.on("join_kitchen")
def handle_join_kitchen(data=None):
    """Subscribe a staff screen to new orders and status changes"""
    if request.sid not in active_staff:
        emit("error", {"message": "Not authenticated"})
        return

    join_room(KITCHEN_ROOM)
    emit("joined_kitchen", {"room": KITCHEN_ROOM})


@socketio.on("leave_kitchen")
def handle_leave_kitchen(data=None):
    leave_room(KITCHEN_ROOM)
    emit("left_kitchen", {"room": KITCHEN_ROOM})


@socketio.on("store_status")
def handle_store_status(data=None):
    """Answer a client asking for the current open/closed state"""
    emit("store_status", _status_payload())


def _publish_store_status(app, last_state):
    """Emit the store status if it moved away from ``last_state``.

    Returns the state now known. A failed check keeps the previous state so
    the next tick retries.
    """
    with app.app_context():
        try:
            payload = _status_payload()
        except Exception:
            app.logger.exception("Store status check failed")
            return last_state

        state = payload["status"]["state"]
        if state != last_state:
            app.logger.info("Store status is now %s", state)
            socketio.emit("store_status", payload)
        return state


def _broadcast_store_status(app):
    """Re-evaluate the store status on a fixed interval and push changes."""
    interval = app.config["STORE_STATUS_POLL_SECONDS"]
    last_state = None
    while True:
        last_state = _publish_store_status(app, last_state)
        socketio.sleep(interval)


def _ensure_broadcaster():
    """Start the status loop once, on the first client connection."""
    global broadcaster
    app = current_app._get_current_object()
    if not app.config["STORE_STATUS_BROADCAST"]:
        return
    with broadcaster_lock:
        if broadcaster is None:
            broadcaster = socketio.start_background_task(_broadcast_store_status, app)
