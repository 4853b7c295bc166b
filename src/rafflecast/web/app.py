"""
RaffleCast Web Application

Flask-based operator API with WebSocket support. Audience displays load
/display and follow the draw over the Sync Channel on the display
namespace.
"""

import logging
from flask import Flask, render_template, jsonify, request
from flask_socketio import SocketIO, join_room
from pathlib import Path

from ..core.errors import (
    DrawError,
    LicenseBlocked,
    PrizeError,
    RaffleError,
    RosterImportError,
    StorageError,
)
from ..core.show import ShowController
from ..sync.socketio_channel import DISPLAY_NAMESPACE

logger = logging.getLogger(__name__)

socketio = SocketIO(cors_allowed_origins="*")

# Participants listed per page by default
ROSTER_PAGE_SIZE = 100


def _error_status(error: RaffleError) -> int:
    if isinstance(error, (RosterImportError, PrizeError)):
        return 400
    if isinstance(error, LicenseBlocked):
        return 403
    if isinstance(error, DrawError):
        return 409
    if isinstance(error, StorageError):
        return 503
    return 500


def create_app(controller: ShowController) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        controller: Show controller owning state, storage and the draw machine

    Returns:
        Configured Flask application
    """
    base_dir = Path(__file__).parent
    template_dir = base_dir / "templates"

    app = Flask(__name__, template_folder=str(template_dir))
    app.config["SECRET_KEY"] = "rafflecast-secret-key"

    machine = controller.machine
    state = controller.state

    # Initialize SocketIO
    socketio.init_app(app)

    # Register state change listener (operator surfaces)
    def on_state_change():
        socketio.emit("state_update", state.to_dict())

    state.add_listener(on_state_change)

    @app.errorhandler(RaffleError)
    def handle_raffle_error(error):
        status = _error_status(error)
        if status >= 500:
            logger.error(f"{type(error).__name__}: {error}")
        else:
            logger.warning(f"{type(error).__name__}: {error}")
        return jsonify({"error": str(error), "type": type(error).__name__}), status

    # ============ Display ============

    @app.route("/display")
    def display():
        """
        Audience display page.
        Open this URL on the projector / second screen or as an OBS Browser Source.
        """
        return render_template(
            "display.html",
            channel=machine.channel.name,
            namespace=DISPLAY_NAMESPACE
        )

    @socketio.on("connect", namespace=DISPLAY_NAMESPACE)
    def display_connect(auth=None):
        join_room(machine.channel.name)
        logger.info(f"Display connected to {machine.channel.name}")

    @socketio.on("request_sync", namespace=DISPLAY_NAMESPACE)
    def display_request_sync(data=None):
        machine.publish_prize()

    # ============ State ============

    @app.route("/api/state", methods=["GET"])
    def get_state():
        """Get current show state."""
        data = state.to_dict()
        data["settings"] = controller.settings.to_dict()
        return jsonify(data)

    @app.route("/api/sync", methods=["POST"])
    def resync_displays():
        """Re-publish the active prize for displays that joined late."""
        machine.publish_prize()
        return jsonify({"status": "ok", "prize": state.active_prize})

    # ============ Roster ============

    @app.route("/api/roster", methods=["GET"])
    def get_roster():
        limit = request.args.get("limit", ROSTER_PAGE_SIZE, type=int)
        roster = state.roster
        return jsonify({
            "total": len(roster),
            "participants": roster.to_list()[:limit]
        })

    @app.route("/api/roster/import", methods=["POST"])
    def import_roster():
        """
        Replace the roster with an uploaded export (.csv, .txt or .zip).
        Accepts a multipart 'file' field or a raw body with ?filename=.
        """
        upload = request.files.get("file")
        if upload is not None:
            payload = upload.read()
            filename = upload.filename
        else:
            payload = request.get_data()
            filename = request.args.get("filename")

        if not payload:
            return jsonify({"error": "No file provided"}), 400

        stats = controller.import_roster(payload, filename)
        return jsonify({
            "status": "ok",
            "stats": stats.to_dict(),
            "participants": len(state.roster)
        })

    @app.route("/api/roster/<int:participant_id>", methods=["DELETE"])
    def remove_participant(participant_id):
        record = controller.remove_participant(participant_id)
        if record is None:
            return jsonify({"error": "Participant not found"}), 404
        return jsonify({"status": "ok", "removed": record.to_dict()})

    @app.route("/api/clear", methods=["POST"])
    def clear_all():
        """Delete all participants and all history."""
        controller.clear_all()
        return jsonify({"status": "ok"})

    # ============ Draw ============

    @app.route("/api/draw/start", methods=["POST"])
    def start_draw():
        session = machine.start_draw()
        return jsonify({"status": "ok", "session": session.to_dict()})

    @app.route("/api/draw/reset", methods=["POST"])
    def reset_draw():
        machine.reset()
        return jsonify({"status": "ok"})

    @app.route("/api/draw/idle", methods=["POST"])
    def toggle_idle():
        """Toggle the idle name rotation (screensaver)."""
        phase = machine.toggle_idle_cycling()
        return jsonify({"status": "ok", "phase": phase.value})

    @app.route("/api/settings", methods=["GET"])
    def get_settings():
        return jsonify(controller.settings.to_dict())

    @app.route("/api/settings", methods=["POST"])
    def update_settings():
        data = request.get_json() or {}
        try:
            settings = controller.update_settings(
                duration=data.get("duration"),
                speed=data.get("speed"),
                muted=data.get("muted")
            )
        except (TypeError, ValueError) as e:
            return jsonify({"error": f"Invalid settings: {e}"}), 400
        return jsonify({"status": "ok", "settings": settings})

    # ============ Prizes ============

    @app.route("/api/prizes", methods=["GET"])
    def get_prizes():
        return jsonify(state.prizes.to_dict())

    @app.route("/api/prizes", methods=["POST"])
    def add_prize():
        data = request.get_json() or {}
        label = controller.add_prize(data.get("label", ""))
        return jsonify({"status": "ok", "label": label, "prizes": state.prizes.to_dict()})

    @app.route("/api/prizes", methods=["DELETE"])
    def remove_prize():
        data = request.get_json() or {}
        active = controller.remove_prize(data.get("label", ""))
        return jsonify({"status": "ok", "active": active, "prizes": state.prizes.to_dict()})

    @app.route("/api/prizes/active", methods=["POST"])
    def select_prize():
        data = request.get_json() or {}
        label = controller.select_prize(data.get("label", ""))
        return jsonify({"status": "ok", "active": label})

    # ============ History ============

    @app.route("/api/history", methods=["GET"])
    def get_history():
        return jsonify({"winners": [w.to_dict() for w in state.history]})

    @app.route("/api/history/<int:history_id>", methods=["DELETE"])
    def delete_history(history_id):
        if not controller.delete_history(history_id):
            return jsonify({"error": "Winner not found"}), 404
        return jsonify({"status": "ok"})

    return app
