"""Flask stats dashboard for the log server."""

from flask import Flask, jsonify

from logserver.coordinator import ServerState
from logserver.server import LogServer

_HEALTH_STATUS = {
    ServerState.RUNNING: "ok",
    ServerState.DRAINING: "draining",
    ServerState.STOPPED: "stopped",
}


def create_dashboard_app(server: LogServer) -> Flask:
    app = Flask(__name__)

    @app.route("/health")
    def health():
        return jsonify(status=_HEALTH_STATUS[server.coordinator.state])

    @app.route("/stats")
    def stats():
        snap = server.metrics.snapshot()
        snap["state"] = server.coordinator.state.value
        snap["shutdown_reason"] = server.coordinator.reason
        snap["outstanding_handlers"] = server.coordinator.outstanding
        snap["log_size_bytes"] = server.sink.size
        snap["max_log_bytes"] = server.policy.limit_bytes
        snap["recent_errors"] = server.reporter.recent_errors(10)
        return jsonify(snap)

    return app


def run_dashboard(app: Flask, host: str, port: int):
    """Run the Flask app (intended for use in a daemon thread)."""
    app.run(host=host, port=port, use_reloader=False)
