"""HTTP surface: Flask app exposing the pull endpoint and the push stream."""

from flask import Flask, Response, jsonify, render_template
from loguru import logger
from werkzeug.exceptions import HTTPException
from werkzeug.serving import make_server

from hostpulse.broadcaster import StreamBroadcaster
from hostpulse.builder import SnapshotBuilder
from hostpulse.sampler import Sampler

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "Access-Control-Allow-Origin": "*",
}


def create_app(
    builder: SnapshotBuilder | None = None,
    broadcaster: StreamBroadcaster | None = None,
) -> Flask:
    """Create the Flask application."""
    builder = builder or SnapshotBuilder(Sampler())
    broadcaster = broadcaster or StreamBroadcaster(builder.build)

    app = Flask(__name__)
    app.json.sort_keys = False
    app.json.compact = False
    app.extensions["hostpulse.builder"] = builder
    app.extensions["hostpulse.broadcaster"] = broadcaster

    @app.route("/")
    @app.route("/index.html")
    def index():
        return render_template("index.html")

    @app.route("/api/metrics")
    def metrics():
        return jsonify(builder.build().to_dict())

    @app.route("/stream")
    def stream():
        subscriber = broadcaster.subscribe()
        response = Response(
            broadcaster.stream(subscriber),
            mimetype="text/event-stream",
            headers=STREAM_HEADERS,
        )
        response.call_on_close(lambda: broadcaster.unsubscribe(subscriber.id))
        return response

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        # Keeps headers such as Allow on 405.
        response = error.get_response()
        response.set_data(f"{error.code} {error.name}")
        response.mimetype = "text/plain"
        return response

    return app


def serve(host: str, port: int, interval: float = 2.0, disk_path: str = "/") -> None:
    """Run the HTTP server until interrupted, then release all subscribers."""
    builder = SnapshotBuilder(Sampler(), disk_path=disk_path)
    broadcaster = StreamBroadcaster(builder.build, interval=interval)
    app = create_app(builder, broadcaster)
    server = make_server(host, port, app, threaded=True)

    logger.info("hostpulse server health monitor")
    logger.info(f"Dashboard  -> http://localhost:{port}")
    logger.info(f"Metrics    -> http://localhost:{port}/api/metrics")
    logger.info(f"SSE stream -> http://localhost:{port}/stream")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        broadcaster.close()
        server.server_close()
