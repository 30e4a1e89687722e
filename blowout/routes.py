"""
============================================================
 Blowout — Routes & Engine Controller
 Flask routes, MJPEG party stream, keepsake download and
 SocketIO state broadcasting.
============================================================
"""

import threading
import time

import cv2
from flask import Response, abort, jsonify, render_template, request

import config
from blowout.engine import Engine

# ── Module-level reference (populated by register_routes) ──
_engine: Engine | None = None


# ═════════════════════════════════════════════════════════════
#  PUBLIC API — called from __init__.py and main.py
# ═════════════════════════════════════════════════════════════

def register_routes(app, socketio, engine=None, load_model=True):
    """Register all Flask routes and bring the engine up."""
    global _engine
    if engine is None:
        engine = Engine(socketio=socketio)
    _engine = engine
    if engine.socketio is None:
        engine.socketio = socketio
    app.extensions["blowout_engine"] = engine

    # ── Party page ──
    @app.route("/")
    def party_page():
        return render_template(
            "party.html",
            candle_count=config.CANDLE_COUNT,
            manual_delay_ms=engine.manual_override_delay_ms,
        )

    # ── MJPEG party stream ──
    @app.route("/video_feed")
    def video_feed():
        return Response(
            _mjpeg_generator(engine),
            mimetype="multipart/x-mixed-replace; boundary=frame",
        )

    @app.route("/api/state")
    def api_state():
        return jsonify(engine.state())

    @app.route("/api/start", methods=["POST"])
    def api_start():
        ok, message = engine.start_party()
        status = 200 if ok else 503
        return jsonify({"ok": ok, "message": message, "state": engine.state()}), status

    @app.route("/api/blow", methods=["POST"])
    def api_blow():
        fired = engine.manual_blow()
        return jsonify({"ok": fired, "state": engine.state()}), 200 if fired else 409

    @app.route("/api/restart", methods=["POST"])
    def api_restart():
        engine.restart()
        return jsonify({"ok": True, "state": engine.state()})

    @app.route("/api/screenshot")
    def api_screenshot():
        artifact = engine.screenshot()
        if artifact is None:
            abort(404)
        resp = Response(artifact.png, mimetype="image/png")
        if request.args.get("download"):
            resp.headers["Content-Disposition"] = f'attachment; filename="{artifact.filename}"'
        resp.headers["Cache-Control"] = "no-store"
        return resp

    # ── SocketIO connect event ──
    @socketio.on("connect")
    def on_connect():
        socketio.emit("loading_status", {
            "message": engine.loading_message,
            "model_ready": engine.model_ready,
        })
        socketio.emit("party_state", engine.party.snapshot())

    if load_model:
        threading.Thread(target=engine.load_model, daemon=True, name="ModelLoader").start()

    return engine


def stop_engine():
    """Release the camera, microphone, song and model."""
    global _engine
    if _engine is not None:
        _engine.shutdown()
        _engine = None


# ═════════════════════════════════════════════════════════════
#  MJPEG GENERATOR
# ═════════════════════════════════════════════════════════════

def _mjpeg_generator(engine: Engine):
    """Yield composited JPEG frames at a steady pace."""
    target_interval = 1.0 / config.MJPEG_TARGET_FPS
    last_yield_time = 0.0

    while True:
        now = time.time()
        wait = target_interval - (now - last_yield_time)
        if wait > 0.001:
            time.sleep(wait)
        last_yield_time = time.time()

        frame = engine.render_frame()
        ok, jpeg = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, config.CAMERA_JPEG_QUALITY])
        if not ok:
            continue

        yield (
            b"--frame\r\n"
            b"Content-Type: image/jpeg\r\n\r\n"
            + jpeg.tobytes()
            + b"\r\n"
        )
