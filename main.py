"""
============================================================
 Blowout — Main Entry Point
 Run: python main.py
============================================================
"""

import sys
import signal
import types

from blowout import create_app, socketio
import config


def signal_handler(sig: int, frame: types.FrameType | None) -> None:
    """Handle Ctrl+C gracefully."""
    print("\n\n[BLOWOUT] Blowing out the lights...")
    from blowout.routes import stop_engine
    stop_engine()
    sys.exit(0)


def main():
    print(r"""
    ╔═══════════════════════════════════════════════════════╗
    ║                     )  )  )  )  )  )                  ║
    ║                    (  (  (  (  (  (                   ║
    ║                    |  |  |  |  |  |                   ║
    ║                 ╔══════════════════════╗              ║
    ║                 ║   HAPPY  BIRTHDAY!   ║              ║
    ║                 ╚══════════════════════╝              ║
    ║   Blowout — make a wish, then blow the candles out    ║
    ╚═══════════════════════════════════════════════════════╝
    """)

    print(f"  🎂 Party page:  http://localhost:{config.FLASK_PORT}")
    print(f"  📷 Camera:      Source {config.CAMERA_INDEX}")
    print(f"  📸 Capture:     {config.CAPTURE_MODE}")
    print(f"  ✋ Manual blow: after {config.MANUAL_OVERRIDE_DELAY_MS / 1000:.0f}s")
    print()

    if config.CAPTURE_MODE not in config.CAPTURE_MODES:
        print(f"  ✗ CAPTURE_MODE must be one of {config.CAPTURE_MODES}")
        sys.exit(2)

    app = create_app()

    # Register signal handler AFTER app is created to avoid interference during import/init
    signal.signal(signal.SIGINT, signal_handler)

    socketio.run(
        app,
        host=config.FLASK_HOST,
        port=config.FLASK_PORT,
        debug=config.FLASK_DEBUG,
        use_reloader=False,
        log_output=False,
        allow_unsafe_werkzeug=True,
    )


if __name__ == "__main__":
    main()
