"""
Printer Host - Main Entry Point

Run with: uvicorn printer_host.main:app --port 8000
     or:  printer-host --port 8000
"""

import argparse

import uvicorn

from printer_host.api.app import create_app
from printer_host.api.dependencies import get_app_state
from printer_host.core.logger import LogLevel, mute


app = create_app()


# === Startup/Shutdown Events ===

@app.on_event("startup")
async def startup_event():
    """Initialize on startup"""
    state = get_app_state()
    envelope = state.envelope
    settings = state.settings

    print("=" * 50)
    print("  Printer Host v1.0")
    print("=" * 50)
    print()
    print(f"Envelope: X≤{envelope.x} Y≤{envelope.y} Z≤{envelope.z} mm")
    print(f"Default speed: {settings.default_speed} mm/s")
    print(f"Ack timeout: {settings.ack_timeout or 'none'}")
    print()
    print("Docs at /docs")
    print()


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    state = get_app_state()
    if state.printer is not None:
        print("[SHUTDOWN] Disconnecting from printer...")
        await state.disconnect()


# === Health Check ===

@app.get("/health")
def health_check():
    """Health check endpoint"""
    state = get_app_state()
    return {
        "status": "ok",
        "version": "1.0.0",
        "connected": state.is_connected,
    }


def run() -> None:
    parser = argparse.ArgumentParser(description="Printer host HTTP API")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true")
    parser.add_argument("--quiet-serial", action="store_true",
                        help="Do not log raw serial traffic")
    args = parser.parse_args()

    if args.quiet_serial:
        mute(LogLevel.SERIAL)

    uvicorn.run(
        "printer_host.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


# === Run directly ===

if __name__ == "__main__":
    run()
