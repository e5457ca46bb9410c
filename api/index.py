"""Serverless ASGI entry point for the Garden Buddy API."""
import json
import sys
import traceback

startup_error = None

try:
    from app.main import app
except Exception as e:
    startup_error = {
        "service": "Garden Buddy API",
        "status": "startup_failed",
        "error": str(e),
        "type": type(e).__name__,
        "traceback": traceback.format_exc(),
        "python_version": sys.version,
    }

    # Report the import failure on every request instead of a blank 500
    async def app(scope, receive, send):
        if scope["type"] != "http":
            return
        body = json.dumps(startup_error).encode("utf-8")
        await send({
            "type": "http.response.start",
            "status": 500,
            "headers": [[b"content-type", b"application/json"]],
        })
        await send({"type": "http.response.body", "body": body})
