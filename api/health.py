"""Health check endpoint."""

from http.server import BaseHTTPRequestHandler
import json

from rentsync.services.import_runner import get_import_runner
from rentsync.utils.config import TwilioConfig
from rentsync.utils.logging_config import SERVICE_NAME


def health_payload() -> dict:
    """Liveness plus the switches an operator checks before an import."""
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "smsConfigured": TwilioConfig.is_configured(),
        "importRunning": get_import_runner().is_running,
    }


class handler(BaseHTTPRequestHandler):
    """Health check handler for Vercel serverless function."""

    def do_GET(self):
        self.send_response(200)
        self.send_header('Content-Type', 'application/json')
        self.end_headers()
        self.wfile.write(json.dumps(health_payload()).encode('utf-8'))

    def do_POST(self):
        """Same as GET for health checks."""
        self.do_GET()
