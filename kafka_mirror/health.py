"""
Health and metrics HTTP endpoints.

/health reports the supervisor state and answers 503 unless the supervisor
is mirroring, /metrics exposes Prometheus metrics.
"""

import json
from http.server import BaseHTTPRequestHandler, HTTPServer
from threading import Thread

from loguru import logger
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest


def make_handler(replicator):
    """Build a request handler class bound to a replicator."""

    class HealthHandler(BaseHTTPRequestHandler):
        """HTTP handler for health checks."""

        def do_GET(self):
            if self.path == '/health':
                healthy = replicator.is_healthy()
                body = {
                    'status': 'healthy' if healthy else 'unhealthy',
                    'service': 'kafka-mirror',
                    'state': replicator.state.value,
                    'consecutive_failures': replicator.consecutive_failures,
                    'replicated_topics': sorted(replicator.replicated_topics)
                }
                self.send_response(200 if healthy else 503)
                self.send_header('Content-Type', 'application/json')
                self.end_headers()
                self.wfile.write(json.dumps(body).encode())
            elif self.path == '/metrics':
                self.send_response(200)
                self.send_header('Content-Type', CONTENT_TYPE_LATEST)
                self.end_headers()
                self.wfile.write(generate_latest())
            else:
                self.send_response(404)
                self.end_headers()

        def log_message(self, format, *args):
            """Suppress default logging."""
            pass

    return HealthHandler


def start_health_server(replicator, port: int) -> HTTPServer:
    """Serve health and metrics on a daemon thread."""
    server = HTTPServer(('0.0.0.0', port), make_handler(replicator))
    thread = Thread(target=server.serve_forever, daemon=True)
    thread.start()
    logger.info(f"Health server started on port {port}")
    return server
