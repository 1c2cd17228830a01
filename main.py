"""
main.py — online exam app entry point
"""

import os
import socket
import sys
import time
import threading
import logging
import traceback

# ── Package path (must come first) ───────────────────────────────────────────
# Make config / api / online_exam importable when launched from anywhere.
_BASE_DIR = os.path.dirname(os.path.abspath(__file__))
if _BASE_DIR not in sys.path:
    sys.path.insert(0, _BASE_DIR)

from config import BASE_DIR, LOG_FILE, DEFAULT_HOST, DEFAULT_PORT

# ── Logging ──────────────────────────────────────────────────────────────────
try:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=[
            logging.FileHandler(LOG_FILE, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )
except PermissionError:
    # Log file is locked: console only
    logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)

# ── Server helpers ───────────────────────────────────────────────────────────

def _port_in_use(port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        return s.connect_ex((DEFAULT_HOST, port)) == 0

def _wait_for_server(port: int, timeout: float = 15.0) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        try:
            with socket.create_connection((DEFAULT_HOST, port), timeout=0.5):
                return True
        except OSError:
            time.sleep(0.1)
    return False

def _start_server(port: int) -> None:
    try:
        import uvicorn
        from api.app import create_app
        logger.info(f"Starting uvicorn on port {port}")
        app = create_app()
        uvicorn.run(app, host=DEFAULT_HOST, port=port, log_level="warning")
    except Exception:
        logger.error(f"Server error:\n{traceback.format_exc()}")

# ── Main ─────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    logger.info("=== Online Exam Application Started ===")
    os.chdir(BASE_DIR)

    # The question bank URL points at this server, so the port is fixed.
    port = DEFAULT_PORT
    if _port_in_use(port):
        logger.error(f"Port {port} is already in use. Set PORT to another value.")
        sys.exit(1)

    server_thread = threading.Thread(target=_start_server, args=(port,), daemon=True)
    server_thread.start()

    if _wait_for_server(port):
        logger.info(f"Server ready on http://{DEFAULT_HOST}:{port}")

        try:
            while True:
                time.sleep(10)
        except KeyboardInterrupt:
            logger.info("Stopped by user.")
    else:
        logger.error("Timed out waiting for the server to start.")
        sys.exit(1)
