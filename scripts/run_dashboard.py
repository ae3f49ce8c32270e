"""Local launcher for the Ripple policy simulator API.

Run :

    python scripts/run_dashboard.py [--host 127.0.0.1] [--port 8080] [--no-browser]

Serves ``ripple_model.api.api_app`` with an empty session. Upload a population
to ``/api/population/upload`` before calling ``/api/simulate``. Unless
``--no-browser`` is given, the API home page (which lists every endpoint) is
opened once the server is up.
"""

from __future__ import annotations

import argparse
import logging
import threading
import time
import webbrowser
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from ripple_model import __version__  # noqa: E402
from ripple_model.api.api_app import app  # noqa: E402

logger = logging.getLogger("ripple.launcher")


def _api_routes() -> list:
    return sorted(rule.rule for rule in app.url_map.iter_rules() if rule.rule.startswith("/api/"))


def _open_home_page(url: str) -> None:
    time.sleep(1.5)  # server start-up
    try:
        webbrowser.open_new_tab(url)
    except webbrowser.Error as exc:  # pragma: no cover
        logger.warning("⚠️ Could not open a browser (%s); visit %s", exc, url)


def main() -> None:
    parser = argparse.ArgumentParser(description="Serve the Ripple policy simulator API locally")
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind")
    parser.add_argument("--port", type=int, default=8080, help="TCP port")
    parser.add_argument("--no-browser", action="store_true", help="Do not open the API home page")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    home = f"http://localhost:{args.port}/"

    logger.info("🚀 Ripple policy simulator API %s on %s", __version__, home)
    for route in _api_routes():
        logger.info("   %s", route)
    logger.info("📁 No population loaded yet: POST a .xlsx/.csv file to /api/population/upload")

    if not args.no_browser:
        threading.Thread(target=_open_home_page, args=(home,), daemon=True).start()

    app.run(host=args.host, port=args.port, debug=False, use_reloader=False)


if __name__ == "__main__":  # pragma: no cover
    main()
