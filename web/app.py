"""Flask JSON API for the smart plug."""

import logging
import os
import sys

from dotenv import load_dotenv
from flask import Flask, request, jsonify

# Add project root to path so we can import config
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
import config
from devices.smart_plug import ErrorKind, PlugError, SmartPlug, plug_from_env

load_dotenv()

log = logging.getLogger(__name__)

try:
    plug = plug_from_env()
except PlugError as e:
    # serve anyway; every plug request reports invalid_host until .env is fixed
    log.error("Plug configuration: %s", e)
    plug = SmartPlug()

app = Flask(__name__)
app.secret_key = os.getenv("FLASK_SECRET_KEY", "dev-key-change-in-production")

# Configuration problems are ours; everything else is the plug or the network.
_CONFIG_ERRORS = {ErrorKind.INVALID_HOST, ErrorKind.INVALID_PORT, ErrorKind.INVALID_TIMEOUT}


@app.errorhandler(PlugError)
def handle_plug_error(e):
    status = 500 if e.kind in _CONFIG_ERRORS else 502
    log.warning("Plug %s: %s (%s)", plug.name, e, e.kind.value)
    return jsonify({"error": str(e), "kind": e.kind.value}), status


# ---------------------------------------------------------------------------
# API: plug state
# ---------------------------------------------------------------------------

@app.route("/api/plug")
def api_plug():
    return jsonify({
        "host": plug.get_host(),
        "port": plug.get_port(),
        "on": plug.is_on(),
        "alias": plug.retrieve_alias(),
    })


@app.route("/api/plug", methods=["POST"])
def api_set_plug():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not isinstance(data.get("on"), bool):
        return jsonify({"error": "on (true or false) required"}), 400

    on = data["on"]
    if on:
        plug.turn_on()
    else:
        plug.turn_off()
    return jsonify({"ok": True, "on": on})


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format=config.LOG_FORMAT)
    app.run(host=config.WEB_HOST, port=config.WEB_PORT, debug=True)
