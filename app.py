import math
import logging
from datetime import datetime

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS

import config
from reports.pdf_generator import generate_risk_report
from stability_factors.geo_data_service import GeoDataService
from stability_factors.slope_stability import SlopeStabilityEngine, apply_manual_rainfall

log = logging.getLogger('werkzeug')
log.setLevel(logging.ERROR)

logger = logging.getLogger(__name__)
logging.basicConfig(level=config.LOG_LEVEL)

# --- Flask App Initialization ---
app = Flask(__name__)

CORS(app, resources={r"/*": {
    "origins": config.ALLOWED_ORIGINS,
    "methods": ["GET", "POST", "OPTIONS"],
    "allow_headers": ["Content-Type", "Authorization", "Accept"]
}})


def _parse_coordinate(value):
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    return v if math.isfinite(v) else None


def _parse_depth(value):
    try:
        depth = float(value)
    except (TypeError, ValueError):
        return config.DEFAULT_DEPTH_M
    if not math.isfinite(depth) or depth <= 0:
        return config.DEFAULT_DEPTH_M
    return depth


def _run_prediction(lat: float, lng: float, data: dict) -> dict:
    """Fetch live site data, apply the optional rainfall override and score it."""
    depth = _parse_depth(data.get("depth"))

    features, context = GeoDataService.get_site_features(lat, lng, depth)
    features = apply_manual_rainfall(features, data.get("manualRain"))
    verdict = SlopeStabilityEngine.evaluate(features)

    return {
        "location": {"lat": lat, "lng": lng},
        "climate": verdict.climate.to_dict() if verdict.climate else None,
        "input": features.to_dict(),
        "weather": context["weather"],
        "topography": context["topography"],
        "soil": context["soil"],
        "prediction": verdict.to_dict(),
        "isSimulated": verdict.simulated,
        "disclaimer": config.SERVICE_INFO["disclaimer"],
        "timestamp": datetime.now().isoformat(),
    }


# --- 1. Health Check Route ---
@app.route('/health', methods=['GET'])
def health():
    return jsonify({
        "status": "ok",
        "service": config.SERVICE_INFO["service"],
        "model": config.SERVICE_INFO["model"],
        "timestamp": datetime.now().isoformat()
    }), 200


@app.route('/predict', methods=['POST', 'OPTIONS'])
def predict():
    if request.method == 'OPTIONS':
        return jsonify({"status": "ok"}), 200
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    lat = _parse_coordinate(data.get("lat"))
    lng = _parse_coordinate(data.get("lng"))
    if lat is None or lng is None:
        return jsonify({"error": "Invalid coordinates"}), 400
    try:
        result = _run_prediction(lat, lng, data)
        logger.info(
            f"Prediction for {lat},{lng}: "
            f"{result['prediction']['risk_level']} (simulated={result['isSimulated']})"
        )
        return jsonify(result)
    except Exception as e:
        logger.exception(f"Prediction error: {e}")
        return jsonify({"error": "Prediction failed", "message": str(e)}), 500


@app.route("/generate_report", methods=["POST", "OPTIONS"])
def generate_report():
    if request.method == 'OPTIONS':
        return jsonify({"status": "ok"}), 200
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    lat = _parse_coordinate(data.get("lat"))
    lng = _parse_coordinate(data.get("lng"))
    if lat is None or lng is None:
        return jsonify({"error": "Invalid coordinates"}), 400
    try:
        result = _run_prediction(lat, lng, data)
        result["locationName"] = data.get("locationName")
        result["shareLink"] = data.get("shareLink")
        pdf_buffer = generate_risk_report(result)
        return send_file(
            pdf_buffer,
            mimetype="application/pdf",
            as_attachment=True,
            download_name="landslide_risk_report.pdf"
        )
    except Exception as e:
        logger.exception("Internal PDF Generation Error")
        return jsonify({"error": "Report generation failed", "message": str(e)}), 500


if __name__ == "__main__":
    logger.info(f"{config.SERVICE_INFO['service']} running on port {config.PORT}")
    app.run(debug=False, host="0.0.0.0", port=config.PORT, threaded=True)
