"""
API application for the Ripple policy simulator
===============================================

Thin Flask layer over :class:`SimulationSession`:

- upload a population file and get its baseline back
- run a Monte Carlo simulation for a set of policy levers
- request narrative insights for the latest run
- publish the accepted parameter ranges for UI sliders

Validation happens here (pydantic); the simulation core trusts its inputs.
"""

import logging
from datetime import datetime

from flask import Flask, jsonify, request
from flask_cors import CORS
from pydantic import ValidationError

from ripple_model import __version__
from ripple_model.api.json_serialization import to_json_ready
from ripple_model.api.policy_settings_schema import SimulationRequest, parameter_bounds
from ripple_model.errors import ComputationError, InputError, StateError
from ripple_model.orchestration.session import SimulationSession

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)

session = SimulationSession()


def safe_jsonify(data, status_code=200):
    """JSON response that tolerates numpy scalars, dataclasses and non-finite floats."""
    try:
        response = jsonify(to_json_ready(data))
        response.status_code = status_code
        return response
    except (TypeError, ValueError) as e:
        logger.error("❌ JSON serialization error: %s", e)
        error_response = jsonify({'error': f'JSON serialization error: {str(e)}'})
        error_response.status_code = 500
        return error_response


def error_response(error, message, status_code):
    return safe_jsonify({
        'error': error,
        'message': message,
        'timestamp': datetime.now().isoformat()
    }, status_code)


@app.route('/', methods=['GET'])
def home():
    """API home endpoint."""
    return safe_jsonify({
        'message': 'Ripple Policy Simulator API',
        'version': __version__,
        'status': 'operational',
        'endpoints': [
            '/api/population/upload',
            '/api/baseline',
            '/api/simulate',
            '/api/insights',
            '/api/parameters/bounds',
            '/health'
        ]
    })


@app.route('/health', methods=['GET'])
def health_check():
    population = session.population
    return safe_jsonify({
        'status': 'healthy',
        'population_loaded': bool(population),
        'population_size': len(population) if population else 0,
        'simulation_state': session.state.value,
        'has_summary': session.summary is not None,
        'timestamp': datetime.now().isoformat()
    })


@app.route('/api/population/upload', methods=['POST'])
def upload_population():
    """Load a population workbook (.xlsx) or CSV sent as multipart field ``file``."""
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        return error_response('Validation error', "Multipart field 'file' is required", 400)

    try:
        baseline = session.load_population_file(upload.stream, upload.filename)
    except InputError as e:
        logger.warning("❌ Population rejected: %s", e)
        return error_response('Invalid population', str(e), 400)

    logger.info("📁 Population uploaded from %s", upload.filename)
    return safe_jsonify({
        'filename': upload.filename,
        'population_size': baseline.total_population,
        'baseline': baseline.to_dict(),
        'timestamp': datetime.now().isoformat()
    })


@app.route('/api/baseline', methods=['GET'])
def get_baseline():
    try:
        baseline = session.ensure_baseline()
    except StateError as e:
        return error_response('No baseline', str(e), 400)
    return safe_jsonify(baseline.to_dict())


@app.route('/api/simulate', methods=['POST'])
def simulate():
    """Run a Monte Carlo simulation for the posted policy levers."""
    try:
        payload = SimulationRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return error_response('Validation error', str(e), 400)

    policy = payload.policy.to_settings()
    logger.info("🚀 Running simulation: %d trials, policy=%s", payload.n_trials, policy)

    try:
        summary = session.simulate(policy, payload.n_trials, seed=payload.seed)
    except StateError as e:
        return error_response('Simulation unavailable', str(e), 400)
    except ComputationError as e:
        logger.error("❌ Simulation error: %s", e)
        return error_response('Simulation failed', str(e), 500)

    result = summary.to_dict()
    result.update({
        'baseline': session.baseline.to_dict(),
        'api_version': __version__,
        'timestamp': datetime.now().isoformat()
    })
    return safe_jsonify(result)


@app.route('/api/insights', methods=['POST'])
def insights():
    """Narrative policy, equity and environmental summaries of the latest run."""
    try:
        texts = session.generate_insights()
    except StateError as e:
        return error_response('No simulation results', str(e), 400)
    return safe_jsonify({
        'insights': {kind.value: text for kind, text in texts.items()},
        'timestamp': datetime.now().isoformat()
    })


@app.route('/api/parameters/bounds', methods=['GET'])
def get_parameter_bounds():
    return safe_jsonify({
        'bounds': parameter_bounds(),
        'timestamp': datetime.now().isoformat()
    })


# Error handlers
@app.errorhandler(404)
def not_found(error):
    return error_response('Endpoint not found', 'The requested endpoint does not exist', 404)


@app.errorhandler(500)
def internal_error(error):
    return error_response('Internal server error', 'An unexpected error occurred', 500)


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    logger.info("🚀 Starting Ripple API Server...")
    app.run(host='0.0.0.0', port=8080, debug=True)
