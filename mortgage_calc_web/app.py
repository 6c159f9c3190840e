"""JSON API for the mortgage calculator.

The API is a thin transport around the ``mortgage_calc`` package: it turns a
JSON body into a ``LoanInput``, validates it, and only calculates when the
validation report has no errors. Repeated identical requests are answered
from an in-memory cache.
"""

import logging

from flask import Flask, jsonify, request

from mortgage_calc.cache import create_cache_from_env
from mortgage_calc.config import Settings, configure_logging
from mortgage_calc.serialization import loan_input_from_dict, report_to_dict, result_to_dict
from mortgage_calc.validation import get_correction_suggestions, validate

logger = logging.getLogger(__name__)

settings = Settings.from_env()
app = Flask(__name__)
calculation_cache = create_cache_from_env(settings)


class RequestError(Exception):
    """Raised for request bodies that cannot be turned into a loan input."""


def _loan_from_request():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise RequestError("Request body must be a JSON object")
    try:
        return loan_input_from_dict(data)
    except ValueError as exc:
        raise RequestError(str(exc)) from exc


@app.errorhandler(RequestError)
def handle_request_error(exc: RequestError):
    return jsonify({"error": str(exc)}), 400


@app.get("/health")
def health():
    return jsonify({"status": "ok"})


@app.post("/api/validate")
def validate_loan():
    loan = _loan_from_request()
    return jsonify(report_to_dict(validate(loan)))


@app.post("/api/suggestions")
def suggestions():
    loan = _loan_from_request()
    return jsonify({"suggestions": get_correction_suggestions(loan)})


@app.post("/api/calculate")
def calculate_loan():
    loan = _loan_from_request()
    report = validate(loan)
    if not report.is_valid:
        logger.info("Rejected calculation with %d validation errors", len(report.errors))
        return jsonify({"validation": report_to_dict(report)}), 422
    result = calculation_cache.get_or_calculate(loan)
    return jsonify({"result": result_to_dict(result), "validation": report_to_dict(report)})


if __name__ == "__main__":
    configure_logging(settings.log_level)
    print("Starting Mortgage Calculator API...")
    app.run(host="0.0.0.0", port=settings.web_port, debug=True)
