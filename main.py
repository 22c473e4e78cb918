from flask import Flask, request, jsonify
from flask_cors import CORS
from engine import CommissionProcessor, ENGINE_VERSION
import os
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Enable CORS for all routes (the dashboard and sync workers call the API)
CORS(app)

# Initialize the commission processor
processor = CommissionProcessor(tie_policy=os.environ.get("TIE_POLICY", "stack"))


@app.route("/api", methods=["GET"])
def api_info():
    """API information endpoint"""
    return jsonify({
        "status": "ok",
        "message": "Commission Calculation Engine API",
        "version": ENGINE_VERSION,
        "tie_policy": processor.tie_policy,
        "endpoints": {
            "calculate": "/calculate [POST]",
            "preview": "/preview [POST]",
            "validate_rule": "/validate_rule [POST]",
            "health": "/health [GET]"
        }
    }), 200


@app.route("/health", methods=["GET"])
def health():
    """Health check for monitoring"""
    return jsonify({"status": "healthy"}), 200


def _handle(operation, label):
    """Run a processor operation on the JSON body, mapping errors to responses."""
    try:
        input_data = request.get_json(force=True, silent=True)

        if not input_data:
            return jsonify({
                "error": "No input data provided",
                "status": "failed"
            }), 400

        logger.info(f"Processing {label} request")

        result = operation(input_data)

        logger.info(f"{label} request processed successfully")

        return jsonify(result), 200

    except (ValueError, KeyError, TypeError) as e:
        # Validation errors from engine
        logger.error(f"Validation error: {str(e)}")
        return jsonify({
            "error": str(e),
            "status": "validation_failed"
        }), 400

    except Exception as e:
        # Unexpected errors
        logger.error(f"Processing error: {str(e)}", exc_info=True)
        return jsonify({
            "error": "An unexpected error occurred during processing",
            "status": "failed"
        }), 500


@app.route("/calculate", methods=["POST"])
def calculate():
    """
    Calculate commission for one transaction against its candidate rules
    """
    return _handle(processor.process_from_dict, "calculate")


@app.route("/preview", methods=["POST"])
def preview():
    """Preview a plan's stacked rules for a sale amount"""
    return _handle(processor.preview_from_dict, "preview")


@app.route("/validate_rule", methods=["POST"])
def validate_rule():
    """Check a rule's configuration before it is saved"""
    return _handle(processor.validate_rule_from_dict, "validate_rule")


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=False)
