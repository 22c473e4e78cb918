"""Tests for AWS Lambda handler."""

import base64
import json

from lambda_handler import lambda_handler

CALCULATE_PAYLOAD = {
    "context": {"gross_amount": 10000, "customer_tier": "VIP"},
    "rules": [
        {"id": "global", "rule_type": "PERCENTAGE", "value": 5},
        {"id": "vip", "rule_type": "PERCENTAGE", "value": 8, "scope": "CUSTOMER_TIER", "customer_tier": "VIP"},
    ],
}


class TestLambdaHandler:
    """Test the Lambda handler routes and responses."""

    def test_health_check(self):
        """GET /health returns healthy status."""
        event = {"httpMethod": "GET", "path": "/health"}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 200
        body = json.loads(response["body"])
        assert body["status"] == "healthy"
        assert "environment" in body

    def test_api_info(self):
        """GET /api returns API information."""
        event = {"httpMethod": "GET", "path": "/api"}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 200
        body = json.loads(response["body"])
        assert body["status"] == "ok"
        assert body["version"] == "1.0.0"
        assert set(body["endpoints"]) == {"calculate", "preview", "validate_rule", "health"}

    def test_cors_preflight(self):
        """OPTIONS requests return CORS headers."""
        event = {"httpMethod": "OPTIONS", "path": "/calculate"}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 200
        assert "Access-Control-Allow-Origin" in response["headers"]
        assert "Access-Control-Allow-Methods" in response["headers"]

    def test_not_found(self):
        """Unknown paths return 404."""
        event = {"httpMethod": "GET", "path": "/unknown"}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 404

    def test_get_on_post_route_not_found(self):
        event = {"httpMethod": "GET", "path": "/calculate"}
        assert lambda_handler(event, None)["statusCode"] == 404

    def test_calculate_success(self):
        """POST /calculate applies the winning rule."""
        event = {"httpMethod": "POST", "path": "/calculate", "body": json.dumps(CALCULATE_PAYLOAD)}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 200
        body = json.loads(response["body"])
        assert body["calculations"]["total_commission"]["value"] == 800.0
        assert body["selected_rule"]["rule_id"] == "vip"
        assert body["calculation_record"]["status"] == "PENDING"

    def test_calculate_base64_body(self):
        """API Gateway may deliver the body base64 encoded."""
        encoded = base64.b64encode(json.dumps(CALCULATE_PAYLOAD).encode("utf-8")).decode("ascii")
        event = {"httpMethod": "POST", "path": "/calculate", "body": encoded, "isBase64Encoded": True}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 200

    def test_preview(self):
        payload = {"sale_amount": 10000, "rules": [{"id": "flat", "rule_type": "FLAT_AMOUNT", "value": 500}]}
        event = {"httpMethod": "POST", "path": "/preview", "body": json.dumps(payload)}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 200
        assert json.loads(response["body"])["total_commission"] == 500.0

    def test_validate_rule(self):
        payload = {"rule": {"id": "r", "rule_type": "PERCENTAGE", "value": 150}}
        event = {"httpMethod": "POST", "path": "/validate_rule", "body": json.dumps(payload)}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 200
        body = json.loads(response["body"])
        assert body["valid"] is False
        assert body["errors"][0]["field"] == "value"

    def test_calculate_empty_body(self):
        """POST /calculate with empty body returns 400."""
        event = {"httpMethod": "POST", "path": "/calculate", "body": ""}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 400
        body = json.loads(response["body"])
        assert "error" in body

    def test_calculate_invalid_json(self):
        """POST /calculate with invalid JSON returns 400."""
        event = {"httpMethod": "POST", "path": "/calculate", "body": "not valid json"}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 400
        body = json.loads(response["body"])
        assert body["error"].startswith("Invalid JSON")

    def test_calculate_validation_error(self):
        """POST /calculate with a missing basis amount returns 400."""
        payload = {"context": {"commission_basis": "NET_SALES"}, "rules": []}
        event = {"httpMethod": "POST", "path": "/calculate", "body": json.dumps(payload)}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 400
        body = json.loads(response["body"])
        assert body["status"] == "validation_failed"
        assert "net_amount is required" in body["error"]

    def test_infinite_tier_rate_is_validation_error(self):
        payload = {
            "context": {"gross_amount": 10000},
            "rules": [{"id": "tiered", "rule_type": "TIERED", "tiers": [{"threshold": 0, "rate": "Infinity"}]}],
        }
        event = {"httpMethod": "POST", "path": "/calculate", "body": json.dumps(payload)}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 400
        assert json.loads(response["body"])["status"] == "validation_failed"

    def test_missing_context_is_validation_error(self):
        event = {"httpMethod": "POST", "path": "/calculate", "body": json.dumps({"rules": []})}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 400
        assert json.loads(response["body"])["status"] == "validation_failed"

    def test_http_api_format(self):
        """Supports HTTP API v2 event format."""
        event = {"requestContext": {"http": {"method": "GET"}}, "rawPath": "/health"}
        response = lambda_handler(event, None)

        assert response["statusCode"] == 200
