"""Tests for the permit decision API and the FastAPI glue.

Covers the subject middleware, the permit_to dependency and the
/authz endpoints.
"""

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from permitto.api import create_app
from permitto.api.config import Settings
from permitto.auth.middleware import SubjectHeaderMiddleware
from permitto.auth.models import Subject
from permitto.authz.engine import permit_to
from permitto.authz.messages import INVALID_RULES, USER_RESTRICTED
from permitto.authz.models import AuthzDecision, RuleSyntaxError


@pytest.fixture
def client():
    """Test client for the decision API."""
    return TestClient(create_app(Settings(debug=False)))


@pytest.fixture
def guarded_client():
    """Test client for an app whose routes are guarded by permit_to."""
    app = FastAPI()
    app.add_middleware(SubjectHeaderMiddleware)

    @app.get("/reports", dependencies=[Depends(permit_to("admin", "user(gold)"))])
    async def reports():
        return {"reports": []}

    @app.get("/catalog")
    async def catalog(decision: AuthzDecision = Depends(permit_to("!guest"))):
        return {"trace": decision.trace}

    @app.get("/open", dependencies=[Depends(permit_to())])
    async def open_route():
        return {"ok": True}

    return TestClient(app)


def headers(role: str, membership: str | None = None) -> dict[str, str]:
    result = {"X-User-Role": role, "X-User-ID": "user-123"}
    if membership:
        result["X-User-Membership"] = membership
    return result


class TestSubject:
    """Test the subject model."""

    def test_blank_membership_is_absent(self):
        assert Subject(role="user", membership="  ").membership is None

    def test_attribute_values_are_lowercased(self):
        subject = Subject(role="Admin", membership="Gold")
        assert subject.attribute_values() == {"role": "admin", "membership": "gold"}

    def test_role_is_required(self):
        with pytest.raises(ValueError):
            Subject(role="")

    def test_blank_role_is_rejected(self):
        with pytest.raises(ValueError):
            Subject(role="   ")

    def test_role_is_stripped(self):
        assert Subject(role=" admin ").role == "admin"


class TestPermitToDependency:
    """Test guarding routes with permit_to."""

    def test_allowed_subject(self, guarded_client):
        response = guarded_client.get("/reports", headers=headers("admin"))
        assert response.status_code == 200

    def test_allowed_by_membership(self, guarded_client):
        response = guarded_client.get("/reports", headers=headers("user", "gold"))
        assert response.status_code == 200

    def test_denied_subject_gets_403(self, guarded_client):
        """Denials carry the fixed catalog message."""
        response = guarded_client.get("/reports", headers=headers("user", "basic"))
        assert response.status_code == 403
        assert response.json()["detail"] == {
            "error": USER_RESTRICTED.code,
            "message": USER_RESTRICTED.message,
        }

    def test_missing_subject_gets_401(self, guarded_client):
        response = guarded_client.get("/reports")
        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "subject_required"

    def test_decision_is_injected(self, guarded_client):
        response = guarded_client.get("/catalog", headers=headers("admin"))
        assert response.status_code == 200
        assert response.json()["trace"] == ["role:not_negated", "membership:absent"]

        response = guarded_client.get("/catalog", headers=headers("guest"))
        assert response.status_code == 403

    def test_no_rules_is_open_to_any_subject(self, guarded_client):
        response = guarded_client.get("/open", headers=headers("guest"))
        assert response.status_code == 200

    def test_malformed_rules_fail_at_declaration(self):
        """A bad rule is caught when the route is declared."""
        with pytest.raises(RuleSyntaxError):
            permit_to("admin", "user(basic")


class TestHealth:
    """Test the public health endpoint."""

    def test_health_needs_no_subject(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestEvaluateEndpoint:
    """Test POST /authz/evaluate."""

    def test_allowed(self, client):
        response = client.post(
            "/authz/evaluate",
            json={"rules": ["distributors(!basic)"], "role": "distributors", "membership": "gold"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["allowed"] is True
        assert body["expression"] == "distributors(!basic)"

    def test_denied_is_returned_not_raised(self, client):
        response = client.post(
            "/authz/evaluate",
            json={"rules": ["distributors(!basic)"], "role": "distributors", "membership": "basic"},
        )
        assert response.status_code == 200
        assert response.json()["allowed"] is False

    def test_no_rules(self, client):
        response = client.post("/authz/evaluate", json={"role": "guest"})
        assert response.status_code == 200
        assert response.json()["allowed"] is True

    def test_malformed_rules(self, client):
        response = client.post(
            "/authz/evaluate",
            json={"rules": ["admin", "tenant_admin"], "role": "admin"},
        )
        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["error"] == "invalid_rules"
        assert detail["message"] == INVALID_RULES.message
        assert detail["reason"] == "identifiers must be alphabetic"
        assert detail["term"] == "tenant_admin"
        assert detail["index"] == 1

    def test_role_is_required(self, client):
        response = client.post("/authz/evaluate", json={"rules": ["admin"]})
        assert response.status_code == 422

    def test_blank_role_is_rejected(self, client):
        response = client.post("/authz/evaluate", json={"rules": ["admin"], "role": "   "})
        assert response.status_code == 422


class TestParseEndpoint:
    """Test POST /authz/parse."""

    def test_parse(self, client):
        response = client.post("/authz/parse", json={"rules": ["Admin", "!User(basic)"]})
        assert response.status_code == 200
        body = response.json()
        assert body["expression"] == "admin,!user(basic)"
        assert body["terms"][0] == {
            "text": "admin",
            "kind": "positive_role",
            "role": "admin",
            "role_negated": False,
            "membership": None,
            "membership_negated": None,
        }
        assert body["terms"][1]["kind"] == "negative_role"
        assert body["terms"][1]["membership"] == "basic"

    def test_parse_malformed(self, client):
        response = client.post("/authz/parse", json={"rules": ["user()"]})
        assert response.status_code == 422


class TestCheckMeEndpoint:
    """Test GET /authz/me."""

    def test_allowed(self, client):
        response = client.get(
            "/authz/me",
            params={"rules": ["user(basic)"]},
            headers=headers("user", "basic"),
        )
        assert response.status_code == 200
        assert response.json()["allowed"] is True

    def test_denied(self, client):
        response = client.get(
            "/authz/me",
            params={"rules": ["admin"]},
            headers=headers("user"),
        )
        assert response.status_code == 403
        detail = response.json()["detail"]
        assert detail["message"] == USER_RESTRICTED.message
        assert detail["trace"] == ["role:excluded", "membership:absent"]

    def test_without_subject(self, client):
        response = client.get("/authz/me", params={"rules": ["admin"]})
        assert response.status_code == 401

    def test_custom_headers(self):
        client = TestClient(create_app(Settings(role_header="X-Role")))
        response = client.get(
            "/authz/me",
            params={"rules": ["admin"]},
            headers={"X-Role": "admin"},
        )
        assert response.status_code == 200
