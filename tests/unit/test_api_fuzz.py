"""Property-based fuzz tests for the kubedeck REST API.

Uses hypothesis to generate randomised path segments, query parameters and
request bodies and validates that:
 1. No 500s from malformed input (validation catches everything)
 2. Response body is always valid JSON
 3. Error responses always carry ``success: false`` + ``error`` + ``detail``
 4. Content-Type is always ``application/json``
"""

from __future__ import annotations

from urllib.parse import quote

from fastapi.testclient import TestClient
from hypothesis import given, settings
from hypothesis import strategies as st

from tests.conftest import make_api, populated_cluster

# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _make_app() -> TestClient:
    return make_api(populated_cluster())


# ---------------------------------------------------------------------------
# Hypothesis strategies
# ---------------------------------------------------------------------------

_json_safe_text = st.text(
    alphabet=st.characters(
        codec="utf-8",
        exclude_categories=("Cs",),  # exclude surrogates
    ),
    min_size=0,
    max_size=200,
)

_path_segment = st.text(
    alphabet=st.characters(codec="utf-8", exclude_categories=("Cs",)),
    min_size=1,
    max_size=100,
)

_dns_label = st.from_regex(r"[a-z][a-z0-9\-]{0,30}", fullmatch=True)

_json_scalars = st.one_of(st.none(), st.booleans(), st.integers(), st.text(max_size=30))
_json_values = st.recursive(
    _json_scalars,
    lambda children: st.one_of(
        st.lists(children, max_size=4),
        st.dictionaries(st.text(max_size=10), children, max_size=4),
    ),
    max_leaves=12,
)


# ---------------------------------------------------------------------------
# Shared assertion helpers
# ---------------------------------------------------------------------------


def _assert_valid_json_response(resp, allowed_status_codes: set[int] | None = None):
    """Assert universal invariants on every API response."""
    assert resp.headers.get("content-type", "").startswith("application/json"), (
        f"Expected application/json, got {resp.headers.get('content-type')}"
    )
    body = resp.json()
    assert isinstance(body, dict)

    if allowed_status_codes is not None:
        assert resp.status_code in allowed_status_codes, f"Unexpected status {resp.status_code}, body={body}"

    if resp.status_code >= 400:
        assert body.get("success") is False, f"Error response missing success=false: {body}"
        assert "error" in body, f"Error response missing 'error': {body}"
        assert "detail" in body, f"Error response missing 'detail': {body}"


# ===========================================================================
# A. Path segments
# ===========================================================================


class TestPathSegmentFuzz:
    """Fuzz resource names embedded in the URL path."""

    @given(name=_path_segment)
    @settings(max_examples=50)
    def test_random_pod_names_never_500(self, name: str) -> None:
        client = _make_app()
        resp = client.get(f"/api/pods/{quote(name, safe='')}")
        _assert_valid_json_response(resp, allowed_status_codes={200, 400, 404})

    @given(name=_path_segment)
    @settings(max_examples=50)
    def test_random_node_names_never_500(self, name: str) -> None:
        client = _make_app()
        resp = client.get(f"/api/nodes/{quote(name, safe='')}")
        _assert_valid_json_response(resp, allowed_status_codes={200, 400, 404})

    @given(namespace=_path_segment)
    @settings(max_examples=50)
    def test_random_namespaces_never_500(self, namespace: str) -> None:
        client = _make_app()
        resp = client.get(f"/api/namespaces/{quote(namespace, safe='')}/pods")
        _assert_valid_json_response(resp, allowed_status_codes={200, 400, 404})

    @given(name=_dns_label)
    @settings(max_examples=30)
    def test_well_formed_missing_names_are_404(self, name: str) -> None:
        client = _make_app()
        resp = client.get(f"/api/deployments/{name}-missing")
        _assert_valid_json_response(resp, allowed_status_codes={404})
        assert resp.json()["error"] == "NOT_FOUND"

    def test_whitespace_name_is_400(self) -> None:
        client = _make_app()
        resp = client.get("/api/nodes/%20%20")
        _assert_valid_json_response(resp, allowed_status_codes={400})

    def test_path_traversal_attempts_handled(self) -> None:
        client = _make_app()
        traversals = [
            "/api/pods/..%2f..%2fetc%2fpasswd",
            "/api/namespaces/..%2fkube-system/pods",
            "/api/nodes/%2e%2e",
        ]
        for path in traversals:
            resp = client.get(path)
            assert resp.status_code != 500


# ===========================================================================
# B. Query parameters
# ===========================================================================


class TestQueryParamFuzz:
    """Fuzz the ``namespace`` query parameter of the listing routes."""

    @given(namespace=_json_safe_text)
    @settings(max_examples=50)
    def test_random_namespace_filter_never_500(self, namespace: str) -> None:
        client = _make_app()
        resp = client.get("/api/pods", params={"namespace": namespace})
        _assert_valid_json_response(resp, allowed_status_codes={200, 404})

    @given(namespace=_json_safe_text)
    @settings(max_examples=30)
    def test_random_namespace_for_network_routes(self, namespace: str) -> None:
        client = _make_app()
        for path in ("/api/services", "/api/ingresses", "/api/deployments"):
            resp = client.get(path, params={"namespace": namespace})
            _assert_valid_json_response(resp, allowed_status_codes={200, 404})

    @given(
        params=st.dictionaries(
            st.text(min_size=1, max_size=20),
            st.text(max_size=50),
            max_size=5,
        )
    )
    @settings(max_examples=30)
    def test_random_query_params_on_health_always_200(self, params: dict) -> None:
        client = _make_app()
        resp = client.get("/api/health", params=params)
        _assert_valid_json_response(resp, allowed_status_codes={200})


# ===========================================================================
# C. POST /deployments body fuzzing
# ===========================================================================


class TestCreateDeploymentBodyFuzz:
    """Fuzz the request body of POST /deployments."""

    def test_missing_deployment_field_returns_400(self) -> None:
        client = _make_app()
        resp = client.post("/api/deployments", json={})
        _assert_valid_json_response(resp, allowed_status_codes={400})

    @given(deployment=_json_values)
    @settings(max_examples=50)
    def test_arbitrary_deployment_values_never_500(self, deployment: object) -> None:
        client = _make_app()
        resp = client.post("/api/deployments", json={"deployment": deployment})
        _assert_valid_json_response(resp, allowed_status_codes={201, 400})

    @given(extra=st.dictionaries(st.text(min_size=1, max_size=20), st.text(max_size=50), max_size=5))
    @settings(max_examples=30)
    def test_extra_fields_ignored(self, extra: dict) -> None:
        body = {**extra, "deployment": {"metadata": {"name": "api"}}}
        client = _make_app()
        resp = client.post("/api/deployments", json=body)
        _assert_valid_json_response(resp, allowed_status_codes={201, 400})

    def test_empty_namespace_returns_400(self) -> None:
        client = _make_app()
        resp = client.post("/api/deployments", json={"namespace": "", "deployment": {"metadata": {"name": "api"}}})
        _assert_valid_json_response(resp, allowed_status_codes={400})

    def test_non_json_content_type_returns_error(self) -> None:
        client = _make_app()
        resp = client.post(
            "/api/deployments",
            content=b"deployment=api",
            headers={"content-type": "application/x-www-form-urlencoded"},
        )
        _assert_valid_json_response(resp, allowed_status_codes={400})

    @given(
        body=st.one_of(
            st.just(""),
            st.just("null"),
            st.just("[]"),
            st.just("42"),
            st.just('"string"'),
            st.just("true"),
        )
    )
    @settings(max_examples=10)
    def test_non_object_json_returns_error(self, body: str) -> None:
        client = _make_app()
        resp = client.post(
            "/api/deployments",
            content=body.encode(),
            headers={"content-type": "application/json"},
        )
        _assert_valid_json_response(resp, allowed_status_codes={400})


# ===========================================================================
# D. Response contract invariants
# ===========================================================================


class TestResponseContracts:
    """Verify envelopes across fuzzed requests."""

    @given(namespace=_dns_label)
    @settings(max_examples=30)
    def test_listing_envelope_shape(self, namespace: str) -> None:
        client = _make_app()
        resp = client.get("/api/pods", params={"namespace": namespace})
        body = resp.json()
        if resp.status_code == 200:
            assert body["success"] is True
            assert isinstance(body["data"], list)
            assert body["count"] == len(body["data"])
            assert body["namespace"] == namespace
        else:
            assert isinstance(body["error"], str)
            assert isinstance(body["detail"], str)

    def test_health_always_returns_required_fields(self) -> None:
        client = _make_app()
        resp = client.get("/api/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert "version" in body
        assert "timestamp" in body
