"""
Tests for RegistryClient request sequences.

HTTP is served either by the in-memory FakeRegistry or by a ScriptedTransport
that answers with fixed statuses, so no test touches the network.
"""
from __future__ import annotations

import base64
import hashlib
import threading
from unittest.mock import patch

import httpx
import pytest
from pydantic_core import PydanticSerializationError

from nori_sdk.models import Descriptor, Manifest
from nori_sdk.storage.credentials import Credentials
from nori_sdk.storage.oci_errors import (
    AUTH_HINT,
    OciAuthError,
    OciConfigError,
    OciProtocolError,
    OciRequestError,
    OciSerializationError,
    OciTransportError,
)
from nori_sdk.storage.oci_media_types import (
    BLOB_UPLOAD_CONTENT_TYPE,
    OCI_EMPTY_CONFIG,
    OCI_EMPTY_CONFIG_DIGEST,
    OCI_IMAGE_LAYER,
    OCI_IMAGE_MANIFEST,
)
from nori_sdk.storage.reference import Reference
from nori_sdk.storage.registry_client import RegistryClient

from fakes.scripted_transport import ScriptedTransport

CONTENT = b"layer bytes"
DIGEST = f"sha256:{hashlib.sha256(CONTENT).hexdigest()}"


def _descriptor(data: bytes = CONTENT) -> Descriptor:
    return Descriptor.from_bytes(data, OCI_IMAGE_LAYER)


def _manifest() -> Manifest:
    return Manifest(
        config=Descriptor(media_type=OCI_EMPTY_CONFIG, digest=OCI_EMPTY_CONFIG_DIGEST, size=2),
        layers=[_descriptor()],
        annotations={"org.opencontainers.image.created": "2024-01-01T00:00:00Z"},
    )


def _scripted_client(*responses: httpx.Response) -> tuple:
    transport = ScriptedTransport(*responses)
    return RegistryClient(transport=transport), transport


class TestPushBlob:
    """Two-step blob upload."""

    def test_push_blob_success(self, client, registry, ref):
        """GET init then PUT to the location with the digest appended."""
        client.push_blob(_descriptor(), CONTENT, ref)

        assert [r.method for r in registry.requests] == ["GET", "PUT"]
        init, upload = registry.requests
        assert str(init.url) == "https://registry.example.org/v2/library/nginx/blobs/uploads/"

        assert upload.url.params["digest"] == DIGEST
        assert "_state" in upload.url.params  # existing query kept
        assert upload.url.host == "registry.example.org"  # relative location resolved
        assert upload.headers["Content-Type"] == BLOB_UPLOAD_CONTENT_TYPE
        assert upload.headers["Content-Length"] == str(len(CONTENT))
        assert upload.content == CONTENT
        assert registry.blobs[("library/nginx", DIGEST)] == CONTENT

    def test_push_blob_absolute_location(self, ref):
        """An absolute Location is used as-is, plus the digest query."""
        client, transport = _scripted_client(
            httpx.Response(202, headers={"Location": "https://uploads.example.org/session/1"}),
            httpx.Response(201),
        )
        client.push_blob(_descriptor(), CONTENT, ref)

        upload = transport.requests[1]
        assert upload.url.host == "uploads.example.org"
        assert upload.url.path == "/session/1"
        assert upload.url.params["digest"] == DIGEST

    def test_push_blob_insecure_uses_http(self, client, registry, ref):
        client.push_blob(_descriptor(), CONTENT, ref, insecure=True)
        assert registry.requests[0].url.scheme == "http"

    def test_init_unauthorized_stops_sequence(self, ref):
        """401 on init raises OciAuthError and no PUT is attempted."""
        client, transport = _scripted_client(httpx.Response(401))

        with pytest.raises(OciAuthError) as exc_info:
            client.push_blob(_descriptor(), CONTENT, ref)

        assert exc_info.value.step == "init-upload"
        assert str(exc_info.value) == AUTH_HINT
        assert transport.methods == ["GET"]

    def test_init_unexpected_status(self, ref):
        """Anything but 202 on init is a protocol error."""
        client, transport = _scripted_client(httpx.Response(200, headers={"Location": "/x"}))

        with pytest.raises(OciProtocolError) as exc_info:
            client.push_blob(_descriptor(), CONTENT, ref)

        assert exc_info.value.status_code == 200
        assert transport.methods == ["GET"]

    def test_missing_location_is_protocol_error(self, ref):
        client, transport = _scripted_client(httpx.Response(202))

        with pytest.raises(OciProtocolError) as exc_info:
            client.push_blob(_descriptor(), CONTENT, ref)

        assert exc_info.value.step == "init-upload"
        assert transport.methods == ["GET"]

    def test_upload_unauthorized(self, ref):
        client, _ = _scripted_client(
            httpx.Response(202, headers={"Location": "/v2/library/nginx/blobs/uploads/abc"}),
            httpx.Response(401),
        )
        with pytest.raises(OciAuthError) as exc_info:
            client.push_blob(_descriptor(), CONTENT, ref)
        assert exc_info.value.step == "upload"

    def test_upload_server_error_carries_status_text(self, ref):
        """A 500 on the PUT surfaces the status text."""
        client, _ = _scripted_client(
            httpx.Response(202, headers={"Location": "/v2/library/nginx/blobs/uploads/abc"}),
            httpx.Response(500),
        )
        with pytest.raises(OciProtocolError) as exc_info:
            client.push_blob(_descriptor(), CONTENT, ref)

        err = exc_info.value
        assert err.step == "upload"
        assert err.status_code == 500
        assert "500" in err.status_text
        assert "Internal Server Error" in err.status_text
        assert "Internal Server Error" in str(err)

    def test_missing_host_makes_no_request(self):
        client, transport = _scripted_client()
        with pytest.raises(OciConfigError, match="Host is required"):
            client.push_blob(_descriptor(), CONTENT, Reference(host="", name="nginx"))
        assert transport.requests == []

    def test_missing_name_makes_no_request(self):
        client, transport = _scripted_client()
        with pytest.raises(OciConfigError):
            client.push_blob(_descriptor(), CONTENT, Reference(host="registry.example.org", name=""))
        assert transport.requests == []

    def test_unbuildable_host_is_request_error(self):
        """A host of ":" cannot form a URL; nothing reaches the transport."""
        client, transport = _scripted_client()
        with pytest.raises(OciRequestError):
            client.push_blob(_descriptor(), CONTENT, Reference(host=":", name="nginx"))
        assert transport.requests == []


class TestPullBlob:
    """Single-GET blob download."""

    def test_pull_blob_returns_body(self, client, registry, ref):
        digest = registry.put_blob("library/nginx", CONTENT)

        data = client.pull_blob(_descriptor(), ref)

        assert data == CONTENT
        assert str(registry.requests[0].url) == f"https://registry.example.org/v2/library/nginx/blobs/{digest}"

    def test_pull_blob_unauthorized(self, ref):
        client, _ = _scripted_client(httpx.Response(401))
        with pytest.raises(OciAuthError) as exc_info:
            client.pull_blob(_descriptor(), ref)
        assert exc_info.value.step == "pull-blob"

    def test_pull_blob_not_found(self, client, ref):
        with pytest.raises(OciProtocolError) as exc_info:
            client.pull_blob(_descriptor(), ref)
        assert exc_info.value.status_code == 404


class TestPullManifest:
    """Manifest download and parsing."""

    def test_missing_host_makes_no_request(self):
        """Empty host fails before any network call."""
        client, transport = _scripted_client()
        with pytest.raises(OciConfigError):
            client.pull_manifest(Reference(host="", namespace="library", name="nginx"))
        assert transport.requests == []

    def test_missing_version_makes_no_request(self):
        client, transport = _scripted_client()
        with pytest.raises(OciConfigError, match="Version"):
            client.pull_manifest(Reference(host="registry.example.org", name="nginx", version=""))
        assert transport.requests == []

    def test_push_then_pull_round_trip(self, client, registry, ref):
        """A pushed manifest pulls back equal."""
        manifest = _manifest()
        client.push_manifest(manifest, ref)

        pulled = client.pull_manifest(ref)

        assert pulled == manifest
        get = registry.calls("GET")[0]
        assert get.headers["Accept"] == OCI_IMAGE_MANIFEST
        assert str(get.url) == "https://registry.example.org/v2/library/nginx/manifests/latest"

    def test_round_trip_without_media_type(self, client, ref):
        """An unset mediaType is not filled in on the way back."""
        manifest = Manifest(
            media_type=None,
            config=Descriptor(media_type=OCI_EMPTY_CONFIG, digest=OCI_EMPTY_CONFIG_DIGEST, size=2),
        )
        client.push_manifest(manifest, ref)

        pulled = client.pull_manifest(ref)

        assert pulled.media_type is None
        assert pulled == manifest

    def test_insecure_pull_uses_http(self, client, registry, ref):
        registry.put_manifest("library/nginx", "latest", _manifest().to_json())
        client.pull_manifest(ref, insecure=True)
        assert registry.requests[0].url.scheme == "http"

    def test_invalid_json_is_serialization_error(self, ref):
        client, _ = _scripted_client(httpx.Response(200, content=b"{not json"))
        with pytest.raises(OciSerializationError) as exc_info:
            client.pull_manifest(ref)
        assert exc_info.value.step == "pull-manifest"

    def test_wrong_shape_is_serialization_error(self, ref):
        client, _ = _scripted_client(httpx.Response(200, json={"schemaVersion": 2}))
        with pytest.raises(OciSerializationError):
            client.pull_manifest(ref)

    def test_pull_manifest_unauthorized(self, ref):
        client, _ = _scripted_client(httpx.Response(401))
        with pytest.raises(OciAuthError):
            client.pull_manifest(ref)

    def test_pull_manifest_not_found(self, client, ref):
        with pytest.raises(OciProtocolError) as exc_info:
            client.pull_manifest(ref)
        assert exc_info.value.status_code == 404
        assert exc_info.value.step == "pull-manifest"


class TestPushManifest:
    """Check-then-write manifest upload."""

    def test_existing_manifest_skips_put(self, ref):
        """HEAD 200 means success with no PUT."""
        client, transport = _scripted_client(httpx.Response(200))

        client.push_manifest(_manifest(), ref)

        assert transport.methods == ["HEAD"]
        head = transport.requests[0]
        assert head.headers["Content-Type"] == OCI_IMAGE_MANIFEST
        assert "Content-Length" not in head.headers

    def test_missing_manifest_is_put(self, ref):
        """HEAD 404 then PUT 201."""
        client, transport = _scripted_client(httpx.Response(404), httpx.Response(201))
        manifest = _manifest()

        client.push_manifest(manifest, ref)

        assert transport.methods == ["HEAD", "PUT"]
        put = transport.requests[1]
        assert put.headers["Content-Type"] == OCI_IMAGE_MANIFEST
        assert put.headers["Content-Length"] == str(len(manifest.to_json()))
        assert put.content == manifest.to_json()
        assert str(put.url) == "https://registry.example.org/v2/library/nginx/manifests/latest"

    def test_head_unauthorized_falls_through_to_put(self, ref):
        """Only HEAD 200 short-circuits; the PUT decides the outcome."""
        client, transport = _scripted_client(httpx.Response(401), httpx.Response(201))
        client.push_manifest(_manifest(), ref)
        assert transport.methods == ["HEAD", "PUT"]

    def test_put_unauthorized(self, ref):
        client, _ = _scripted_client(httpx.Response(404), httpx.Response(401))
        with pytest.raises(OciAuthError) as exc_info:
            client.push_manifest(_manifest(), ref)
        assert exc_info.value.step == "push-manifest"

    def test_put_server_error(self, ref):
        client, _ = _scripted_client(httpx.Response(404), httpx.Response(500))
        with pytest.raises(OciProtocolError) as exc_info:
            client.push_manifest(_manifest(), ref)
        assert exc_info.value.status_code == 500

    def test_unserializable_manifest_makes_no_request(self, ref):
        """An encoding failure is a serialization error raised before any request."""
        client, transport = _scripted_client()
        manifest = _manifest()

        with patch.object(Manifest, "to_json", side_effect=PydanticSerializationError("cannot encode")):
            with pytest.raises(OciSerializationError) as exc_info:
                client.push_manifest(manifest, ref)

        assert exc_info.value.step == "push-manifest"
        assert transport.requests == []

    def test_put_accepts_only_201(self, ref):
        """200 on the PUT is not success."""
        client, _ = _scripted_client(httpx.Response(404), httpx.Response(200))
        with pytest.raises(OciProtocolError):
            client.push_manifest(_manifest(), ref)

    def test_missing_host_makes_no_request(self):
        client, transport = _scripted_client()
        with pytest.raises(OciConfigError):
            client.push_manifest(_manifest(), Reference(host="", name="nginx"))
        assert transport.requests == []


class TestCredentials:
    """Authorization header handling and credential swapping."""

    def test_basic_auth_header(self, client, registry, ref):
        """u/p encodes to Basic dTpw."""
        client.set_basic_auth("u", "p")
        client.push_blob(_descriptor(), CONTENT, ref)

        for request in registry.requests:
            assert request.headers["Authorization"] == "Basic dTpw"

    def test_second_set_basic_auth_replaces_first(self, client, registry, ref):
        client.set_basic_auth("u", "p")
        client.set_basic_auth("alice", "s3cret")
        registry.put_manifest("library/nginx", "latest", _manifest().to_json())

        client.pull_manifest(ref)

        expected = "Basic " + base64.b64encode(b"alice:s3cret").decode()
        assert registry.requests[0].headers["Authorization"] == expected

    def test_anonymous_sends_no_authorization(self, client, registry, ref):
        client.push_blob(_descriptor(), CONTENT, ref)
        assert all("Authorization" not in r.headers for r in registry.requests)

    def test_fake_registry_enforces_credentials(self, ref):
        """Wrong credentials surface as OciAuthError from a real 401 answer."""
        from fakes.fake_registry import FakeRegistry

        registry = FakeRegistry(authorization=Credentials("u", "p").authorization)
        client = RegistryClient(credentials=Credentials("u", "wrong"), transport=registry.transport)
        with pytest.raises(OciAuthError):
            client.pull_manifest(ref)

        client.set_basic_auth("u", "p")
        registry.put_manifest("library/nginx", "latest", _manifest().to_json())
        assert client.pull_manifest(ref) == _manifest()

    def test_set_and_get_credentials(self):
        client = RegistryClient()
        assert client.get_credentials() is None

        creds = Credentials("u", "p")
        client.set_credentials(creds)
        held = client.get_credentials()
        assert held == creds
        assert held.authorization == "Basic dTpw"

        client.set_credentials(None)
        assert client.get_credentials() is None
        client.close()

    def test_concurrent_set_basic_auth(self, client, registry, ref):
        """Concurrent swaps never mix username of one pair with password of another."""
        pairs = [("user%d" % i, "pass%d" % i) for i in range(8)]
        valid = {Credentials(u, p).authorization for u, p in pairs}
        registry.put_manifest("library/nginx", "latest", _manifest().to_json())

        def worker(u, p):
            for _ in range(5):
                client.set_basic_auth(u, p)
                client.pull_manifest(ref)

        threads = [threading.Thread(target=worker, args=pair) for pair in pairs]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(registry.requests) == 40
        assert {r.headers["Authorization"] for r in registry.requests} <= valid

    def test_operation_uses_one_credential_snapshot(self, ref):
        """Credentials changed between the two upload steps do not reach the PUT."""
        holder = {}
        seen = []

        def handler(request):
            seen.append(request.headers.get("Authorization"))
            if request.method == "GET":
                holder["client"].set_basic_auth("late", "change")
                return httpx.Response(202, headers={"Location": "/v2/library/nginx/blobs/uploads/s"})
            return httpx.Response(201)

        transport = httpx.MockTransport(handler)
        client = RegistryClient(credentials=Credentials("u", "p"), transport=transport)
        holder["client"] = client

        client.push_blob(_descriptor(), CONTENT, ref)

        assert seen == ["Basic dTpw", "Basic dTpw"]


class TestTransportErrors:
    """httpx failures map onto the error taxonomy."""

    def test_connect_error_is_transport_error(self, ref):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = RegistryClient(transport=httpx.MockTransport(handler))
        with pytest.raises(OciTransportError) as exc_info:
            client.pull_manifest(ref)
        assert exc_info.value.step == "pull-manifest"

    def test_timeout_is_transport_error(self, ref):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = RegistryClient(transport=httpx.MockTransport(handler))
        with pytest.raises(OciTransportError):
            client.pull_blob(_descriptor(), ref)
