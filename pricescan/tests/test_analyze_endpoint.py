import base64
import json

from pricescan.app.core.errors import UpstreamError
from pricescan.app.core.prompt import DEFAULT_QUESTION
from pricescan.app.schemas.analysis import DEFAULT_ONLINE_PLATFORMS, NOT_PROVIDED

from conftest import PNG_BYTES

TEN_MB = 10 * 1024 * 1024
GENERIC_FAILURE = "Analysis failed, please try again later."


def _upload(body: bytes = PNG_BYTES, content_type: str = "image/png"):
    return {"image": ("photo.png", body, content_type)}


def test_analyze_returns_stubbed_object_verbatim(make_client, sample_result):
    client, stub = make_client()

    resp = client.post("/api/analyze", files=_upload())

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["data"] == sample_result
    assert len(stub.calls) == 1


def test_analyze_sends_image_as_data_url_in_json_mode(make_client):
    client, stub = make_client()

    client.post("/api/analyze", files=_upload())

    call = stub.calls[0]
    assert call.json_mode is True
    expected = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")
    assert call.image_data_url == expected


def test_missing_image_is_rejected_without_upstream_call(make_client):
    client, stub = make_client()

    resp = client.post("/api/analyze", data={"question": "How much?"})

    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"]
    assert stub.calls == []


def test_empty_body_is_rejected_without_upstream_call(make_client):
    client, stub = make_client()

    resp = client.post("/api/analyze")

    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert stub.calls == []


def test_missing_credential_answers_500_without_upstream_call(make_client):
    client, stub = make_client(api_key=None)

    resp = client.post("/api/analyze", files=_upload())

    assert resp.status_code == 500
    body = resp.json()
    assert body == {"success": False, "error": "The analysis service is not configured."}
    assert stub.calls == []


def test_missing_image_wins_over_missing_credential(make_client):
    client, stub = make_client(api_key=None)

    resp = client.post("/api/analyze")

    assert resp.status_code == 400
    assert stub.calls == []


def test_upstream_error_is_mapped_to_generic_message(make_client):
    client, _ = make_client(
        error=UpstreamError("OpenAI chat request failed: 429 rate limit, key sk-live-123")
    )

    resp = client.post("/api/analyze", files=_upload())

    assert resp.status_code == 500
    body = resp.json()
    assert body == {"success": False, "error": GENERIC_FAILURE}
    assert "sk-live" not in resp.text
    assert "429" not in resp.text


def test_unexpected_client_exception_does_not_leak(make_client):
    client, _ = make_client(error=RuntimeError("socket exploded"))

    resp = client.post("/api/analyze", files=_upload())

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": GENERIC_FAILURE}
    assert "socket" not in resp.text


def test_malformed_model_output_answers_500(make_client):
    client, _ = make_client(content="Sorry, I cannot help with that.")

    resp = client.post("/api/analyze", files=_upload())

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": GENERIC_FAILURE}


def test_partial_model_output_is_filled_with_placeholders(make_client):
    client, _ = make_client(content=json.dumps({"name": "Widget", "price": "NT$ 99", "brand": None}))

    resp = client.post("/api/analyze", files=_upload())

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["name"] == "Widget"
    assert data["brand"] == NOT_PROVIDED
    assert data["tips"] == []
    assert [link["platform"] for link in data["purchaseLinks"]["online"]] == DEFAULT_ONLINE_PLATFORMS
    assert all(link["searchTerm"] == "Widget" for link in data["purchaseLinks"]["online"])
    assert all(value is not None for value in data.values())


def test_upload_of_exactly_the_limit_is_accepted(make_client):
    client, stub = make_client()

    resp = client.post("/api/analyze", files=_upload(b"\xff" * TEN_MB, "image/jpeg"))

    assert resp.status_code == 200
    assert len(stub.calls) == 1


def test_upload_one_byte_over_the_limit_is_rejected(make_client):
    client, stub = make_client()

    resp = client.post("/api/analyze", files=_upload(b"\xff" * (TEN_MB + 1), "image/jpeg"))

    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert stub.calls == []


def test_configured_upload_limit_is_honoured(make_client):
    client, stub = make_client(max_upload_bytes=16)

    resp = client.post("/api/analyze", files=_upload(b"x" * 17))

    assert resp.status_code == 400
    assert stub.calls == []


def test_non_image_upload_is_rejected(make_client):
    client, stub = make_client()

    resp = client.post(
        "/api/analyze",
        files={"image": ("notes.txt", b"hello", "text/plain")},
    )

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "The uploaded file is not an image."}
    assert stub.calls == []


def test_question_is_interpolated_into_prompt(make_client):
    client, stub = make_client()

    client.post(
        "/api/analyze",
        files=_upload(),
        data={"question": "Is this a limited edition?"},
    )

    assert "Is this a limited edition?" in stub.calls[0].prompt


def test_default_question_used_when_absent(make_client):
    client, stub = make_client()

    client.post("/api/analyze", files=_upload())

    assert DEFAULT_QUESTION in stub.calls[0].prompt


def test_overlong_question_is_rejected(make_client):
    client, stub = make_client(max_question_chars=10)

    resp = client.post("/api/analyze", files=_upload(), data={"question": "x" * 11})

    assert resp.status_code == 400
    assert stub.calls == []


def test_freetext_policy_parses_labels_and_fans_out_name(make_client):
    reply = "Item name：Widget\nEstimated price: NT$ 350\nSome other line"
    client, stub = make_client(content=reply, response_policy="freetext")

    resp = client.post("/api/analyze", files=_upload())

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert stub.calls[0].json_mode is False
    assert data["name"] == "Widget"
    assert data["price"] == "NT$ 350"
    assert {link["searchTerm"] for link in data["purchaseLinks"]["online"]} == {"Widget"}


def test_response_carries_request_id_header(make_client):
    client, _ = make_client()

    resp = client.post("/api/analyze", files=_upload(), headers={"X-Request-ID": "abc123"})

    assert resp.headers["X-Request-ID"] == "abc123"


def test_overflowing_score_is_clamped_not_failed(make_client, sample_result):
    reply = json.dumps(sample_result, ensure_ascii=False).replace(
        '"popularityScore": 78', '"popularityScore": 1e400'
    )
    client, _ = make_client(content=reply)

    resp = client.post("/api/analyze", files=_upload())

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["popularityScore"] == 100
    assert data["ecoScore"] == sample_result["ecoScore"]
