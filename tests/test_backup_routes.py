"""
HTTP surface: auth, routing and response shapes.
"""

import json


def put(client, headers, key, payload):
    body = payload if isinstance(payload, str) else json.dumps(payload)
    return client.put(f"/{key}", content=body.encode("utf-8"), headers=headers)


def test_requests_without_key_are_rejected(client):
    response = client.get("/config.json")
    assert response.status_code == 401
    assert response.json() == {"status": "error", "message": "Unauthorized"}


def test_wrong_key_is_rejected(client):
    response = client.put("/config.json", content=b"{}", headers={"X-Auth-Key": "nope"})
    assert response.status_code == 401


def test_preflight_needs_no_key(client):
    response = client.options(
        "/config.json",
        headers={
            "Origin": "https://example.com",
            "Access-Control-Request-Method": "PUT",
            "Access-Control-Request-Headers": "X-Auth-Key",
        }
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"


def test_health_is_public(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "store": "memory"}


def test_missing_filename(client, auth_headers):
    response = client.get("/", headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Filename required"


def test_put_then_get(client, auth_headers):
    response = put(client, auth_headers, "config.json", {"providers": [{"name": "p"}]})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["filename"] == "config.json"
    assert body["providers"] == 1
    assert body["memories"] == 0

    fetched = client.get("/config.json", headers=auth_headers)
    assert fetched.status_code == 200
    assert fetched.headers["content-type"].startswith("application/json")
    document = fetched.json()
    assert list(document)[0] == "_backupTime"
    assert document["providers"] == [{"name": "p"}]


def test_put_unchanged_is_skipped(client, auth_headers):
    put(client, auth_headers, "config.json", {"a": 1})
    response = put(client, auth_headers, "config.json", {"_backupTime": "X", "a": 1})

    assert response.status_code == 200
    assert response.json()["status"] == "skipped"
    assert "size" not in response.json()


def test_get_missing_document(client, auth_headers):
    response = client.get("/nothing.json", headers=auth_headers)
    assert response.status_code == 404
    assert response.json() == {"status": "error", "message": "Not Found"}


def test_list_orders_current_then_newest_history(client, auth_headers):
    for value in ["A", "B", "C"]:
        put(client, auth_headers, "config.json", {"v": value})

    response = client.get("/list/config.json", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["filename"] == "config.json"
    assert body["totalVersions"] == 3
    assert [v["version"] for v in body["versions"]] == [0, 2, 1]
    assert [v["key"] for v in body["versions"]] == ["config.json", "config2.json", "config1.json"]
    assert body["versions"][0]["label"] == "Current"
    assert body["versions"][1]["label"] == "Backup"
    assert all(v["uuid"] for v in body["versions"])
    assert all(v["uploaded"].endswith("Z") for v in body["versions"])


def test_list_of_unknown_document_is_empty(client, auth_headers):
    response = client.get("/list/unknown.json", headers=auth_headers)
    assert response.json()["versions"] == []


def test_rename_protects_and_labels_revision(client, auth_headers):
    put(client, auth_headers, "config.json", {"v": 1})
    put(client, auth_headers, "config.json", {"v": 2})

    response = client.post(
        "/rename/config1.json", json={"name": "Before migration"}, headers=auth_headers
    )

    assert response.status_code == 200
    assert response.json() == {
        "status": "success", "message": "Renamed", "customName": "Before migration"
    }
    versions = client.get("/list/config.json", headers=auth_headers).json()["versions"]
    named = [v for v in versions if v["key"] == "config1.json"][0]
    assert named["customName"] == "Before migration"
    assert named["label"] == "Before migration"


def test_rename_requires_name(client, auth_headers):
    put(client, auth_headers, "config.json", {"v": 1})

    assert client.post("/rename/config.json", json={}, headers=auth_headers).status_code == 400
    assert client.post(
        "/rename/config.json", json={"name": "  "}, headers=auth_headers
    ).status_code == 400


def test_rename_missing_file(client, auth_headers):
    response = client.post("/rename/ghost.json", json={"name": "x"}, headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["message"] == "File not found"


def test_preview_summarizes_config(client, auth_headers):
    put(client, auth_headers, "config.json", {
        "providers": [{"name": "OpenAI"}, {"id": "local"}],
        "memories": [1, 2, 3],
        "selectedGlobalModelID": "gpt-4o",
        "temperature": 0.7,
        "historyMessageCount": 10.9,
        "thinkingMode": True,
        "customSystemPrompt": "Be brief",
    })

    response = client.get("/preview/config.json", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["key"] == "config.json"
    assert body["providers"] == 2
    assert body["memories"] == 3
    assert body["sessions"] == 0
    assert body["customName"] is None
    assert body["details"] == {
        "providerNames": ["OpenAI", "local"],
        "selectedModel": "gpt-4o",
        "temperature": 0.7,
        "historyCount": 10,
        "thinkingMode": True,
        "memoryEnabled": False,
        "hasCustomPrompt": True,
    }


def test_preview_of_text_document(client, auth_headers):
    put(client, auth_headers, "notes.txt", "just text")

    body = client.get("/preview/notes.txt", headers=auth_headers).json()

    assert body["size"] == len("just text")
    assert body["details"] == {}
    assert body["providers"] is None


def test_dedup_endpoint(client, auth_headers):
    for value in ["A", "B", "A", "C"]:
        put(client, auth_headers, "config.json", {"v": value})

    response = client.post("/dedup/config.json", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["removed"] == 1
    assert response.json()["remaining"] == 3

    again = client.post("/dedup/config.json", headers=auth_headers).json()
    assert again["removed"] == 0


def test_prune_endpoint(client, auth_headers):
    for value in ["A", "B", "C", "D"]:
        put(client, auth_headers, "config.json", {"v": value})

    response = client.post("/prune/config.json?cap=1", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["removed"] == 2
    assert response.json()["remaining"] == 1


def test_restore_endpoint(client, auth_headers):
    put(client, auth_headers, "config.json", {"v": "A"})
    put(client, auth_headers, "config.json", {"v": "B"})

    response = client.post("/restore/config.json", json={"version": 1}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "success"
    assert response.json()["restoredFrom"] == "config1.json"
    assert client.get("/config.json", headers=auth_headers).json()["v"] == "A"
    assert client.get("/config2.json", headers=auth_headers).json()["v"] == "B"


def test_restore_unknown_version(client, auth_headers):
    put(client, auth_headers, "config.json", {"v": "A"})
    response = client.post("/restore/config.json", json={"version": 9}, headers=auth_headers)
    assert response.status_code == 404


def test_delete_removes_only_the_current(client, auth_headers):
    put(client, auth_headers, "config.json", {"v": 1})
    put(client, auth_headers, "config.json", {"v": 2})

    response = client.delete("/config.json", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"status": "success", "message": "Deleted config.json"}
    assert client.get("/config.json", headers=auth_headers).status_code == 404
    assert client.get("/config1.json", headers=auth_headers).status_code == 200


def test_non_utf8_body_is_rejected(client, auth_headers):
    response = client.put("/blob.bin", content=b"\xff\xfe\x00", headers=auth_headers)
    assert response.status_code == 400


def test_invalid_request_bodies_use_error_shape(client, auth_headers):
    put(client, auth_headers, "config.json", {"v": 1})

    responses = [
        client.post("/rename/config.json", json={"name": 5}, headers=auth_headers),
        client.post("/restore/config.json", json={}, headers=auth_headers),
        client.post("/restore/config.json", json={"version": 0}, headers=auth_headers),
        client.post("/prune/config.json?cap=-1", headers=auth_headers),
    ]

    for response in responses:
        assert response.status_code == 400
        body = response.json()
        assert body["status"] == "error"
        assert body["message"]
        assert "detail" not in body


def test_restore_without_version_names_the_field(client, auth_headers):
    response = client.post("/restore/config.json", json={}, headers=auth_headers)
    assert "version" in response.json()["message"]
