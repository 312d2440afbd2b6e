FAQ = b"Refunds are accepted within 30 days of purchase."


def test_upload_returns_camel_case_result(client, vector_store):
    response = client.post("/documents", files={"file": ("faq.txt", FAQ, "text/plain")})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "SUCCESS"
    assert body["filename"] == "faq.txt"
    assert body["chunksCreated"] == 1
    assert body["documentId"] == vector_store.docs[0].metadata["document_id"]


def test_failed_upload_is_still_200(client):
    response = client.post("/documents", files={"file": ("empty.txt", b"", "text/plain")})

    assert response.status_code == 200
    assert response.json()["status"] == "FAILED"
    assert response.json()["documentId"] is None


def test_missing_file_part_is_rejected(client):
    assert client.post("/documents").status_code == 422


def test_batch_upload_reports_each_file(client):
    response = client.post(
        "/documents/batch",
        files=[
            ("files", ("faq.txt", FAQ, "text/plain")),
            ("files", ("empty.txt", b"", "text/plain")),
        ],
    )

    assert response.status_code == 200
    assert [r["status"] for r in response.json()] == ["SUCCESS", "FAILED"]


def test_delete_removes_chunks_and_is_idempotent(client, vector_store):
    document_id = client.post(
        "/documents", files={"file": ("faq.txt", FAQ, "text/plain")}
    ).json()["documentId"]

    first = client.delete(f"/documents/{document_id}")
    second = client.delete(f"/documents/{document_id}")

    assert first.status_code == 204
    assert second.status_code == 204
    assert vector_store.docs == []
