"""Design document endpoints through the full app."""

from httpx import AsyncClient


async def _upload(client: AsyncClient, **doc) -> str:
    res = await client.post("/api/data/upload", json=doc)
    assert res.status_code == 201, res.text
    return res.json()["id"]


class TestUpload:
    async def test_upload_creates_new_document(self, client: AsyncClient) -> None:
        res = await client.post("/api/data/upload", json={"name": "Chair", "legs": 4})
        assert res.status_code == 201
        body = res.json()
        assert body["message"] == "Design uploaded successfully"
        assert body["name"] == "Chair"

        doc = (await client.get(f"/api/data/{body['id']}")).json()
        assert doc["legs"] == 4
        assert doc["_id"] == body["id"]

    async def test_upload_without_name_is_400(self, client: AsyncClient) -> None:
        res = await client.post("/api/data/upload", json={"legs": 4})
        assert res.status_code == 400
        assert res.json()["error"] == "Invalid design data"

    async def test_upload_never_overwrites(self, client: AsyncClient) -> None:
        first = await _upload(client, name="Chair", legs=3)
        second = await _upload(client, name="Chair", legs=4, _id=first)
        assert first != second
        assert (await client.get(f"/api/data/{first}")).json()["legs"] == 3


class TestReadAndList:
    async def test_get_unknown_document_is_404(self, client: AsyncClient) -> None:
        res = await client.get("/api/data/does-not-exist")
        assert res.status_code == 404
        assert res.json()["error"] == "Data not found"

    async def test_list_returns_summaries(self, client: AsyncClient) -> None:
        doc_id = await _upload(client, name="Chair", rooms=[1, 2])
        res = await client.get("/api/data/list")
        assert res.json() == [{"id": doc_id, "name": "Chair"}]

    async def test_list_all_returns_full_documents(self, client: AsyncClient) -> None:
        await _upload(client, name="Chair", rooms=[1, 2])
        [doc] = (await client.get("/api/data")).json()
        assert doc["rooms"] == [1, 2]

    async def test_list_latest_one_entry_per_name(self, client: AsyncClient) -> None:
        await _upload(client, name="Chair")
        newest = await _upload(client, name="Chair")
        await _upload(client, name="Table")
        for path in ("/api/data/list_latest", "/api/designs/list"):
            latest = {d["name"]: d for d in (await client.get(path)).json()}
            assert latest["Chair"]["id"] == newest
            assert latest["Chair"]["totalVersions"] == 2
            assert latest["Table"]["totalVersions"] == 1

    async def test_search_substring(self, client: AsyncClient) -> None:
        await _upload(client, name="Kitchen Plan")
        await _upload(client, name="Bathroom")
        body = (await client.get("/api/data/search", params={"q": "kitch"})).json()
        assert body["query"] == "kitch"
        assert body["count"] == 1
        assert body["results"][0]["name"] == "Kitchen Plan"

    async def test_search_without_query_returns_all(self, client: AsyncClient) -> None:
        await _upload(client, name="Kitchen Plan")
        await _upload(client, name="Bathroom")
        body = (await client.get("/api/data/search")).json()
        assert body["query"] == "all"
        assert body["count"] == 2


class TestVersions:
    async def test_versions_listing_and_pick(self, client: AsyncClient) -> None:
        old = await _upload(client, name="Chair", legs=3)
        new = await _upload(client, name="Chair", legs=4)

        listing = (await client.get("/api/data/versions/Chair")).json()
        assert listing["totalVersions"] == 2
        assert [v["id"] for v in listing["versions"]] == [new, old]

        previous = (await client.get("/api/data/versions/Chair/1")).json()
        assert previous["_id"] == old
        assert previous["legs"] == 3
        assert previous["versionInfo"]["isCurrent"] is False

    async def test_unknown_name_is_404(self, client: AsyncClient) -> None:
        res = await client.get("/api/data/versions/Sofa")
        assert res.status_code == 404

    async def test_invalid_version_number_is_400(self, client: AsyncClient) -> None:
        await _upload(client, name="Chair")
        res = await client.get("/api/data/versions/Chair/-1")
        assert res.status_code == 400
        assert res.json()["error"] == "Invalid version number"

    async def test_version_out_of_range(self, client: AsyncClient) -> None:
        await _upload(client, name="Chair")
        res = await client.get("/api/data/versions/Chair/4")
        assert res.status_code == 404
        assert res.json() == {
            "error": "Version not found",
            "message": "Version 4 does not exist. Available versions: [0,0]",
            "totalVersions": 1,
        }


class TestUpdateDelete:
    async def test_update_then_delete(self, client: AsyncClient) -> None:
        doc_id = await _upload(client, name="Chair", legs=3)
        res = await client.put(f"/api/data/{doc_id}", json={"legs": 5})
        assert res.json() == {"message": "Data updated successfully"}
        assert (await client.get(f"/api/data/{doc_id}")).json()["legs"] == 5

        res = await client.delete(f"/api/data/{doc_id}")
        assert res.json() == {"message": "Data deleted successfully"}
        assert (await client.get(f"/api/data/{doc_id}")).status_code == 404

    async def test_update_unknown_is_404(self, client: AsyncClient) -> None:
        res = await client.put("/api/data/nope", json={"legs": 5})
        assert res.status_code == 404

    async def test_delete_unknown_is_404(self, client: AsyncClient) -> None:
        assert (await client.delete("/api/data/nope")).status_code == 404


async def test_store_unavailable_is_503(client: AsyncClient, context) -> None:
    context.store_available = False
    res = await client.get("/api/data/list")
    assert res.status_code == 503
    assert res.json()["error"] == "Database unavailable"


async def test_malformed_query_parameter_is_400(client: AsyncClient) -> None:
    res = await client.get("/api/data/search", params={"limit": "abc"})
    assert res.status_code == 400
    body = res.json()
    assert body["error"] == "Invalid request"
    assert body["message"].startswith("query.limit:")
