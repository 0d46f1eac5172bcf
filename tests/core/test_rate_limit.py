"""Rate limiting on POST /api/data/download (default "30/minute" per client IP).

Requests without a designId are rejected by the handler with 400, but
the limiter counts them before the handler runs.
"""

from httpx import AsyncClient


class TestDownloadRateLimit:
    async def test_first_request_is_not_limited(self, client: AsyncClient) -> None:
        res = await client.post("/api/data/download", json={})
        assert res.status_code == 400

    async def test_429_after_exceeding_limit(self, client: AsyncClient) -> None:
        statuses = []
        for _ in range(32):
            r = await client.post("/api/data/download", json={})
            statuses.append(r.status_code)

        assert statuses[0] == 400
        assert 429 in statuses, f"Expected 429 in statuses but got: {statuses}"

    async def test_other_endpoints_are_not_limited(self, client: AsyncClient) -> None:
        for _ in range(35):
            res = await client.get("/health")
        assert res.status_code == 200
