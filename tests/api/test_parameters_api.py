"""
Tests for the parameters endpoints
"""

from httpx import AsyncClient

from elkarbackup.services.parameters.parameter_store import ParameterStore


class TestParametersAPI:
    async def test_admin_reads_defaults(
        self, async_client: AsyncClient, make_user, login
    ) -> None:
        admin = await make_user("admin", is_admin=True)
        await login(async_client, admin)

        response = await async_client.get("/api/parameters")

        assert response.status_code == 200
        body = response.json()
        assert body["disable_background"] is False
        assert body["backup_dirs"] == ["/var/spool/elkarbackup/backups"]

    async def test_non_admin_cannot_read(
        self, async_client: AsyncClient, make_user, login
    ) -> None:
        user = await make_user("user")
        await login(async_client, user)

        response = await async_client.get("/api/parameters")

        assert response.status_code == 403

    async def test_admin_updates_parameters(
        self,
        async_client: AsyncClient,
        parameter_store: ParameterStore,
        make_user,
        login,
    ) -> None:
        admin = await make_user("admin", is_admin=True)
        await login(async_client, admin)

        response = await async_client.put(
            "/api/parameters", json={"url_prefix": "/eb", "disable_background": True}
        )

        assert response.status_code == 200
        assert response.json()["parameters"]["url_prefix"] == "/eb"
        stored = parameter_store.load()
        assert stored.url_prefix == "/eb"
        assert stored.disable_background is True

    async def test_invalid_update_is_rejected(
        self,
        async_client: AsyncClient,
        parameter_store: ParameterStore,
        make_user,
        login,
    ) -> None:
        admin = await make_user("admin", is_admin=True)
        await login(async_client, admin)

        response = await async_client.put(
            "/api/parameters", json={"max_parallel_jobs": "many"}
        )

        assert response.status_code == 400
        assert response.json()["error"] is True
        assert parameter_store.load().max_parallel_jobs == 1

    async def test_anonymous_cannot_update(self, async_client: AsyncClient) -> None:
        response = await async_client.put("/api/parameters", json={"url_prefix": "/x"})

        assert response.status_code == 403
