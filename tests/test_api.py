import pytest
from git_descendants.api.main import app, service
from httpx import ASGITransport, AsyncClient

import pytest_asyncio


# Fixture for async client
@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# Point the global service at the scenario repository
@pytest.fixture
def mock_repo(scenario_repo):
    repo, ids = scenario_repo
    service.git_dir = repo.root
    service.refresh()
    return repo, ids


@pytest.mark.asyncio
async def test_health(client, mock_repo):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_get_graph(client, mock_repo):
    _, ids = mock_repo
    response = await client.get("/api/graph")
    assert response.status_code == 200
    data = response.json()
    assert set(data) == {ids["A"], ids["B"], ids["C"]}
    assert data[ids["B"]] == {"parents": [ids["A"]], "children": [ids["C"]]}


@pytest.mark.asyncio
async def test_get_edges_all(client, mock_repo):
    _, ids = mock_repo
    response = await client.get("/api/graph/edges", params={"all": "true"})
    assert response.status_code == 200
    edges = {(e["source"], e["target"]) for e in response.json()}
    assert edges == {(ids["A"], ids["B"]), (ids["B"], ids["C"]), (ids["A"], ids["D"])}


@pytest.mark.asyncio
async def test_get_roots(client, mock_repo):
    _, ids = mock_repo
    response = await client.get("/api/roots")
    assert response.status_code == 200
    roots = response.json()
    assert [r["oid"] for r in roots] == [ids["C"]]
    assert roots[0]["summary"] == "C"
    assert roots[0]["commit_time"] == 300


@pytest.mark.asyncio
async def test_get_children(client, mock_repo):
    _, ids = mock_repo
    response = await client.get(f"/api/children/{ids['A']}")
    assert response.status_code == 200
    assert [c["oid"] for c in response.json()] == [ids["B"]]

    response = await client.get(f"/api/children/{ids['A']}", params={"all": "true"})
    assert sorted(c["oid"] for c in response.json()) == sorted([ids["B"], ids["D"]])


@pytest.mark.asyncio
async def test_get_children_of_branch_path(client, mock_repo):
    repo, ids = mock_repo
    repo.set_ref("refs/heads/feat/x", ids["B"])
    response = await client.get("/api/children/feat/x")
    assert response.status_code == 200
    assert [c["oid"] for c in response.json()] == [ids["C"]]


@pytest.mark.asyncio
async def test_get_children_unknown_revision(client, mock_repo):
    response = await client.get("/api/children/nope")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_get_lost(client, mock_repo):
    _, ids = mock_repo
    response = await client.get("/api/lost")
    assert response.status_code == 200
    assert [c["oid"] for c in response.json()] == [ids["D"]]


@pytest.mark.asyncio
async def test_refresh_picks_up_new_refs(client, mock_repo):
    repo, ids = mock_repo
    await client.get("/api/graph")
    repo.set_ref("refs/heads/rescued", ids["D"])

    stale = (await client.get("/api/graph")).json()
    assert ids["D"] not in stale

    assert (await client.post("/api/refresh")).status_code == 200
    fresh = (await client.get("/api/graph")).json()
    assert ids["D"] in fresh


@pytest.mark.asyncio
async def test_store_failure_is_a_500(client, tmp_path):
    service.git_dir = tmp_path
    service.refresh()
    response = await client.get("/api/roots")
    assert response.status_code == 500
    assert "could not find repository" in response.json()["detail"]
