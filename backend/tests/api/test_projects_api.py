"""
Projects, tasks and completion-gate endpoint tests.
"""

from httpx import AsyncClient

BASE = "/api/v1/projects"


async def create_project(client: AsyncClient, headers: dict, name: str = "Website") -> dict:
    response = await client.post(BASE, json={"name": name, "budget": 1000}, headers=headers)
    assert response.status_code == 201
    return response.json()


async def add_task(client: AsyncClient, headers: dict, project_id: str, title: str, **fields) -> dict:
    response = await client.post(
        f"{BASE}/{project_id}/tasks",
        json={"title": title, **fields},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


class TestProjectCrud:

    async def test_requires_auth(self, client: AsyncClient):
        response = await client.get(BASE)
        assert response.status_code == 401

    async def test_create_list_get(self, client: AsyncClient, auth_headers):
        project = await create_project(client, auth_headers)

        assert project["progress"] == 0
        assert len(project["team"]) == 1

        response = await client.get(BASE, headers=auth_headers)
        assert [p["id"] for p in response.json()] == [project["id"]]

        response = await client.get(f"{BASE}/{project['id']}", headers=auth_headers)
        assert response.json()["name"] == "Website"

    async def test_patch_and_delete(self, client: AsyncClient, auth_headers):
        project = await create_project(client, auth_headers)

        response = await client.patch(
            f"{BASE}/{project['id']}", json={"description": "Relaunch"}, headers=auth_headers
        )
        assert response.json()["description"] == "Relaunch"

        response = await client.delete(f"{BASE}/{project['id']}", headers=auth_headers)
        assert response.status_code == 204

        response = await client.get(f"{BASE}/{project['id']}", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "PROJECT_NOT_FOUND"


class TestTasks:

    async def test_create_task_ignores_status(self, client: AsyncClient, auth_headers):
        project = await create_project(client, auth_headers)

        data = await add_task(client, auth_headers, project["id"], "Design", status="Completed")

        assert data["outcome"] == "committed"
        task = data["project"]["tasks"][0]
        assert task["status"] == "Pending"
        assert task["history"][0]["change_type"] == "CREATED"

    async def test_blank_title_rejected(self, client: AsyncClient, auth_headers):
        project = await create_project(client, auth_headers)

        response = await client.post(f"{BASE}/{project['id']}/tasks", json={"title": " "}, headers=auth_headers)

        assert response.status_code == 422

    async def test_edit_records_history(self, client: AsyncClient, auth_headers):
        project = await create_project(client, auth_headers)
        task = (await add_task(client, auth_headers, project["id"], "Design"))["project"]["tasks"][0]

        response = await client.patch(
            f"{BASE}/{project['id']}/tasks/{task['id']}",
            json={"priority": "High", "deadline": "2025-07-01"},
            headers=auth_headers,
        )

        history = response.json()["project"]["tasks"][0]["history"]
        assert [h["description"] for h in history[:2]] == [
            "Priority changed from Medium to High",
            "Deadline updated to 2025-07-01",
        ]

    async def test_completion_gate_confirm(self, client: AsyncClient, auth_headers):
        project = await create_project(client, auth_headers)
        first = (await add_task(client, auth_headers, project["id"], "One"))["project"]["tasks"][0]
        data = await add_task(client, auth_headers, project["id"], "Two")
        second = data["project"]["tasks"][1]

        response = await client.post(
            f"{BASE}/{project['id']}/tasks/{first['id']}/move",
            json={"status": "Completed"},
            headers=auth_headers,
        )
        body = response.json()
        assert body["outcome"] == "committed"
        assert body["project"]["progress"] == 50
        # Completed on time: the next pending task starts automatically
        assert body["project"]["tasks"][1]["status"] == "In Progress"

        response = await client.post(
            f"{BASE}/{project['id']}/tasks/{second['id']}/move",
            json={"status": "Completed"},
            headers=auth_headers,
        )
        assert response.json()["outcome"] == "staged"

        response = await client.get(f"{BASE}?status=completed", headers=auth_headers)
        assert response.json() == []

        response = await client.get(f"{BASE}/{project['id']}/completion", headers=auth_headers)
        assert response.json()["progress"] == 100

        response = await client.post(f"{BASE}/{project['id']}/completion/confirm", headers=auth_headers)
        assert response.status_code == 200

        response = await client.get(f"{BASE}?status=completed", headers=auth_headers)
        assert [p["id"] for p in response.json()] == [project["id"]]

    async def test_completion_gate_decline(self, client: AsyncClient, auth_headers):
        project = await create_project(client, auth_headers)
        task = (await add_task(client, auth_headers, project["id"], "Only"))["project"]["tasks"][0]

        await client.post(
            f"{BASE}/{project['id']}/tasks/{task['id']}/move",
            json={"status": "Completed"},
            headers=auth_headers,
        )
        response = await client.post(f"{BASE}/{project['id']}/completion/decline", headers=auth_headers)

        assert response.json()["progress"] == 0
        assert response.json()["tasks"][0]["status"] == "Pending"

        response = await client.post(f"{BASE}/{project['id']}/completion/decline", headers=auth_headers)
        assert response.status_code == 409

    async def test_move_unknown_task_is_unchanged(self, client: AsyncClient, auth_headers):
        project = await create_project(client, auth_headers)

        response = await client.post(
            f"{BASE}/{project['id']}/tasks/nope/move",
            json={"status": "Completed"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["outcome"] == "unchanged"

    async def test_deadline_board(self, client: AsyncClient, auth_headers):
        project = await create_project(client, auth_headers)
        await add_task(client, auth_headers, project["id"], "Old", deadline="2000-01-01")
        await add_task(client, auth_headers, project["id"], "Open")

        response = await client.get(f"{BASE}/{project['id']}/deadlines", headers=auth_headers)

        rows = response.json()
        assert rows[0]["deadline"] == {"status": "overdue", "label": "Overdue"}
        assert rows[1]["deadline"]["status"] == "none"


class TestAiActions:

    async def test_analyze_risks_and_report(self, client: AsyncClient, auth_headers, generator):
        project = await create_project(client, auth_headers)

        response = await client.post(f"{BASE}/{project['id']}/risks/analyze", headers=auth_headers)
        assert [r["severity"] for r in response.json()["risks"]] == ["High"]

        response = await client.post(f"{BASE}/{project['id']}/report", headers=auth_headers)
        assert response.json() == {"text": "# Status Report"}

    async def test_generation_failure_is_bad_gateway(self, client: AsyncClient, auth_headers, generator):
        project = await create_project(client, auth_headers)
        generator.fail = True

        response = await client.post(f"{BASE}/{project['id']}/report", headers=auth_headers)

        assert response.status_code == 502
        assert response.json()["code"] == "GENERATION_FAILED"

    async def test_plan_from_brief(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/api/v1/generation/plan", json={"text": "Build a mobile app"}, headers=auth_headers
        )

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Mobile App"
        assert [t["title"] for t in data["tasks"]] == ["Wireframes", "API client"]

        response = await client.get(BASE, headers=auth_headers)
        assert response.json()[0]["id"] == data["id"]

    async def test_transcribe_and_refine(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/api/v1/generation/transcribe", json={"audio_base64": "QUJD"}, headers=auth_headers
        )
        assert response.json() == {"text": "Build a mobile app"}

        response = await client.post("/api/v1/generation/refine", json={"text": "make app"}, headers=auth_headers)
        assert response.json() == {"text": "Make app"}
