"""
Tests for the task and AI HTTP endpoints.

Covers:
1. POST /api/tasks - create with AI categorization / fallback
2. GET /api/tasks, GET /api/tasks/{id} - owner-scoped reads
3. PATCH|PUT /api/tasks/{id}, PATCH /api/tasks/{id}/quadrant - reconciled updates
4. DELETE /api/tasks/{id}
5. GET /api/tasks/matrix, POST /api/tasks/auto-categorize
6. POST /api/ai/categorize, POST /api/ai/matrix-categorize
"""
import pytest
from httpx import AsyncClient

from tests.helpers import suggestion

OWNER = {"user_id": "user_a"}
OTHER = {"user_id": "user_b"}


async def create(client: AsyncClient, params=OWNER, **body) -> dict:
    response = await client.post("/api/tasks", params=params, json=body)
    assert response.status_code == 201, response.text
    return response.json()["task"]


class TestCreateTask:
    @pytest.mark.asyncio
    async def test_create_with_ai(self, client: AsyncClient):
        response = await client.post(
            "/api/tasks",
            params=OWNER,
            json={"title": "Finish quarterly report", "due_date": "2025-12-15T17:00:00Z"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["task"]["owner_id"] == "user_a"
        assert data["task"]["quadrant"] == "do_first"
        assert data["task"]["category"] == "Work"
        assert data["ai_suggestion"]["reasoning"] == "Deadline tomorrow and high impact"

    @pytest.mark.asyncio
    async def test_create_survives_classifier_outage(self, client: AsyncClient, fake_classifier):
        fake_classifier.fail_all = True

        response = await client.post("/api/tasks", params=OWNER, json={"title": "Call mom"})

        assert response.status_code == 201
        data = response.json()
        assert data["task"]["category"] == "General"
        assert data["task"]["priority"] == 1
        assert data["ai_suggestion"]["fallback"] is True

    @pytest.mark.asyncio
    async def test_create_requires_user_id(self, client: AsyncClient):
        response = await client.post("/api/tasks", json={"title": "Orphan"})

        assert response.status_code == 422

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"title": ""},
            {"title": "x", "urgency": 5},
            {"title": "x", "quadrant": "eliminate"},
            {"title": "x", "owner_id": "user_b"},
        ],
    )
    async def test_create_rejects_invalid_body(self, client: AsyncClient, body):
        response = await client.post("/api/tasks", params=OWNER, json=body)

        assert response.status_code == 422


class TestReadTasks:
    @pytest.mark.asyncio
    async def test_list_is_owner_scoped_and_filterable(self, client: AsyncClient):
        await create(client, title="Urgent thing")
        await create(client, title="Someday", skip_ai=True)
        await create(client, params=OTHER, title="Not yours", skip_ai=True)

        response = await client.get("/api/tasks", params=OWNER)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [task["title"] for task in data["tasks"]] == ["Urgent thing", "Someday"]

        response = await client.get("/api/tasks", params={**OWNER, "quadrant": "do_first"})
        assert [task["title"] for task in response.json()["tasks"]] == ["Urgent thing"]

        response = await client.get("/api/tasks", params={**OWNER, "uncategorized": "true"})
        assert [task["title"] for task in response.json()["tasks"]] == ["Someday"]

    @pytest.mark.asyncio
    async def test_foreign_task_is_not_found(self, client: AsyncClient):
        task = await create(client, params=OTHER, title="Private", skip_ai=True)

        foreign = await client.get(f"/api/tasks/{task['id']}", params=OWNER)
        missing = await client.get("/api/tasks/does-not-exist", params=OWNER)

        assert foreign.status_code == 404
        assert missing.status_code == 404
        assert foreign.json()["detail"] == f"Task {task['id']} not found"

    @pytest.mark.asyncio
    async def test_get_own_task(self, client: AsyncClient):
        task = await create(client, title="Mine", skip_ai=True)

        response = await client.get(f"/api/tasks/{task['id']}", params=OWNER)

        assert response.status_code == 200
        assert response.json()["title"] == "Mine"


class TestUpdateTask:
    @pytest.mark.asyncio
    async def test_patch_scores_recomputes_quadrant(self, client: AsyncClient):
        task = await create(client, title="Plan trip", skip_ai=True)

        response = await client.patch(
            f"/api/tasks/{task['id']}", params=OWNER, json={"urgency": 3, "importance": 1}
        )

        assert response.status_code == 200
        assert response.json()["quadrant"] == "delegate"

    @pytest.mark.asyncio
    async def test_put_behaves_like_patch(self, client: AsyncClient):
        task = await create(client, title="Plan trip", skip_ai=True)

        response = await client.put(
            f"/api/tasks/{task['id']}", params=OWNER, json={"completed": True}
        )

        assert response.status_code == 200
        assert response.json()["completed"] is True
        assert response.json()["title"] == "Plan trip"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"urgency": 5},
            {"quadrant": "urgent"},
            {"urgency": True},
            {"title": None},
            {"quadrant": "do_first", "urgency": 1},
            {"color": "red"},
        ],
    )
    async def test_invalid_patch_is_422_and_task_unchanged(self, client: AsyncClient, body):
        task = await create(client, title="Stable")

        response = await client.patch(f"/api/tasks/{task['id']}", params=OWNER, json=body)

        assert response.status_code == 422
        stored = (await client.get(f"/api/tasks/{task['id']}", params=OWNER)).json()
        assert stored["quadrant"] == task["quadrant"]
        assert stored["urgency"] == task["urgency"]
        assert stored["title"] == "Stable"

    @pytest.mark.asyncio
    async def test_patch_foreign_task_is_404(self, client: AsyncClient):
        task = await create(client, params=OTHER, title="Theirs", skip_ai=True)

        response = await client.patch(f"/api/tasks/{task['id']}", params=OWNER, json={"title": "Mine now"})

        assert response.status_code == 404
        stored = (await client.get(f"/api/tasks/{task['id']}", params=OTHER)).json()
        assert stored["title"] == "Theirs"

    @pytest.mark.asyncio
    async def test_move_to_quadrant(self, client: AsyncClient):
        task = await create(client, title="Write tests")
        assert task["quadrant"] == "do_first"

        response = await client.patch(
            f"/api/tasks/{task['id']}/quadrant", params=OWNER, json={"quadrant": "schedule"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["quadrant"] == "schedule"
        assert (data["urgency"], data["importance"]) == (1, 3)

    @pytest.mark.asyncio
    async def test_move_to_unknown_quadrant_is_422(self, client: AsyncClient):
        task = await create(client, title="Write tests")

        response = await client.patch(
            f"/api/tasks/{task['id']}/quadrant", params=OWNER, json={"quadrant": "eliminate"}
        )

        assert response.status_code == 422


class TestDeleteTask:
    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient):
        task = await create(client, title="Disposable", skip_ai=True)

        response = await client.delete(f"/api/tasks/{task['id']}", params=OWNER)
        assert response.status_code == 204

        response = await client.get(f"/api/tasks/{task['id']}", params=OWNER)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_foreign_task_is_404(self, client: AsyncClient):
        task = await create(client, params=OTHER, title="Keep me", skip_ai=True)

        response = await client.delete(f"/api/tasks/{task['id']}", params=OWNER)

        assert response.status_code == 404
        assert (await client.get(f"/api/tasks/{task['id']}", params=OTHER)).status_code == 200


class TestMatrixAndBatch:
    @pytest.mark.asyncio
    async def test_matrix_summary(self, client: AsyncClient):
        await create(client, title="A")
        await create(client, title="B", quadrant="delegate", skip_ai=True)
        await create(client, title="C", skip_ai=True)

        response = await client.get("/api/tasks/matrix", params=OWNER)

        assert response.status_code == 200
        assert response.json() == {
            "do_first": 1,
            "schedule": 0,
            "delegate": 1,
            "do_later": 0,
            "uncategorized": 1,
            "total": 3,
        }

    @pytest.mark.asyncio
    async def test_auto_categorize_reports_partial_failure(self, client: AsyncClient, fake_classifier):
        await create(client, title="Pay rent", skip_ai=True)
        broken = await create(client, title="Plan offsite", skip_ai=True)
        await create(client, title="Clean garage", skip_ai=True)
        fake_classifier.fail_titles.add("Plan offsite")
        fake_classifier.responses["Clean garage"] = suggestion(1, 1, category="Home")

        response = await client.post("/api/tasks/auto-categorize", params=OWNER)

        assert response.status_code == 200
        data = response.json()
        assert data["updated_count"] == 2
        assert data["failed_count"] == 1
        assert data["failed"] == [broken["id"]]
        assert data["message"] == "Categorized 2 tasks, 1 failed"

        stored = (await client.get(f"/api/tasks/{broken['id']}", params=OWNER)).json()
        assert stored["quadrant"] is None

    @pytest.mark.asyncio
    async def test_auto_categorize_nothing_to_do(self, client: AsyncClient):
        await create(client, title="Already sorted")

        response = await client.post("/api/tasks/auto-categorize", params=OWNER)

        assert response.status_code == 200
        assert response.json()["updated_count"] == 0
        assert response.json()["message"] == "All tasks are already categorized"


class TestAIEndpoints:
    @pytest.mark.asyncio
    async def test_matrix_categorize_derives_quadrant(self, client: AsyncClient, fake_classifier):
        fake_classifier.responses["Read a novel"] = suggestion(2, 3, quadrant="do_first")

        response = await client.post("/api/ai/matrix-categorize", json={"title": "Read a novel"})

        assert response.status_code == 200
        data = response.json()
        assert data["quadrant"] == "schedule"
        assert (data["urgency"], data["importance"]) == (2, 3)

    @pytest.mark.asyncio
    async def test_categorize(self, client: AsyncClient):
        response = await client.post(
            "/api/ai/categorize", json={"title": "Buy groceries", "description": "Milk, eggs"}
        )

        assert response.status_code == 200
        assert response.json() == {"category": "Personal", "priority": 2, "reasoning": "Errand"}

    @pytest.mark.asyncio
    async def test_classifier_outage_is_502(self, client: AsyncClient, fake_classifier):
        fake_classifier.fail_all = True

        response = await client.post("/api/ai/matrix-categorize", json={"title": "Anything"})

        assert response.status_code == 502
        assert "Classification failed" in response.json()["detail"]


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["llm_provider"]
    assert data["llm_model"]
