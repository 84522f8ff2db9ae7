"""Tests for resource and project access checks."""

import uuid

import pytest
import pytest_asyncio

from taskboard.models import Comment, Permission, Project, ProjectMember, Task


@pytest_asyncio.fixture
async def project(db_session, admin_user):
    project = Project(name="Roadmap", owner_id=admin_user.id)
    db_session.add(project)
    await db_session.flush()
    return project


@pytest_asyncio.fixture
async def task(db_session, project, regular_user):
    task = Task(project_id=project.id, title="Write docs", assigned_to=regular_user.id)
    db_session.add(task)
    await db_session.flush()
    return task


def _resource_url(resource_type: str, resource_id) -> str:
    return f"/api/access/resources/{resource_type}/{resource_id}"


@pytest.mark.asyncio
async def test_assignee_may_act_on_task(async_client, task, user_headers):
    response = await async_client.get(
        _resource_url("TASK", task.id), params={"permission": "DELETE"}, headers=user_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["allowed"] is True
    assert data["permission"] == "DELETE"


@pytest.mark.asyncio
async def test_non_owner_without_grant_is_denied(async_client, project, user_headers):
    response = await async_client.get(_resource_url("PROJECT", project.id), headers=user_headers)

    assert response.status_code == 403
    assert response.json() == {"detail": "Access denied", "code": "FORBIDDEN"}


@pytest.mark.asyncio
async def test_explicit_grant_is_hierarchical(
    async_client, db_session, project, regular_user, user_headers
):
    db_session.add(
        Permission(
            user_id=regular_user.id,
            resource_type="PROJECT",
            resource_id=project.id,
            permission="WRITE",
        )
    )
    await db_session.flush()
    url = _resource_url("PROJECT", project.id)

    read = await async_client.get(url, params={"permission": "READ"}, headers=user_headers)
    write = await async_client.get(url, params={"permission": "WRITE"}, headers=user_headers)
    delete = await async_client.get(url, params={"permission": "DELETE"}, headers=user_headers)

    assert read.status_code == 200
    assert write.status_code == 200
    assert delete.status_code == 403


@pytest.mark.asyncio
async def test_comment_author_may_act(async_client, db_session, task, regular_user, user_headers):
    comment = Comment(task_id=task.id, user_id=regular_user.id)
    db_session.add(comment)
    await db_session.flush()

    response = await async_client.get(
        _resource_url("COMMENT", comment.id), params={"permission": "WRITE"}, headers=user_headers
    )

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_admin_bypasses_resource_checks(async_client, admin_headers):
    response = await async_client.get(
        _resource_url("TASK", uuid.uuid4()), params={"permission": "ADMIN"}, headers=admin_headers
    )

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_resource_check_requires_authentication(async_client):
    response = await async_client.get(_resource_url("TASK", uuid.uuid4()))

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_project_role_hierarchy(
    async_client, db_session, project, regular_user, user_headers
):
    db_session.add(ProjectMember(project_id=project.id, user_id=regular_user.id, role="EDITOR"))
    await db_session.flush()
    url = f"/api/access/projects/{project.id}"

    viewer = await async_client.get(url, params={"role": "VIEWER"}, headers=user_headers)
    editor = await async_client.get(url, params={"role": "EDITOR"}, headers=user_headers)
    owner = await async_client.get(url, params={"role": "OWNER"}, headers=user_headers)

    assert viewer.status_code == 200
    assert viewer.json()["project_role"] == "VIEWER"
    assert editor.status_code == 200
    assert owner.status_code == 403


@pytest.mark.asyncio
async def test_removed_member_loses_project_access(
    async_client, db_session, project, regular_user, user_headers
):
    db_session.add(
        ProjectMember(
            project_id=project.id, user_id=regular_user.id, role="OWNER", is_deleted=True
        )
    )
    await db_session.flush()

    response = await async_client.get(f"/api/access/projects/{project.id}", headers=user_headers)

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_unknown_resource_type_is_rejected(async_client, user_headers):
    response = await async_client.get(_resource_url("WIKI", uuid.uuid4()), headers=user_headers)

    assert response.status_code == 422
