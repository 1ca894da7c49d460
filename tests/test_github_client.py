"""Tests for the GitHub REST client."""
import json

import httpx
import pytest
import respx

from app.github_client import (
    GitHubAPIError,
    GitHubClient,
    GitHubConflictError,
    GitHubNotFoundError,
    GitHubPermissionError,
    GitHubRateLimitError,
    decode_content,
    encode_content,
)

API = "https://api.github.com"


@pytest.fixture
def client(settings):
    return GitHubClient(token="test-token", settings=settings)


class TestGitHubClient:
    def test_init_with_token(self, settings):
        client = GitHubClient(token="my-token", settings=settings)
        assert client.headers["Authorization"] == "Bearer my-token"
        assert "X-GitHub-Api-Version" in client.headers

    def test_init_without_token(self, settings):
        assert "Authorization" not in GitHubClient(settings=settings).headers

    def test_decode_wrapped_base64(self):
        encoded = encode_content('{"name": "ünïcode"}' * 10)
        wrapped = "\n".join(encoded[i:i + 60] for i in range(0, len(encoded), 60))
        assert decode_content(wrapped) == '{"name": "ünïcode"}' * 10

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_authenticated_user_reads_scopes(self, client):
        respx.get(f"{API}/user").mock(
            return_value=httpx.Response(
                200,
                json={"login": "alice", "id": 1},
                headers={"x-oauth-scopes": "read:user, public_repo"},
            )
        )
        user, scopes = await client.get_authenticated_user()
        await client.close()

        assert user["login"] == "alice"
        assert scopes == ["read:user", "public_repo"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_file_decodes_content(self, client):
        respx.get(f"{API}/repos/alice/open-social-data/contents/profile.json").mock(
            return_value=httpx.Response(
                200,
                json={
                    "type": "file",
                    "path": "profile.json",
                    "sha": "abc123",
                    "content": encode_content('{"handle": "@alice.github.io"}'),
                },
            )
        )
        file = await client.get_file("alice", "open-social-data", "profile.json")
        await client.close()

        assert file.sha == "abc123"
        assert json.loads(file.content)["handle"] == "@alice.github.io"

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_file_rejects_directory(self, client):
        respx.get(f"{API}/repos/alice/open-social-data/contents/posts").mock(
            return_value=httpx.Response(200, json=[{"name": "2025", "type": "dir"}])
        )
        with pytest.raises(GitHubAPIError):
            await client.get_file("alice", "open-social-data", "posts")
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_list_directory(self, client):
        respx.get(f"{API}/repos/alice/open-social-data/contents/posts/2025").mock(
            return_value=httpx.Response(
                200,
                json=[
                    {"name": "01", "path": "posts/2025/01", "sha": "s1", "type": "dir"},
                    {"name": "02", "path": "posts/2025/02", "sha": "s2", "type": "dir"},
                ],
            )
        )
        entries = await client.list_directory("alice", "open-social-data", "posts/2025")
        await client.close()

        assert [e.name for e in entries] == ["01", "02"]
        assert all(e.type == "dir" for e in entries)

    @pytest.mark.asyncio
    @respx.mock
    async def test_put_file_sends_sha_and_branch(self, client):
        route = respx.put(f"{API}/repos/org/registry/contents/users/registry.json").mock(
            return_value=httpx.Response(200, json={"content": {"sha": "new-sha"}})
        )
        sha = await client.put_file(
            "org", "registry", "users/registry.json", '{"users": []}', "Update", sha="old-sha", branch="data"
        )
        await client.close()

        body = json.loads(route.calls.last.request.content)
        assert sha == "new-sha"
        assert body["sha"] == "old-sha"
        assert body["branch"] == "data"
        assert decode_content(body["content"]) == '{"users": []}'

    @pytest.mark.asyncio
    @respx.mock
    async def test_put_file_without_sha_omits_it(self, client):
        route = respx.put(f"{API}/repos/alice/open-social-data/contents/posts/2025/01/p.json").mock(
            return_value=httpx.Response(201, json={"content": {"sha": "created"}})
        )
        await client.put_file("alice", "open-social-data", "posts/2025/01/p.json", "{}", "Add")
        await client.close()

        assert "sha" not in json.loads(route.calls.last.request.content)

    @pytest.mark.asyncio
    @respx.mock
    async def test_check_collaborator(self, client):
        respx.get(f"{API}/repos/org/main/collaborators/alice").mock(return_value=httpx.Response(204))
        respx.get(f"{API}/repos/org/main/collaborators/bob").mock(
            return_value=httpx.Response(404, json={"message": "Not Found"})
        )
        assert await client.check_collaborator("org", "main", "alice")
        assert not await client.check_collaborator("org", "main", "bob")
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_repository_exists(self, client):
        respx.get(f"{API}/repos/alice/open-social-data").mock(
            return_value=httpx.Response(200, json={"name": "open-social-data"})
        )
        respx.get(f"{API}/repos/bob/open-social-data").mock(
            return_value=httpx.Response(404, json={"message": "Not Found"})
        )
        assert await client.repository_exists("alice", "open-social-data")
        assert not await client.repository_exists("bob", "open-social-data")
        await client.close()


class TestErrorMapping:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status, body, headers, expected",
        [
            (404, {"message": "Not Found"}, {}, GitHubNotFoundError),
            (409, {"message": "is at abc but expected def"}, {}, GitHubConflictError),
            (422, {"message": "Invalid request. \"sha\" wasn't supplied."}, {}, GitHubConflictError),
            (401, {"message": "Bad credentials"}, {}, GitHubPermissionError),
            (403, {"message": "API rate limit exceeded"}, {}, GitHubRateLimitError),
            (403, {"message": "Forbidden"}, {"x-ratelimit-remaining": "0"}, GitHubRateLimitError),
            (500, {"message": "Server Error"}, {}, GitHubAPIError),
        ],
    )
    @respx.mock
    async def test_status_maps_to_error(self, client, status, body, headers, expected):
        respx.get(f"{API}/repos/o/r").mock(
            return_value=httpx.Response(status, json=body, headers=headers)
        )
        with pytest.raises(expected) as info:
            await client.get_repository("o", "r")
        await client.close()

        assert info.value.status_code == status
        assert info.type is expected
