"""Tests for the HTTP API of a node."""

from collections.abc import Callable
from pathlib import Path

from fastapi.testclient import TestClient

from sink.repository import RepositoryIdentity


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["name"] == "studio"
        assert body["timestamp"] > 0

    def test_self(self, client: TestClient) -> None:
        body = client.get("/api/self").json()

        assert body["id"] == "studio-3847"
        assert body["lastSeen"] > 0

    def test_peers_without_discovery(self, client: TestClient) -> None:
        body = client.get("/api/peers").json()

        assert body["self"]["name"] == "studio"
        assert body["peers"] == []

    def test_docs(self, client: TestClient) -> None:
        assert client.get("/api-docs").status_code == 200


class TestRepos:
    def test_list(self, client: TestClient, alpha: RepositoryIdentity) -> None:
        body = client.get("/api/repos").json()

        assert {repo["name"] for repo in body} == {"alpha", "beta"}
        assert alpha.to_wire() in body

    def test_detailed(self, client: TestClient) -> None:
        body = client.get("/api/repos/detailed").json()

        by_name = {repo["name"]: repo for repo in body}
        assert by_name["alpha"]["status"]["isClean"] is True
        assert by_name["alpha"]["latestCommit"]["message"] == "Initial commit"
        assert by_name["beta"]["latestCommit"] is None

    def test_unknown_repository_is_404(self, client: TestClient) -> None:
        response = client.get("/api/repos/000000000000/status")

        assert response.status_code == 404
        assert response.json() == {"error": "Repository not found: 000000000000"}

    def test_status_and_log(self, client: TestClient, alpha: RepositoryIdentity) -> None:
        status = client.get(f"/api/repos/{alpha.id}/status").json()
        log = client.get(f"/api/repos/{alpha.id}/log", params={"limit": 5}).json()

        assert status["branch"] == "main"
        assert [entry["message"] for entry in log] == ["Initial commit"]

    def test_invalid_query_is_400(self, client: TestClient, alpha: RepositoryIdentity) -> None:
        response = client.get(f"/api/repos/{alpha.id}/log", params={"limit": 0})

        assert response.status_code == 400
        assert "error" in response.json()

    def test_commit_diff_of_unknown_hash_is_500(
        self, client: TestClient, alpha: RepositoryIdentity
    ) -> None:
        response = client.get(f"/api/repos/{alpha.id}/commits/{'f' * 40}/diff")

        assert response.status_code == 500
        assert response.json()["error"]

    def test_scan_picks_up_new_repository(
        self, client: TestClient, code_dir: Path, make_repository: Callable[..., Path]
    ) -> None:
        make_repository(code_dir / "gamma")

        body = client.post("/api/repos/scan").json()

        assert body["count"] == 3
        assert "gamma" in {repo["name"] for repo in body["repos"]}


class TestGitRoutes:
    def test_commit_all_then_status(
        self, client: TestClient, code_dir: Path, alpha: RepositoryIdentity
    ) -> None:
        (code_dir / "alpha" / "notes.md").write_text("hello\n")

        changes = client.get(f"/api/repos/{alpha.id}/changes").json()
        result = client.post(
            f"/api/repos/{alpha.id}/commit-all", json={"message": "Add notes"}
        ).json()
        status = client.get(f"/api/repos/{alpha.id}/status").json()

        assert changes["untracked"] == ["notes.md"]
        assert result["success"] is True
        assert status["isClean"] is True

    def test_failed_operation_is_still_200(
        self, client: TestClient, alpha: RepositoryIdentity
    ) -> None:
        response = client.post(f"/api/repos/{alpha.id}/checkout", json={"branch": "nope"})

        assert response.status_code == 200
        assert response.json()["success"] is False

    def test_empty_commit_message_is_rejected(
        self, client: TestClient, alpha: RepositoryIdentity
    ) -> None:
        response = client.post(f"/api/repos/{alpha.id}/commit", json={"message": ""})

        assert response.status_code == 400

    def test_stash_without_body(
        self, client: TestClient, code_dir: Path, alpha: RepositoryIdentity
    ) -> None:
        (code_dir / "alpha" / "README.md").write_text("changed\n")

        result = client.post(f"/api/repos/{alpha.id}/stash").json()
        stashes = client.get(f"/api/repos/{alpha.id}/stash").json()

        assert result["success"] is True
        assert len(stashes) == 1

    def test_conflicted_file_inside_repository(
        self, client: TestClient, alpha: RepositoryIdentity
    ) -> None:
        response = client.get(
            f"/api/repos/{alpha.id}/conflicts/file", params={"file": "README.md"}
        )

        assert response.status_code == 200
        assert response.json()["path"] == "README.md"

    def test_conflicted_file_rejects_absolute_path(
        self, client: TestClient, code_dir: Path, alpha: RepositoryIdentity
    ) -> None:
        secret = code_dir.parent / "secret.txt"
        secret.write_text("do not serve\n")

        response = client.get(
            f"/api/repos/{alpha.id}/conflicts/file", params={"file": str(secret)}
        )

        assert response.status_code == 400
        assert "outside the repository" in response.json()["error"]
        assert "do not serve" not in response.text

    def test_conflicted_file_rejects_parent_traversal(
        self, client: TestClient, code_dir: Path, alpha: RepositoryIdentity
    ) -> None:
        (code_dir.parent / "secret.txt").write_text("do not serve\n")

        response = client.get(
            f"/api/repos/{alpha.id}/conflicts/file", params={"file": "../../secret.txt"}
        )

        assert response.status_code == 400
        assert "outside the repository" in response.json()["error"]
        assert "do not serve" not in response.text


class TestAggregate:
    def test_local_only_view(self, client: TestClient) -> None:
        body = client.get("/api/aggregate").json()

        assert body["scope"] == "all"
        assert [machine["id"] for machine in body["machines"]] == ["studio-3847"]
        assert body["summary"]["total"] == 2
        assert {entry["repo"]["name"] for entry in body["entries"]} == {"alpha", "beta"}

    def test_unknown_scope_is_empty(self, client: TestClient) -> None:
        body = client.get("/api/aggregate", params={"scope": "nas-3847"}).json()

        assert body["entries"] == []
        assert body["summary"]["total"] == 0
