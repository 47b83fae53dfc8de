#!/usr/bin/env python3
"""
HTTP route tests: request validation messages, bot publishing and gallery,
chat endpoints, browser bookmarks, raw HTML sites and rate limiting.
"""

import json

import pytest

from conftest import FakeLLM


@pytest.fixture
async def llm():
    return FakeLLM(["Hello", " there"])


@pytest.fixture
async def services(make_services, llm):
    return make_services(llm=llm)


@pytest.fixture
async def client(make_client, services):
    return make_client(services)


async def publish(client, slug="quiz-bot", wallet="wallet-1", **extra):
    body = {
        "slug": slug,
        "name": "Quiz Bot",
        "description": "Asks questions",
        "systemPrompt": "You are a quiz host.",
        "walletAddress": wallet,
        **extra,
    }
    return await client.post("/api/bots", json=body)


class TestValidation:
    @pytest.mark.parametrize("path,body,message", [
        ("/api/bots/generate-code", {}, "Description or template is required"),
        ("/api/bots/generate-code", {"description": "  "},
         "Description or template is required"),
        ("/api/bots/generate-prompt", {}, "Description or template required"),
        ("/api/bots/refine-code", {"instruction": "x"}, "Files are required"),
        ("/api/bots/refine-code", {"files": [{"path": "a", "content": ""}]},
         "Instruction is required"),
        ("/api/bots", {"slug": "a-bot", "name": "A"},
         "slug, name, and systemPrompt are required"),
        ("/api/chat/quiz-bot", {}, "messages array required"),
        ("/api/test-chat", {"messages": []}, "systemPrompt and messages required"),
        ("/api/github/push", {"files": [{"path": "a", "content": ""}]},
         "repoName is required"),
        ("/api/github/push", {"repoName": "x", "files": []}, "Files are required"),
        ("/api/github/push", {"repoName": "x", "files": [{"path": "a"}]},
         "Each file needs a path and content"),
        ("/api/user-bots", {"name": "x"},
         "browser_id, name, type, and url are required"),
        ("/api/publish", {"slug": "my-site"}, "slug and html are required"),
    ])
    async def test_messages(self, client, path, body, message):
        response = await client.post(path, json=body)
        assert response.status_code == 400
        assert response.json() == {"error": message}

    async def test_bad_slug(self, client):
        response = await publish(client, slug="!")
        assert response.status_code == 400
        assert response.json() == {"error": "Slug must be at least 2 characters"}

    async def test_delete_requires_fields(self, client):
        response = await client.request("DELETE", "/api/bots", json={"id": "x"})
        assert response.status_code == 400
        assert response.json() == {"error": "id and wallet required"}


class TestBots:
    async def test_publish_then_update_keeps_id(self, client):
        created = await publish(client, slug="Quiz Bot!!")
        assert created.status_code == 200
        first = created.json()
        assert first["slug"] == "quiz-bot"
        assert "updated" not in first

        updated = await publish(client, slug="quiz-bot", wallet=None, name="Quiz 2")
        assert updated.json() == {"id": first["id"], "slug": "quiz-bot", "updated": True}

        info = (await client.get("/api/bot-info/quiz-bot")).json()
        assert info["name"] == "Quiz 2"
        assert info["message_count"] == 0
        assert "system_prompt" not in info

        # Wallet survives an update that omits it
        listed = (await client.get("/api/bots", params={"wallet": "wallet-1"})).json()
        assert [bot["slug"] for bot in listed["bots"]] == ["quiz-bot"]

    async def test_gallery_pagination(self, client):
        for index in range(3):
            await publish(client, slug=f"bot-{index}", wallet=f"wallet-{index}")

        page = (await client.get("/api/bots", params={"page": 2, "limit": 2})).json()
        assert page["total"] == 3
        assert page["page"] == 2
        assert page["limit"] == 2
        assert len(page["bots"]) == 1
        assert "system_prompt" not in page["bots"][0]

        capped = (await client.get("/api/bots", params={"limit": 500})).json()
        assert capped["limit"] == 50

    async def test_invalid_page(self, client):
        response = await client.get("/api/bots", params={"page": 0})
        assert response.status_code == 400

    async def test_delete_requires_owner(self, client):
        bot_id = (await publish(client)).json()["id"]

        denied = await client.request(
            "DELETE", "/api/bots", json={"id": bot_id, "wallet": "someone-else"}
        )
        assert denied.status_code == 403
        assert denied.json() == {"error": "Not authorized"}

        missing = await client.request(
            "DELETE", "/api/bots", json={"id": "nope", "wallet": "wallet-1"}
        )
        assert missing.status_code == 403

        deleted = await client.request(
            "DELETE", "/api/bots", json={"id": bot_id, "wallet": "wallet-1"}
        )
        assert deleted.json() == {"success": True}
        assert (await client.get("/api/bot-info/quiz-bot")).status_code == 404

    async def test_unknown_bot_info(self, client):
        response = await client.get("/api/bot-info/ghost")
        assert response.status_code == 404
        assert response.json() == {"error": "Bot not found"}

    async def test_generate_prompt_failure(self, client):
        response = await client.post(
            "/api/bots/generate-prompt", json={"description": "a bot"}
        )
        assert response.status_code == 502
        assert response.json() == {"error": "Failed to generate prompt"}

    async def test_github_push_not_configured(self, client):
        response = await client.post("/api/github/push", json={
            "repoName": "my-bot", "files": [{"path": "a.py", "content": ""}],
        })
        assert response.status_code == 503


class TestChat:
    async def test_published_chat_streams_and_counts(self, client, llm):
        await publish(client)
        response = await client.post("/api/chat/quiz-bot", json={
            "messages": [{"role": "user", "content": "hi"}],
        })

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["x-accel-buffering"] == "no"
        assert response.text == (
            'data: {"content": "Hello"}\n\n'
            'data: {"content": " there"}\n\n'
            "data: [DONE]\n\n"
        )
        system = llm.stream_calls[0][0]
        assert system.content == "You are a quiz host."

        info = (await client.get("/api/bot-info/quiz-bot")).json()
        assert info["message_count"] == 1

    async def test_unknown_bot(self, client):
        response = await client.post("/api/chat/ghost", json={"messages": []})
        assert response.status_code == 404
        assert response.json() == {"error": "Bot not found"}

    async def test_history_is_trimmed(self, client, llm):
        messages = [
            {"role": "user" if i % 2 == 0 else "assistant", "content": str(i)}
            for i in range(30)
        ]
        await client.post("/api/test-chat", json={
            "systemPrompt": "Be brief.", "messages": messages,
        })
        sent = llm.stream_calls[0]
        assert len(sent) == 21
        assert sent[1].content == "10"
        assert sent[-1].content == "29"

    async def test_upstream_failure_is_an_error_event(self, client, llm):
        llm.fail_after = 1
        response = await client.post("/api/test-chat", json={
            "systemPrompt": "Be brief.",
            "messages": [{"role": "user", "content": "hi"}],
        })
        frames = [f for f in response.text.split("\n\n") if f]
        assert frames[0] == 'data: {"content": "Hello"}'
        assert "upstream down" in json.loads(frames[1][len("data: "):])["error"]
        assert frames[-1] == "data: [DONE]"


class TestUserBots:
    async def test_bookmark_lifecycle(self, client):
        body = {
            "browser_id": "browser-1",
            "name": "Quiz Bot",
            "type": "webai",
            "url": "/b/quiz-bot",
            "slug": "quiz-bot",
        }
        created = (await client.post("/api/user-bots", json=body)).json()
        assert created["created"] is True

        again = (await client.post("/api/user-bots", json=body)).json()
        assert again == {"id": created["id"], "exists": True}

        listed = (await client.get("/api/user-bots", params={"browser_id": "browser-1"})).json()
        assert [bot["id"] for bot in listed["bots"]] == [created["id"]]

        other = (await client.get("/api/user-bots", params={"browser_id": "browser-2"})).json()
        assert other["bots"] == []

        # Another browser cannot delete it
        await client.request("DELETE", "/api/user-bots", json={
            "id": created["id"], "browser_id": "browser-2",
        })
        listed = (await client.get("/api/user-bots", params={"browser_id": "browser-1"})).json()
        assert len(listed["bots"]) == 1

        deleted = await client.request("DELETE", "/api/user-bots", json={
            "id": created["id"], "browser_id": "browser-1",
        })
        assert deleted.json() == {"success": True}

    async def test_list_requires_browser_id(self, client):
        response = await client.get("/api/user-bots")
        assert response.status_code == 400
        assert response.json() == {"error": "browser_id is required"}

    async def test_unknown_type(self, client):
        response = await client.post("/api/user-bots", json={
            "browser_id": "b", "name": "x", "type": "ftp", "url": "/x",
        })
        assert response.status_code == 400


class TestPublishedSites:
    async def test_publish_and_serve(self, client):
        created = (await client.post("/api/publish", json={
            "slug": "My Site", "html": "<h1>Hi</h1>",
        })).json()
        assert created["slug"] == "my-site"
        assert created["url"] == "/s/my-site"
        assert "updated" not in created

        page = await client.get("/api/site/my-site")
        assert page.status_code == 200
        assert page.text == "<h1>Hi</h1>"
        assert page.headers["cache-control"] == "public, max-age=60, s-maxage=300"

        updated = (await client.post("/api/publish", json={
            "slug": "my-site", "html": "<h1>Bye</h1>",
        })).json()
        assert updated == {**created, "updated": True}
        assert (await client.get("/api/site/my-site")).text == "<h1>Bye</h1>"

    async def test_slug_too_long(self, client):
        response = await client.post("/api/publish", json={
            "slug": "a" * 65, "html": "<p></p>",
        })
        assert response.status_code == 400
        assert response.json() == {"error": "Slug must be under 64 characters"}

    async def test_missing_site(self, client):
        response = await client.get("/api/site/nothing")
        assert response.status_code == 404
        assert response.text == "Not Found"


class TestApp:
    async def test_health_and_security_headers(self, client):
        response = await client.get("/health")
        assert response.json() == {"status": "ok", "active_streams": 0}
        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["referrer-policy"] == "strict-origin-when-cross-origin"

    async def test_cors_preflight(self, client):
        response = await client.options("/api/bots", headers={
            "Origin": "https://example.com",
            "Access-Control-Request-Method": "POST",
        })
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"


class TestGenerationRateLimit:
    async def test_sixth_generation_is_rejected(self, client):
        body = {"description": "a trivia quiz bot"}
        for _ in range(5):
            response = await client.post("/api/bots/generate-code", json=body)
            assert response.status_code == 200

        limited = await client.post("/api/bots/generate-code", json=body)
        assert limited.status_code == 429
        assert limited.json() == {"error": "Generation rate limit exceeded. Try again later."}
        assert int(limited.headers["retry-after"]) >= 1

        # Refinement shares the same budget
        refine = await client.post("/api/bots/refine-code", json={
            "files": [{"path": "a.py", "content": ""}], "instruction": "more",
        })
        assert refine.status_code == 429

    async def test_budget_is_per_client(self, client):
        body = {"description": "a trivia quiz bot"}
        for _ in range(5):
            await client.post(
                "/api/bots/generate-code", json=body,
                headers={"x-forwarded-for": "10.0.0.1"},
            )
        other = await client.post(
            "/api/bots/generate-code", json=body,
            headers={"x-forwarded-for": "10.0.0.2, 172.16.0.1"},
        )
        assert other.status_code == 200
