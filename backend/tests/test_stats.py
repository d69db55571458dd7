from blog.users.models import Role


async def test_dashboard_stats(client, user_headers, category):
    _, author = await user_headers(Role.AUTHOR)
    published = (await client.post(
        "/articles/",
        json={"title": "Lu", "content": "<p>a</p>", "category_id": category.id, "published": True},
        headers=author,
    )).json()
    await client.post(
        "/articles/",
        json={"title": "Brouillon", "content": "<p>b</p>", "category_id": category.id},
        headers=author,
    )
    await client.get(f"/articles/slug/{published['slug']}")
    await client.post(f"/articles/slug/{published['slug']}/like")
    await client.post(f"/articles/{published['id']}/comments", json={"content": "Top"}, headers=author)

    response = await client.get("/stats/dashboard", headers=author)

    assert response.status_code == 200, response.text
    stats = response.json()
    assert stats["articles"] == {"total": 2, "published": 1, "draft": 1}
    assert stats["views"]["total"] == 1
    assert stats["views"]["most_viewed"] == {"title": "Lu", "view_count": 1}
    assert stats["likes"] == 1
    assert stats["content"] == {"categories": 1, "tags": 0, "comments": 1}
    actions = {a["title"]: a["action"] for a in stats["recent_activity"]}
    assert actions == {"Lu": "Article published", "Brouillon": "Draft saved"}


async def test_dashboard_requires_author(client, user_headers):
    assert (await client.get("/stats/dashboard")).status_code == 401
    _, reader = await user_headers(Role.USER)
    assert (await client.get("/stats/dashboard", headers=reader)).status_code == 403


async def test_health(client):
    assert (await client.get("/health")).json() == {"status": "ok"}
