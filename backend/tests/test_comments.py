import pytest

from blog.articles import service as article_service
from blog.articles.schemas import ArticleCreate
from blog.users.models import Role


@pytest.fixture()
def article_factory(db, make_user, category):
    async def _article(title: str = "Un article"):
        author = await make_user(Role.AUTHOR)
        return await article_service.create_post(
            db, author, ArticleCreate(title=title, content="<p>Texte</p>", category_id=category.id, published=True)
        )

    return _article


async def test_comment_and_nested_reply(client, user_headers, article_factory):
    post = await article_factory()
    _, headers = await user_headers()

    top = await client.post(f"/articles/{post.id}/comments", json={"content": "Super !"}, headers=headers)
    assert top.status_code == 201, top.text
    top_id = top.json()["id"]

    reply = await client.post(
        f"/articles/{post.id}/comments", json={"content": "Merci", "parent_id": top_id}, headers=headers
    )
    # 답글의 답글은 최상위 댓글 아래로 붙음
    nested = await client.post(
        f"/articles/{post.id}/comments",
        json={"content": "De rien", "parent_id": reply.json()["id"]},
        headers=headers,
    )
    assert nested.json()["parent_id"] == top_id

    listing = (await client.get(f"/articles/{post.id}/comments")).json()
    assert [c["id"] for c in listing] == [top_id]
    assert [r["content"] for r in listing[0]["replies"]] == ["Merci", "De rien"]


async def test_comments_included_in_article_detail(client, user_headers, article_factory):
    post = await article_factory()
    _, headers = await user_headers()
    await client.post(f"/articles/{post.id}/comments", json={"content": "Bravo"}, headers=headers)

    detail = (await client.get(f"/articles/slug/{post.slug}")).json()
    assert [c["content"] for c in detail["comments"]] == ["Bravo"]
    assert detail["comments"][0]["author"]["name"]


async def test_parent_from_other_article_rejected(client, user_headers, article_factory):
    first = await article_factory("Premier")
    second = await article_factory("Second")
    _, headers = await user_headers()
    parent = await client.post(f"/articles/{first.id}/comments", json={"content": "A"}, headers=headers)

    response = await client.post(
        f"/articles/{second.id}/comments",
        json={"content": "B", "parent_id": parent.json()["id"]},
        headers=headers,
    )
    assert response.status_code == 400


async def test_anonymous_cannot_comment(client, article_factory):
    post = await article_factory()
    response = await client.post(f"/articles/{post.id}/comments", json={"content": "Anonyme"})
    assert response.status_code == 401


async def test_only_author_or_admin_edits(client, user_headers, article_factory):
    post = await article_factory()
    _, owner = await user_headers()
    _, stranger = await user_headers()
    _, admin = await user_headers(Role.ADMIN)
    comment = (await client.post(f"/articles/{post.id}/comments", json={"content": "v1"}, headers=owner)).json()

    assert (await client.patch(f"/comments/{comment['id']}", json={"content": "x"}, headers=stranger)).status_code == 403

    edited = await client.patch(f"/comments/{comment['id']}", json={"content": "v2"}, headers=owner)
    assert edited.json()["content"] == "v2"

    assert (await client.delete(f"/comments/{comment['id']}", headers=admin)).status_code == 204
    assert (await client.get(f"/articles/{post.id}/comments")).json() == []


async def test_unapproved_comments_hidden_from_readers(client, user_headers, article_factory):
    post = await article_factory()
    _, headers = await user_headers()
    _, admin = await user_headers(Role.ADMIN)
    comment = (await client.post(f"/articles/{post.id}/comments", json={"content": "Spam"}, headers=headers)).json()

    unapproved = await client.put(f"/comments/{comment['id']}/unapprove", headers=admin)
    assert unapproved.json()["approved"] is False
    assert (await client.get(f"/articles/{post.id}/comments")).json() == []
    assert len((await client.get(f"/articles/{post.id}/comments", headers=admin)).json()) == 1

    assert (await client.put(f"/comments/{comment['id']}/approve", headers=headers)).status_code == 403
    approved = await client.put(f"/comments/{comment['id']}/approve", headers=admin)
    assert approved.json()["approved"] is True
    assert len((await client.get(f"/articles/{post.id}/comments")).json()) == 1
